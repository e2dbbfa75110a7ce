"""Unit tests for environment settings."""

import pytest

from courier.constants import USER_AGENT
from courier.settings import get_settings


class TestCourierSettings:
    """Tests for CourierSettings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test default values."""
        for name in ("BASE_URL", "TIMEOUT_SECONDS", "MAX_CONCURRENCY", "ENABLE_TRACE", "USER_AGENT"):
            monkeypatch.delenv(f"COURIER_{name}", raising=False)

        settings = get_settings()

        assert settings.base_url == ""
        assert settings.timeout_seconds == 60
        assert settings.max_concurrency == 0
        assert settings.enable_trace is False
        assert settings.user_agent == USER_AGENT

    def test_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test values are read from COURIER_* variables."""
        monkeypatch.setenv("COURIER_BASE_URL", "http://a")
        monkeypatch.setenv("COURIER_MAX_CONCURRENCY", "3")
        monkeypatch.setenv("COURIER_ENABLE_TRACE", "true")

        settings = get_settings()

        assert settings.base_url == "http://a"
        assert settings.max_concurrency == 3
        assert settings.enable_trace is True

    def test_negative_timeout_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test invalid timeouts fail validation."""
        monkeypatch.setenv("COURIER_TIMEOUT_SECONDS", "-1")

        with pytest.raises(ValueError):
            get_settings()
