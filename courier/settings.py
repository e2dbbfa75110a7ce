"""Environment settings powered by Pydantic BaseSettings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from courier.constants import USER_AGENT


DEFAULT_TIMEOUT_SECONDS = 60.0


class CourierSettings(BaseSettings):
    """Defaults for the package-level instance, read from ``COURIER_*``."""

    model_config = SettingsConfigDict(
        env_prefix="COURIER_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = ""
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, ge=0.0)
    max_concurrency: int = 0
    enable_trace: bool = False
    user_agent: str = USER_AGENT


def get_settings() -> CourierSettings:
    """Get a settings instance."""
    return CourierSettings()
