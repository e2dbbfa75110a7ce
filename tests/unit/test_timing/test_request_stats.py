"""Unit tests for request statistics."""

import httpx

from courier.config import InstanceConfig, RequestConfig
from courier.instance import Instance
from courier.response import Response
from courier.stats import ResultKind, Stats, ceil_to_ms, get_stats
from courier.trace import HTTPTrace


SECOND_NS = 1_000_000_000


class TestCeilToMs:
    """Tests for millisecond rounding."""

    def test_zero(self) -> None:
        """Test zero stays zero."""
        assert ceil_to_ms(0) == 0

    def test_exact(self) -> None:
        """Test exact milliseconds are unchanged."""
        assert ceil_to_ms(2_000_000) == 2

    def test_rounds_up(self) -> None:
        """Test any remainder rounds up."""
        assert ceil_to_ms(1) == 1
        assert ceil_to_ms(2_000_001) == 3


class TestGetStats:
    """Tests for get_stats."""

    def test_traced_failure(self) -> None:
        """Test a failed, traced request with a response."""
        trace = HTTPTrace(
            addr="1.1.1.1:80",
            reused=True,
            start=1 * SECOND_NS,
            got_conn=1 * SECOND_NS,
            dns_start=1 * SECOND_NS,
            dns_done=3 * SECOND_NS,
            connect_start=1 * SECOND_NS,
            connect_done=4 * SECOND_NS,
            tls_start=1 * SECOND_NS,
            tls_done=5 * SECOND_NS,
            got_first_response_byte=6 * SECOND_NS,
            done=12 * SECOND_NS,
        )
        config = RequestConfig(
            method="GET",
            base_url="http://127.0.0.1",
            route="/users/v1/:type",
            url="/users/v1/me",
            response=Response(status=400, data=b"test"),
            http_trace=trace,
        )

        stats = get_stats(config, ValueError("fail"))

        assert stats.route == "/users/v1/:type"
        assert stats.method == "GET"
        assert stats.result == ResultKind.FAIL
        assert stats.uri == "http://127.0.0.1/users/v1/me"
        assert stats.status == 400
        assert stats.reused is True
        assert stats.addr == "1.1.1.1:80"
        assert stats.dns_use == 2000
        assert stats.tcp_use == 3000
        assert stats.tls_use == 4000
        assert stats.server_processing_use == 5000
        assert stats.content_transfer_use == 6000
        assert stats.use == 11000
        assert stats.size == 4

    def test_without_response(self) -> None:
        """Test status and size are -1 without a response."""
        stats = get_stats(RequestConfig(url="/a"))

        assert stats.result == ResultKind.SUCCESS
        assert stats.status == -1
        assert stats.size == -1
        assert stats.use == 0

    def test_after_request(self) -> None:
        """Test stats use the final URL of a finished request."""
        ins = Instance(
            InstanceConfig(
                base_url="http://a",
                adapter=lambda config: Response(status=200, headers=httpx.Headers(), data=b"ok"),
            )
        )
        config = RequestConfig(url="/users/:id", params={"id": "1"})
        ins.request(config)

        stats = get_stats(config)

        assert stats.uri == "http://a/users/1"
        assert stats.route == "/users/:id"
        assert stats.status == 200
        assert stats.size == 2

    def test_json_aliases(self) -> None:
        """Test the JSON form uses camelCase names."""
        data = Stats(route="/a", dns_use=1).model_dump(by_alias=True)

        assert data["dnsUse"] == 1
        assert data["serverProcessingUse"] == 0
        assert data["route"] == "/a"
