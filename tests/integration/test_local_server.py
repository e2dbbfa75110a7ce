"""Integration tests against a local HTTP server that sends its body slowly."""

import threading
import time
from collections.abc import Generator
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import httpx
import pytest

from courier.config import InstanceConfig, RequestConfig
from courier.context import background
from courier.errors import CourierError, ErrorCategory
from courier.instance import Instance
from courier.stats import get_stats
from courier.transport import TracingTransport


def get_server_url(server: ThreadingHTTPServer, path: str = "/slow") -> str:
    """Get the URL for a test server.

    Args:
        server: The HTTP server instance.
        path: The URL path.

    Returns:
        Complete URL for the server.
    """
    host, port = server.server_address[0], server.server_address[1]
    if isinstance(host, bytes):
        host = host.decode("utf-8")
    return f"http://{host}:{port}{path}"


class SlowBodyHandler(BaseHTTPRequestHandler):
    """HTTP handler that sends one body byte every 100 ms."""

    protocol_version = "HTTP/1.1"
    delay = 0.1

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        """Suppress log messages during tests."""

    def do_GET(self) -> None:  # noqa: N802
        """Send headers at once, then trickle the body."""
        size = 3 if self.path.startswith("/short") else 30
        self.send_response(200)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(size))
        self.end_headers()
        try:
            for _ in range(size):
                time.sleep(self.delay)
                self.wfile.write(b"x")
                self.wfile.flush()
        except (BrokenPipeError, ConnectionResetError):
            return


@pytest.fixture
def slow_server() -> Generator[ThreadingHTTPServer]:
    """Start a local HTTP server with a slow body."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), SlowBodyHandler)
    thread = threading.Thread(target=server.serve_forever)
    thread.daemon = True
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def client() -> Generator[httpx.Client]:
    """Fresh client so no pooled connection is shared between tests."""
    with httpx.Client(transport=TracingTransport()) as http_client:
        yield http_client


class TestRequestDeadline:
    """Tests for deadlines and cancellation during the body read."""

    def test_timeout_bounds_slow_body(
        self, slow_server: ThreadingHTTPServer, client: httpx.Client
    ) -> None:
        """Test the request timeout stops a body that keeps trickling in."""
        ins = Instance(InstanceConfig(client=client))
        config = RequestConfig(url=get_server_url(slow_server), timeout=0.5)

        started = time.monotonic()
        with pytest.raises(CourierError) as exc_info:
            ins.request(config)
        elapsed = time.monotonic() - started

        err = exc_info.value
        assert elapsed < 1.5
        assert err.timeout() is True
        assert err.category == ErrorCategory.TIMEOUT
        assert err.code == 500
        assert config.response is not None
        assert config.response.status == 200

    def test_cancel_stops_slow_body(
        self, slow_server: ThreadingHTTPServer, client: httpx.Client
    ) -> None:
        """Test cancelling the caller context stops the read."""
        ins = Instance(InstanceConfig(client=client))
        ctx = background().with_cancel()
        timer = threading.Timer(0.3, ctx.cancel)

        started = time.monotonic()
        timer.start()
        try:
            with pytest.raises(CourierError) as exc_info:
                ins.get_x(ctx, get_server_url(slow_server))
        finally:
            timer.cancel()
        elapsed = time.monotonic() - started

        assert elapsed < 1.5
        assert exc_info.value.category == ErrorCategory.CANCELED
        assert exc_info.value.timeout() is False

    def test_body_within_timeout(
        self, slow_server: ThreadingHTTPServer, client: httpx.Client
    ) -> None:
        """Test a body that completes before the deadline is returned."""
        ins = Instance(InstanceConfig(client=client, timeout=5))

        resp = ins.get(get_server_url(slow_server, "/short"))

        assert resp.status == 200
        assert resp.data == b"xxx"


class TestDNSTiming:
    """Tests for name resolution timing on traced requests."""

    def test_lookup_recorded(
        self, slow_server: ThreadingHTTPServer, client: httpx.Client
    ) -> None:
        """Test a traced request records the host lookup before the connect."""
        port = slow_server.server_address[1]
        ins = Instance(InstanceConfig(client=client, enable_trace=True))
        config = RequestConfig(url=f"http://localhost:{port}/short")

        ins.request(config)

        trace = config.http_trace
        assert trace is not None
        assert trace.dns_start > 0
        assert trace.dns_done >= trace.dns_start
        assert trace.connect_start == trace.dns_done
        assert trace.connect_done >= trace.connect_start
        assert trace.reused is False
        assert trace.addr.endswith(f":{port}")

        stats = get_stats(config)
        assert stats.dns_use >= 0
        assert stats.addr == trace.addr

    def test_pooled_connection_skips_lookup(
        self, slow_server: ThreadingHTTPServer, client: httpx.Client
    ) -> None:
        """Test a reused connection has no lookup or connect phase."""
        ins = Instance(InstanceConfig(client=client, enable_trace=True))
        url = get_server_url(slow_server, "/short")
        ins.get(url)
        config = RequestConfig(url=url)

        ins.request(config)

        trace = config.http_trace
        assert trace is not None
        assert trace.reused is True
        assert trace.dns_start == 0
        assert trace.connect_start == 0
