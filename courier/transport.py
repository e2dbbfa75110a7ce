"""httpx transport that times host name resolution for traced requests.

httpcore resolves host names inside ``socket.create_connection``, which
hides DNS time in the TCP connect. ``ResolvingBackend`` resolves first,
records the lookup on the active ``HTTPTrace`` and then connects to the
resolved addresses in order.
"""

import socket
import time
from collections.abc import Iterable
from contextvars import ContextVar

import httpcore
import httpx
import structlog

from courier.trace import HTTPTrace


logger = structlog.get_logger()

# Trace of the request currently being sent on this thread
active_trace: ContextVar[HTTPTrace | None] = ContextVar("active_trace", default=None)

DEFAULT_LIMITS = httpx.Limits(max_connections=100, max_keepalive_connections=20)


class ResolvingBackend(httpcore.SyncBackend):
    """Network backend that resolves host names before connecting."""

    def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: float | None = None,
        local_address: str | None = None,
        socket_options: Iterable[httpcore.SOCKET_OPTION] | None = None,
    ) -> httpcore.NetworkStream:
        """Resolve ``host`` and connect to the first reachable address.

        Raises:
            httpcore.ConnectError: If resolution fails or no address accepts
                the connection.
            httpcore.ConnectTimeout: If a connect attempt times out.
        """
        trace = active_trace.get()
        started = time.perf_counter_ns()
        try:
            addresses = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
        except socket.gaierror as e:
            raise httpcore.ConnectError(str(e)) from e
        finally:
            if trace is not None:
                trace.record_dns(started, time.perf_counter_ns())

        last_error: httpcore.ConnectError | None = None
        for *_, sockaddr in addresses:
            try:
                return super().connect_tcp(
                    str(sockaddr[0]),
                    port,
                    timeout=timeout,
                    local_address=local_address,
                    socket_options=socket_options,
                )
            except httpcore.ConnectError as e:
                logger.debug(
                    "connect_attempt_failed",
                    component="courier",
                    host=host,
                    address=sockaddr[0],
                    error=str(e),
                )
                last_error = e

        if last_error is None:
            msg = f"no addresses found for {host}"
            raise httpcore.ConnectError(msg)
        raise last_error


class TracingTransport(httpx.HTTPTransport):
    """``httpx.HTTPTransport`` whose connection pool uses ResolvingBackend."""

    def __init__(
        self,
        verify: bool = True,
        http2: bool = False,
        limits: httpx.Limits = DEFAULT_LIMITS,
    ) -> None:
        """Initialize the transport.

        Args:
            verify: Whether to verify TLS certificates.
            http2: Whether to enable HTTP/2.
            limits: Connection pool limits.
        """
        super().__init__(verify=verify, http2=http2, limits=limits)
        # httpx has no option for the network backend, so the pool is rebuilt
        self._pool = httpcore.ConnectionPool(
            ssl_context=httpx.create_ssl_context(verify=verify),
            max_connections=limits.max_connections,
            max_keepalive_connections=limits.max_keepalive_connections,
            keepalive_expiry=limits.keepalive_expiry,
            http1=True,
            http2=http2,
            network_backend=ResolvingBackend(),
        )
