"""Connection timeline collection through httpcore's ``trace`` extension.

DNS timestamps come from ``courier.transport.ResolvingBackend``; transports
that resolve inside the TCP connect leave them unset and the lookup is part
of the TCP phase.
"""

import time
from dataclasses import dataclass
from typing import Any

import structlog


logger = structlog.get_logger()

_PROTOCOLS = {"http11": "HTTP/1.1", "http2": "HTTP/2"}


@dataclass
class TraceStats:
    """Durations of the request phases, in nanoseconds."""

    dns: int = 0
    tcp: int = 0
    tls: int = 0
    request_send: int = 0
    server_processing: int = 0
    content_transfer: int = 0
    total: int = 0


def _span(start: int, end: int) -> int:
    if not start or not end:
        return 0
    return max(0, end - start)


@dataclass
class HTTPTrace:
    """Timeline of a single request.

    Timestamps are ``time.perf_counter_ns`` values, 0 when the phase did not
    happen. Instances are callables suitable for ``request.extensions["trace"]``.
    """

    start: int = 0
    dns_start: int = 0
    dns_done: int = 0
    connect_start: int = 0
    connect_done: int = 0
    tls_start: int = 0
    tls_done: int = 0
    got_conn: int = 0
    wrote_request: int = 0
    got_first_response_byte: int = 0
    done: int = 0
    reused: bool = False
    addr: str = ""
    protocol: str = ""

    @classmethod
    def begin(cls) -> "HTTPTrace":
        """Create a trace whose timeline starts now."""
        return cls(start=time.perf_counter_ns())

    def __call__(self, event_name: str, info: dict[str, Any]) -> None:
        """Record an httpcore trace event."""
        now = time.perf_counter_ns()
        prefix, _, rest = event_name.partition(".")
        step, _, phase = rest.rpartition(".")

        if prefix == "connection":
            if step == "connect_tcp":
                if phase == "started":
                    self.connect_start = now
                elif phase == "complete":
                    self.connect_done = now
                    self.addr = _server_addr(info.get("return_value"))
            elif step == "start_tls":
                if phase == "started":
                    self.tls_start = now
                elif phase == "complete":
                    self.tls_done = now
            return

        if prefix not in _PROTOCOLS:
            return
        self.protocol = _PROTOCOLS[prefix]
        if step == "send_request_headers" and phase == "started":
            if not self.got_conn:
                self.got_conn = now
                self.reused = not self.connect_start
        elif step == "send_request_body" and phase == "complete":
            self.wrote_request = now
        elif step == "receive_response_headers" and phase == "complete":
            self.got_first_response_byte = now

    def record_dns(self, started: int, done: int) -> None:
        """Record a host name lookup that ran inside the TCP connect.

        The connect_tcp.started event fires before the lookup, so the TCP
        phase is moved to start when the lookup is done.
        """
        self.dns_start = started
        self.dns_done = done
        self.connect_start = done

    def finish(self) -> None:
        """Mark the end of the request."""
        if not self.done:
            self.done = time.perf_counter_ns()

    def stats(self) -> TraceStats:
        """Compute phase durations from the timeline."""
        server_start = self.wrote_request or self.got_conn
        return TraceStats(
            dns=_span(self.dns_start, self.dns_done),
            tcp=_span(self.connect_start, self.connect_done),
            tls=_span(self.tls_start, self.tls_done),
            request_send=_span(self.got_conn, self.wrote_request),
            server_processing=_span(server_start, self.got_first_response_byte),
            content_transfer=_span(self.got_first_response_byte, self.done),
            total=_span(self.start, self.done),
        )


def _server_addr(stream: Any) -> str:
    if stream is None or not hasattr(stream, "get_extra_info"):
        return ""
    try:
        addr = stream.get_extra_info("server_addr")
    except (AttributeError, OSError) as e:
        logger.debug("trace_server_addr_unavailable", error=str(e))
        return ""
    if not addr:
        return ""
    host, port = addr[0], addr[1]
    return f"{host}:{port}"
