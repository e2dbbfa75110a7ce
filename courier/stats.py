"""Per-request statistics records."""

from enum import IntEnum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from courier.config import RequestConfig


_NS_PER_MS = 1_000_000


class ResultKind(IntEnum):
    """Outcome of a request."""

    SUCCESS = 0
    FAIL = 1


class Stats(BaseModel):
    """Statistics of one request.

    Durations are milliseconds. ``status`` and ``size`` are -1 when no
    response was received.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    route: str = ""
    method: str = ""
    result: ResultKind = ResultKind.SUCCESS
    uri: str = ""
    status: int = -1
    reused: bool = False
    addr: str = ""
    use: int = 0
    dns_use: int = 0
    tcp_use: int = 0
    tls_use: int = 0
    request_send_use: int = 0
    server_processing_use: int = 0
    content_transfer_use: int = 0
    size: int = -1


def ceil_to_ms(ns: int) -> int:
    """Convert nanoseconds to milliseconds, rounding any remainder up."""
    if ns == 0:
        return 0
    ms, remainder = divmod(ns, _NS_PER_MS)
    return ms + 1 if remainder else ms


def get_stats(config: RequestConfig, err: BaseException | None = None) -> Stats:
    """Build the statistics record of a finished request.

    Args:
        config: Configuration of the request, after the pipeline ran.
        err: Error raised by the request, if any.

    Returns:
        Stats record.
    """
    stats = Stats(
        route=config.route,
        method=config.method,
        result=ResultKind.FAIL if err is not None else ResultKind.SUCCESS,
        uri=config.final_url or config.get_url(),
    )
    if config.response is not None:
        stats.status = config.response.status
        stats.size = len(config.response.data)

    trace = config.http_trace
    if trace is not None:
        timeline = trace.stats()
        stats.reused = trace.reused
        stats.addr = trace.addr
        stats.use = ceil_to_ms(timeline.total)
        stats.dns_use = ceil_to_ms(timeline.dns)
        stats.tcp_use = ceil_to_ms(timeline.tcp)
        stats.tls_use = ceil_to_ms(timeline.tls)
        stats.request_send_use = ceil_to_ms(timeline.request_send)
        stats.server_processing_use = ceil_to_ms(timeline.server_processing)
        stats.content_transfer_use = ceil_to_ms(timeline.content_transfer)
    return stats
