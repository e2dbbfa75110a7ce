"""Default adapter: performs the network exchange with httpx."""

from functools import lru_cache
from io import BytesIO

import httpx
import structlog

from courier.config import RequestConfig
from courier.context import Context, background
from courier.response import Response
from courier.trace import HTTPTrace
from courier.transport import TracingTransport, active_trace


logger = structlog.get_logger()


@lru_cache(maxsize=1)
def get_default_client() -> httpx.Client:
    """Get the process-wide client used when a config carries none.

    Its transport resolves host names itself so traced requests report
    DNS time separately from the TCP connect.
    """
    return httpx.Client(follow_redirects=True, transport=TracingTransport())


def _set_timeout(request: httpx.Request, ctx: Context) -> None:
    """Bound every network operation of the request by the context deadline."""
    remaining = ctx.remaining()
    if remaining is not None:
        request.extensions["timeout"] = httpx.Timeout(remaining).as_dict()


def _read_raw(response: httpx.Response, ctx: Context) -> bytes:
    """Read the undecoded response body as it arrives.

    Content decoding is left to the response transforms. The context is
    checked before every network chunk, so a body that keeps trickling in
    cannot outlive the deadline or a cancellation.

    Raises:
        ContextCanceledError: If the context is cancelled during the read.
        DeadlineExceededError: If the deadline passes during the read.
    """
    buffer = BytesIO()
    for chunk in response.iter_raw():
        ctx.raise_for_err()
        buffer.write(chunk)
    ctx.raise_for_err()
    return buffer.getvalue()


def _send(client: httpx.Client, request: httpx.Request) -> httpx.Response:
    """Send with the request trace visible to the network backend."""
    trace = request.extensions.get("trace")
    if not isinstance(trace, HTTPTrace):
        return client.send(request, stream=True)

    token = active_trace.set(trace)
    try:
        return client.send(request, stream=True)
    finally:
        active_trace.reset(token)


def default_adapter(config: RequestConfig) -> Response:
    """Send ``config.request`` and read the whole response.

    The response is stored on ``config.response`` before the body is read so
    that a failed read still reports the status code.

    Args:
        config: Request configuration with a built wire request.

    Returns:
        Response with the raw body.

    Raises:
        ValueError: If the wire request has not been built.
        ContextCanceledError: If the context was cancelled.
        DeadlineExceededError: If the context deadline has passed.
        httpx.HTTPError: If the exchange fails.
    """
    request = config.request
    if request is None:
        msg = "wire request has not been built"
        raise ValueError(msg)

    ctx = config.context or background()
    ctx.raise_for_err()
    _set_timeout(request, ctx)

    client = config.client or get_default_client()
    http_response = _send(client, request)
    try:
        resp = Response(
            status=http_response.status_code,
            headers=http_response.headers.copy(),
            config=config,
            request=request,
            original_response=http_response,
        )
        config.response = resp
        ctx.raise_for_err()
        resp.data = _read_raw(http_response, ctx)
    finally:
        http_response.close()

    logger.debug(
        "adapter_response_read",
        component="courier",
        status=resp.status,
        bytes=len(resp.data),
    )
    return resp
