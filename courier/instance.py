"""Reusable HTTP client instance running the request pipeline."""

import dataclasses
import re
import time
from collections.abc import Callable, Iterator, Mapping
from contextlib import ExitStack
from threading import Lock
from typing import Any

import httpx
import structlog

from courier.adapter import default_adapter
from courier.config import InstanceConfig, RequestConfig, add_headers, merge_config
from courier.constants import (
    DEFAULT_ACCEPT_ENCODING,
    DEFAULT_CHUNK_SIZE,
    HEADER_ACCEPT_ENCODING,
    HEADER_CONTENT_LENGTH,
    HEADER_CONTENT_TYPE,
    HEADER_HOST,
    HEADER_USER_AGENT,
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_INTERNAL_SERVER_ERROR,
    METHOD_DELETE,
    METHOD_GET,
    METHOD_HEAD,
    METHOD_OPTIONS,
    METHOD_PATCH,
    METHOD_POST,
    METHOD_PUT,
    USER_AGENT,
)
from courier.context import Context, background
from courier.errors import (
    CourierError,
    DecodingError,
    EmptyResponseError,
    InvalidMethodError,
    MockRouteNotFoundError,
    RequestForbiddenError,
    TooManyRequestsError,
    create_error,
)
from courier.multipart import MultipartFile
from courier.observability.metrics import RequestMetrics
from courier.redact import redact_headers, redact_url_credentials
from courier.response import Response
from courier.trace import HTTPTrace
from courier.transform import DEFAULT_TRANSFORM_REQUEST, DEFAULT_TRANSFORM_RESPONSE
from courier.url import build_url
from courier.values import Values


logger = structlog.get_logger()

# RFC 9110 token characters
_METHOD_TOKEN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

Query = Values | Mapping[str, str] | None

# httpx sets these from the URL and body; a caller value replaces them
_WIRE_HEADERS = (HEADER_HOST, HEADER_CONTENT_LENGTH)


def _error_code(status: int) -> int:
    """Code of a failed request: the status when it is an error status, else 500."""
    if status < HTTP_STATUS_BAD_REQUEST:
        return HTTP_STATUS_INTERNAL_SERVER_ERROR
    return status


def _iter_stream(stream: Any) -> Iterator[bytes]:
    while chunk := stream.read(DEFAULT_CHUNK_SIZE):
        yield chunk


def _copy_response(response: Response) -> Response:
    return dataclasses.replace(response, headers=response.headers.copy())


def new_request(config: RequestConfig) -> httpx.Request:
    """Build the wire request of a config.

    Sets ``method``, ``route`` and ``final_url`` on the config and runs the
    request transforms over the body.

    Args:
        config: Merged request configuration.

    Returns:
        The wire request, without config headers.

    Raises:
        InvalidMethodError: If the method is not a valid token.
        EncodingError: If the body cannot be encoded.
    """
    method = config.method or METHOD_GET
    if not _METHOD_TOKEN.match(method):
        raise InvalidMethodError(method)
    config.method = method.upper()

    config.final_url, config.route = build_url(
        config.base_url, config.url, config.params, config.query
    )

    body = config.get_request_body()
    content: bytes | Iterator[bytes] | None
    if body is None or isinstance(body, bytes):
        content = body
    else:
        content = _iter_stream(body)

    return httpx.Request(config.method, config.final_url, content=content)


class _InFlightCounter:
    """Lock-guarded counter of in-flight requests."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._value = 0

    def add(self, delta: int) -> int:
        with self._lock:
            self._value += delta
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class Instance:
    """HTTP client with shared defaults, hooks and an in-flight counter.

    Every request runs through a fixed pipeline: merge defaults, admission
    control, before-new-request listeners, wire request construction,
    request interceptors, adapter, response transforms, response
    interceptors, then error and done listeners. Requests are never retried.
    """

    def __init__(self, config: InstanceConfig | None = None) -> None:
        """Initialize the instance.

        Args:
            config: Instance defaults. An empty config is used when omitted.
        """
        self.config = config or InstanceConfig()
        self._in_flight = _InFlightCounter()
        self._metrics = RequestMetrics.get_instance()
        self._log = logger.bind(component="courier")

    @property
    def concurrency(self) -> int:
        """Number of requests currently in flight."""
        return self._in_flight.value

    def request(self, config: RequestConfig) -> Response:
        """Run a request through the pipeline.

        Args:
            config: Per-call configuration, updated in place with the outputs.

        Returns:
            The response. Non-2xx statuses are not errors by themselves.

        Raises:
            CourierError: If any step fails, unless an error listener returned
                a replacement exception, which is raised instead.
        """
        start_ns = time.perf_counter_ns()
        resp: Response | None = None
        error: BaseException | None = None
        try:
            resp = self._request(config)
        except Exception as e:
            status = config.response.status if config.response is not None else 0
            error = create_error(e, config, _error_code(status))
            resp = config.response

        duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
        self._record(config, resp, error, duration_ms)

        if error is not None:
            for listener in config.error_listeners or []:
                replacement = listener(error, config)
                if replacement is not None:
                    error = replacement

        for listener in config.done_listeners or []:
            listener(config, resp, error)

        if error is not None:
            raise error
        if resp is None:
            raise create_error(
                EmptyResponseError(), config, HTTP_STATUS_INTERNAL_SERVER_ERROR
            )
        return resp

    def _request(self, config: RequestConfig) -> Response:
        merge_config(config, self.config)

        max_concurrency = self.config.max_concurrency
        if max_concurrency < 0:
            self._reject(config, "forbidden")
            raise RequestForbiddenError

        config.concurrency = self._in_flight.add(1)
        try:
            if 0 < max_concurrency < config.concurrency:
                self._reject(config, "too_many_requests")
                raise TooManyRequestsError(config.concurrency, max_concurrency)
            return self._dispatch(config)
        finally:
            self._in_flight.add(-1)

    def _dispatch(self, config: RequestConfig) -> Response:
        adapter = config.adapter or default_adapter
        if config.transform_request is None:
            config.transform_request = list(DEFAULT_TRANSFORM_REQUEST)
        if config.transform_response is None:
            config.transform_response = list(DEFAULT_TRANSFORM_RESPONSE)

        for listener in config.before_new_request_listeners or []:
            listener(config)

        request = new_request(config)

        with ExitStack() as stack:
            if config.enable_trace:
                http_trace = HTTPTrace.begin()
                request.extensions["trace"] = http_trace
                config.http_trace = http_trace
                stack.callback(http_trace.finish)

            if config.timeout:
                parent = config.context or background()
                config.context = stack.enter_context(
                    parent.with_timeout(config.timeout)
                )

            request.headers = add_headers(
                request.headers,
                config.headers or httpx.Headers(),
                replace=_WIRE_HEADERS,
            )
            if not request.headers.get(HEADER_USER_AGENT):
                request.headers[HEADER_USER_AGENT] = USER_AGENT
            if not request.headers.get(HEADER_ACCEPT_ENCODING):
                request.headers[HEADER_ACCEPT_ENCODING] = DEFAULT_ACCEPT_ENCODING
            config.request = request

            self._log.debug(
                "request_start",
                method=config.method,
                route=config.route,
                url=redact_url_credentials(config.final_url),
                headers=redact_headers(request.headers.multi_items()),
                concurrency=config.concurrency,
            )

            for interceptor in config.request_interceptors or []:
                interceptor(config)

            resp = adapter(config)
            if resp is None:
                raise EmptyResponseError
            resp.config = config
            resp.request = config.request
            config.response = resp

            # A body that fails to decode is a client-side failure whatever the status
            try:
                data = resp.data
                for transform in config.transform_response:
                    data = transform(data, resp.headers)
            except Exception as e:
                raise create_error(e, config, HTTP_STATUS_INTERNAL_SERVER_ERROR) from e
            resp.data = data

            for interceptor in config.response_interceptors or []:
                interceptor(resp)

        return resp

    def _reject(self, config: RequestConfig, reason: str) -> None:
        self._metrics.record_rejected()
        self._log.warning(
            "request_rejected",
            reason=reason,
            method=config.method,
            url=redact_url_credentials(config.url),
            max_concurrency=self.config.max_concurrency,
        )

    def _record(
        self,
        config: RequestConfig,
        resp: Response | None,
        error: CourierError | None,
        duration_ms: float,
    ) -> None:
        status = resp.status if resp is not None else 0
        size = len(resp.data) if resp is not None else 0
        self._metrics.record_request(status, size, duration_ms)

        if error is None:
            self._log.info(
                "request_complete",
                method=config.method,
                route=config.route,
                status=status,
                bytes=size,
                duration_ms=round(duration_ms, 2),
                concurrency=config.concurrency,
            )
            return

        self._metrics.record_failure(error.category)
        self._log.warning(
            "request_failed",
            method=config.method,
            route=config.route,
            url=redact_url_credentials(config.final_url or config.url),
            code=error.code,
            category=error.category.value,
            error=error.message,
            duration_ms=round(duration_ms, 2),
        )

    def _query_request(
        self,
        ctx: Context | None,
        method: str,
        url: str,
        query: Query,
    ) -> Response:
        config = RequestConfig(url=url, method=method, context=ctx)
        if query is not None:
            config.query = query if isinstance(query, Values) else Values(query)
        return self.request(config)

    def _body_request(
        self,
        ctx: Context | None,
        method: str,
        url: str,
        data: Any,
        query: Query,
    ) -> Response:
        config = RequestConfig(url=url, method=method, body=data, context=ctx)
        if query is not None:
            config.query = query if isinstance(query, Values) else Values(query)
        return self.request(config)

    def _decode(self, target: Any, resp: Response) -> Any:
        """Decode a successful response body into ``target``.

        Raises:
            CourierError: Wrapping a DecodingError when the body does not decode.
        """
        try:
            return resp.json(target)
        except Exception as e:  # noqa: BLE001
            decoding_error = DecodingError(f"Failed to decode response body: {e}")
            decoding_error.__cause__ = e
            raise create_error(
                decoding_error, resp.config, _error_code(resp.status)
            ) from e

    def get(self, url: str, query: Query = None) -> Response:
        """Send a GET request."""
        return self._query_request(None, METHOD_GET, url, query)

    def get_x(self, ctx: Context, url: str, query: Query = None) -> Response:
        """Send a GET request bound to ``ctx``."""
        return self._query_request(ctx, METHOD_GET, url, query)

    def delete(self, url: str, query: Query = None) -> Response:
        """Send a DELETE request."""
        return self._query_request(None, METHOD_DELETE, url, query)

    def delete_x(self, ctx: Context, url: str, query: Query = None) -> Response:
        """Send a DELETE request bound to ``ctx``."""
        return self._query_request(ctx, METHOD_DELETE, url, query)

    def head(self, url: str, query: Query = None) -> Response:
        """Send a HEAD request."""
        return self._query_request(None, METHOD_HEAD, url, query)

    def head_x(self, ctx: Context, url: str, query: Query = None) -> Response:
        """Send a HEAD request bound to ``ctx``."""
        return self._query_request(ctx, METHOD_HEAD, url, query)

    def options(self, url: str, query: Query = None) -> Response:
        """Send an OPTIONS request."""
        return self._query_request(None, METHOD_OPTIONS, url, query)

    def options_x(self, ctx: Context, url: str, query: Query = None) -> Response:
        """Send an OPTIONS request bound to ``ctx``."""
        return self._query_request(ctx, METHOD_OPTIONS, url, query)

    def post(self, url: str, data: Any = None, query: Query = None) -> Response:
        """Send a POST request with ``data`` as body."""
        return self._body_request(None, METHOD_POST, url, data, query)

    def post_x(
        self, ctx: Context, url: str, data: Any = None, query: Query = None
    ) -> Response:
        """Send a POST request bound to ``ctx``."""
        return self._body_request(ctx, METHOD_POST, url, data, query)

    def put(self, url: str, data: Any = None, query: Query = None) -> Response:
        """Send a PUT request with ``data`` as body."""
        return self._body_request(None, METHOD_PUT, url, data, query)

    def put_x(
        self, ctx: Context, url: str, data: Any = None, query: Query = None
    ) -> Response:
        """Send a PUT request bound to ``ctx``."""
        return self._body_request(ctx, METHOD_PUT, url, data, query)

    def patch(self, url: str, data: Any = None, query: Query = None) -> Response:
        """Send a PATCH request with ``data`` as body."""
        return self._body_request(None, METHOD_PATCH, url, data, query)

    def patch_x(
        self, ctx: Context, url: str, data: Any = None, query: Query = None
    ) -> Response:
        """Send a PATCH request bound to ``ctx``."""
        return self._body_request(ctx, METHOD_PATCH, url, data, query)

    def enhance_get(self, target: Any, url: str, query: Query = None) -> Any:
        """GET and decode the JSON body into ``target``."""
        return self._decode(target, self.get(url, query))

    def enhance_get_x(
        self, ctx: Context, target: Any, url: str, query: Query = None
    ) -> Any:
        """GET bound to ``ctx`` and decode the JSON body into ``target``."""
        return self._decode(target, self.get_x(ctx, url, query))

    def enhance_delete(self, target: Any, url: str, query: Query = None) -> Any:
        """DELETE and decode the JSON body into ``target``."""
        return self._decode(target, self.delete(url, query))

    def enhance_delete_x(
        self, ctx: Context, target: Any, url: str, query: Query = None
    ) -> Any:
        """DELETE bound to ``ctx`` and decode the JSON body into ``target``."""
        return self._decode(target, self.delete_x(ctx, url, query))

    def enhance_head(self, target: Any, url: str, query: Query = None) -> Any:
        """HEAD and decode the JSON body into ``target``."""
        return self._decode(target, self.head(url, query))

    def enhance_head_x(
        self, ctx: Context, target: Any, url: str, query: Query = None
    ) -> Any:
        """HEAD bound to ``ctx`` and decode the JSON body into ``target``."""
        return self._decode(target, self.head_x(ctx, url, query))

    def enhance_options(self, target: Any, url: str, query: Query = None) -> Any:
        """OPTIONS and decode the JSON body into ``target``."""
        return self._decode(target, self.options(url, query))

    def enhance_options_x(
        self, ctx: Context, target: Any, url: str, query: Query = None
    ) -> Any:
        """OPTIONS bound to ``ctx`` and decode the JSON body into ``target``."""
        return self._decode(target, self.options_x(ctx, url, query))

    def enhance_post(
        self, target: Any, url: str, data: Any = None, query: Query = None
    ) -> Any:
        """POST and decode the JSON body into ``target``."""
        return self._decode(target, self.post(url, data, query))

    def enhance_post_x(
        self,
        ctx: Context,
        target: Any,
        url: str,
        data: Any = None,
        query: Query = None,
    ) -> Any:
        """POST bound to ``ctx`` and decode the JSON body into ``target``."""
        return self._decode(target, self.post_x(ctx, url, data, query))

    def enhance_put(
        self, target: Any, url: str, data: Any = None, query: Query = None
    ) -> Any:
        """PUT and decode the JSON body into ``target``."""
        return self._decode(target, self.put(url, data, query))

    def enhance_put_x(
        self,
        ctx: Context,
        target: Any,
        url: str,
        data: Any = None,
        query: Query = None,
    ) -> Any:
        """PUT bound to ``ctx`` and decode the JSON body into ``target``."""
        return self._decode(target, self.put_x(ctx, url, data, query))

    def enhance_patch(
        self, target: Any, url: str, data: Any = None, query: Query = None
    ) -> Any:
        """PATCH and decode the JSON body into ``target``."""
        return self._decode(target, self.patch(url, data, query))

    def enhance_patch_x(
        self,
        ctx: Context,
        target: Any,
        url: str,
        data: Any = None,
        query: Query = None,
    ) -> Any:
        """PATCH bound to ``ctx`` and decode the JSON body into ``target``."""
        return self._decode(target, self.patch_x(ctx, url, data, query))

    def upload(self, url: str, file: MultipartFile, query: Query = None) -> Response:
        """POST a multipart body.

        Args:
            url: Request URL.
            file: Multipart writer, finalized by this call.
            query: Query values.

        Returns:
            The response.
        """
        return self.upload_x(None, url, file, query)

    def upload_x(
        self,
        ctx: Context | None,
        url: str,
        file: MultipartFile,
        query: Query = None,
    ) -> Response:
        """POST a multipart body bound to ``ctx``."""
        config = RequestConfig(
            url=url,
            method=METHOD_POST,
            body=file.bytes(),
            headers=httpx.Headers({HEADER_CONTENT_TYPE: file.form_data_content_type()}),
            context=ctx,
        )
        if query is not None:
            config.query = query if isinstance(query, Values) else Values(query)
        return self.request(config)

    def mock(self, response: Response) -> Callable[[], None]:
        """Replace the adapter with one returning a copy of ``response``.

        Not safe against requests already in flight.

        Returns:
            Callable restoring the previous adapter.
        """
        original = self.config.adapter

        def adapter(_: RequestConfig) -> Response:
            return _copy_response(response)

        self.config.adapter = adapter

        def restore() -> None:
            self.config.adapter = original

        return restore

    def multi_mock(self, responses: Mapping[str, Response]) -> Callable[[], None]:
        """Replace the adapter with per-route canned responses.

        A route without a registered response fails with
        MockRouteNotFoundError.

        Returns:
            Callable restoring the previous adapter.
        """
        original = self.config.adapter
        routes = dict(responses)

        def adapter(config: RequestConfig) -> Response:
            response = routes.get(config.route)
            if response is None:
                raise MockRouteNotFoundError(config.route)
            return _copy_response(response)

        self.config.adapter = adapter

        def restore() -> None:
            self.config.adapter = original

        return restore
