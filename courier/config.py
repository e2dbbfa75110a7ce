"""Request and instance configuration.

``RequestConfig`` describes one call and is mutated while the call runs.
``InstanceConfig`` holds the defaults of an ``Instance`` and is merged into
every request configuration with ``merge_config``.
"""

import dataclasses
from collections.abc import Callable, Collection, Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from courier.constants import BODY_METHODS, METHOD_GET
from courier.context import Context
from courier.errors import RequestDataTypeInvalidError
from courier.response import Response
from courier.settings import CourierSettings
from courier.trace import HTTPTrace
from courier.transform import (
    DEFAULT_TRANSFORM_REQUEST,
    TransformRequest,
    TransformResponse,
    is_readable_stream,
)
from courier.url import build_url
from courier.values import Values


def _coerce_headers(value: Any) -> httpx.Headers:
    if value is None:
        return httpx.Headers()
    if isinstance(value, httpx.Headers):
        return value
    return httpx.Headers(value)


def add_headers(
    target: httpx.Headers | None,
    source: httpx.Headers,
    replace: Collection[str] = (),
) -> httpx.Headers:
    """Append every header of ``source`` to ``target``, keeping duplicates.

    Args:
        target: Headers to extend.
        source: Headers to add.
        replace: Header names that take the ``source`` values instead of
            being appended when ``source`` carries them.

    Returns:
        New header set with the values of both.
    """
    if target is None:
        return httpx.Headers(source.raw)
    replaced = {name.lower() for name in replace if name in source}
    kept = [
        (key, value)
        for key, value in target.raw
        if key.decode("latin-1").lower() not in replaced
    ]
    return httpx.Headers([*kept, *source.raw])


def struct_to_map_string(value: Any) -> dict[str, str]:
    """Flatten a pydantic model, dataclass or mapping into query strings.

    Booleans become ``true``/``false``, integers decimal strings, floats
    three-decimal strings. Empty strings and None are omitted.

    Args:
        value: Object to flatten.

    Returns:
        Mapping of field name to string value.

    Raises:
        TypeError: If a field has an unsupported type.
    """
    if isinstance(value, BaseModel):
        fields = value.model_dump(by_alias=True)
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = dataclasses.asdict(value)
    elif isinstance(value, Mapping):
        fields = dict(value)
    else:
        msg = f"unsupported query struct type: {type(value).__name__}"
        raise TypeError(msg)

    result: dict[str, str] = {}
    for key, item in fields.items():
        if item is None:
            continue
        if isinstance(item, bool):
            text = "true" if item else "false"
        elif isinstance(item, int):
            text = str(item)
        elif isinstance(item, float):
            text = f"{item:.3f}"
        elif isinstance(item, str):
            text = item
        else:
            msg = f"unsupported type for query field {key!r}: {type(item).__name__}"
            raise TypeError(msg)
        if text:
            result[key] = text
    return result


class HookListeners:
    """Append/prepend helpers shared by request and instance configs.

    Prepending builds a new list, so references to the previous list keep
    their contents.
    """

    request_interceptors: list[Any] | None
    response_interceptors: list[Any] | None
    error_listeners: list[Any] | None
    done_listeners: list[Any] | None
    before_new_request_listeners: list[Any] | None

    def _append_hook(self, name: str, fn: Callable[..., Any]) -> None:
        setattr(self, name, [*(getattr(self, name) or []), fn])

    def _prepend_hook(self, name: str, fn: Callable[..., Any]) -> None:
        setattr(self, name, [fn, *(getattr(self, name) or [])])

    def add_request_interceptor(self, fn: Callable[..., Any]) -> None:
        """Register a request interceptor after the existing ones."""
        self._append_hook("request_interceptors", fn)

    def prepend_request_interceptor(self, fn: Callable[..., Any]) -> None:
        """Register a request interceptor before the existing ones."""
        self._prepend_hook("request_interceptors", fn)

    def add_response_interceptor(self, fn: Callable[..., Any]) -> None:
        """Register a response interceptor after the existing ones."""
        self._append_hook("response_interceptors", fn)

    def prepend_response_interceptor(self, fn: Callable[..., Any]) -> None:
        """Register a response interceptor before the existing ones."""
        self._prepend_hook("response_interceptors", fn)

    def add_error_listener(self, fn: Callable[..., Any]) -> None:
        """Register an error listener after the existing ones."""
        self._append_hook("error_listeners", fn)

    def prepend_error_listener(self, fn: Callable[..., Any]) -> None:
        """Register an error listener before the existing ones."""
        self._prepend_hook("error_listeners", fn)

    def add_done_listener(self, fn: Callable[..., Any]) -> None:
        """Register a done listener after the existing ones."""
        self._append_hook("done_listeners", fn)

    def prepend_done_listener(self, fn: Callable[..., Any]) -> None:
        """Register a done listener before the existing ones."""
        self._prepend_hook("done_listeners", fn)

    def add_before_new_request_listener(self, fn: Callable[..., Any]) -> None:
        """Register a before-new-request listener after the existing ones."""
        self._append_hook("before_new_request_listeners", fn)

    def prepend_before_new_request_listener(self, fn: Callable[..., Any]) -> None:
        """Register a before-new-request listener before the existing ones."""
        self._prepend_hook("before_new_request_listeners", fn)


@dataclass
class RequestConfig(HookListeners):
    """Configuration of a single request.

    Fields left at None (or empty) are filled from the instance defaults when
    the request runs. The ``request``, ``response``, ``final_url``,
    ``concurrency`` and ``http_trace`` fields are outputs populated by the
    pipeline.
    """

    url: str = ""
    method: str = ""
    base_url: str = ""
    params: dict[str, str] | None = None
    query: Values | None = None
    body: Any = None
    headers: httpx.Headers | None = None
    timeout: float = 0.0
    context: Context | None = None
    client: httpx.Client | None = None
    adapter: "Adapter | None" = None
    transform_request: list[TransformRequest] | None = None
    transform_response: list[TransformResponse] | None = None
    request_interceptors: "list[RequestInterceptor] | None" = None
    response_interceptors: "list[ResponseInterceptor] | None" = None
    error_listeners: "list[ErrorListener] | None" = None
    done_listeners: "list[DoneListener] | None" = None
    before_new_request_listeners: "list[BeforeNewRequestListener] | None" = None
    enable_trace: bool | None = None

    # Outputs
    route: str = ""
    final_url: str = ""
    request: httpx.Request | None = field(default=None, repr=False)
    response: Response | None = field(default=None, repr=False)
    concurrency: int = 0
    http_trace: HTTPTrace | None = field(default=None, repr=False)

    _data: dict[str, Any] | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.headers is not None and not isinstance(self.headers, httpx.Headers):
            self.headers = httpx.Headers(self.headers)
        if self.query is not None and not isinstance(self.query, Values):
            self.query = Values(self.query)

    def set(self, key: str, value: Any) -> None:
        """Store a value in the side-channel data map."""
        if self._data is None:
            self._data = {}
        self._data[key] = value

    def lookup(self, key: str) -> tuple[Any, bool]:
        """Look up a side-channel value.

        Returns:
            Tuple of (value, present). Value is None when absent.
        """
        if self._data is None or key not in self._data:
            return None, False
        return self._data[key], True

    def get(self, key: str, default: Any = None) -> Any:
        """Get a side-channel value, or ``default`` when absent."""
        value, present = self.lookup(key)
        return value if present else default

    def get_string(self, key: str) -> str:
        """Get a side-channel string; empty string when absent or not a str."""
        value = self.get(key)
        return value if isinstance(value, str) else ""

    def get_bool(self, key: str) -> bool:
        """Get a side-channel bool; False when absent or not a bool."""
        value = self.get(key)
        return value if isinstance(value, bool) else False

    def get_int(self, key: str) -> int:
        """Get a side-channel int; 0 when absent or not an int."""
        value = self.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        return 0

    def add_query(self, key: str, value: str) -> "RequestConfig":
        """Append a query value."""
        if self.query is None:
            self.query = Values()
        self.query.add(key, value)
        return self

    def add_query_map(self, query: Mapping[str, str]) -> "RequestConfig":
        """Append every entry of a mapping to the query."""
        for key, value in query.items():
            self.add_query(key, value)
        return self

    def add_query_struct(self, value: Any) -> "RequestConfig":
        """Append the fields of a model, dataclass or mapping to the query.

        Raises:
            TypeError: If a field has an unsupported type.
        """
        return self.add_query_map(struct_to_map_string(value))

    def add_param(self, key: str, value: str) -> "RequestConfig":
        """Set a route parameter."""
        if self.params is None:
            self.params = {}
        self.params[key] = value
        return self

    def get_url(self) -> str:
        """Build the request URL from base URL, URL, params and query."""
        url, _ = build_url(self.base_url, self.url, self.params, self.query)
        return url

    def get_request_body(self) -> bytes | Any | None:
        """Run the request transforms over the body.

        Only POST, PUT and PATCH bodies are transformed; other methods and
        empty bodies yield None. Transforms may set headers on the config.

        Returns:
            Encoded bytes, a readable stream, or None.

        Raises:
            RequestDataTypeInvalidError: If the final value is neither bytes
                nor a readable stream.
        """
        method = (self.method or METHOD_GET).upper()
        if self.body is None or method not in BODY_METHODS:
            return None
        if self.headers is None:
            self.headers = httpx.Headers()

        transforms = (
            self.transform_request
            if self.transform_request is not None
            else DEFAULT_TRANSFORM_REQUEST
        )
        data = self.body
        for fn in transforms:
            data = fn(data, self.headers)

        if isinstance(data, bytes | bytearray):
            return bytes(data)
        if is_readable_stream(data):
            return data
        raise RequestDataTypeInvalidError(type(data).__name__)

    def curl(self) -> str:
        """Render the request as a one-line cURL command for debugging."""
        method = (self.method or METHOD_GET).upper()
        parts = [f"curl -X{method}"]

        body = self.get_request_body()
        if body is not None:
            raw = body if isinstance(body, bytes) else body.read()
            parts.append(f"-d '{raw.decode('utf-8', errors='replace')}'")

        if self.headers is not None:
            parts.extend(
                f"-H '{key.decode('latin-1')}:{value.decode('latin-1')}'"
                for key, value in self.headers.raw
            )

        parts.append(f"'{self.get_url()}'")
        return " ".join(parts)


Adapter = Callable[[RequestConfig], Response]
RequestInterceptor = Callable[[RequestConfig], None]
ResponseInterceptor = Callable[[Response], None]
ErrorListener = Callable[[BaseException, RequestConfig], BaseException | None]
DoneListener = Callable[[RequestConfig, Response | None, BaseException | None], None]
BeforeNewRequestListener = Callable[[RequestConfig], None]


class InstanceConfig(HookListeners, BaseModel):
    """Defaults shared by every request of an instance.

    ``max_concurrency``: negative disables all requests, zero means
    unlimited, positive caps the number of in-flight requests.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True, extra="forbid", validate_assignment=True
    )

    base_url: str = ""
    transform_request: list[TransformRequest] | None = None
    transform_response: list[TransformResponse] | None = None
    headers: httpx.Headers = Field(default_factory=httpx.Headers)
    timeout: float = Field(default=0.0, ge=0.0, description="Seconds, 0 = none")
    client: httpx.Client | None = None
    adapter: Adapter | None = None
    request_interceptors: list[RequestInterceptor] = Field(default_factory=list)
    response_interceptors: list[ResponseInterceptor] = Field(default_factory=list)
    error_listeners: list[ErrorListener] = Field(default_factory=list)
    done_listeners: list[DoneListener] = Field(default_factory=list)
    before_new_request_listeners: list[BeforeNewRequestListener] = Field(
        default_factory=list
    )
    enable_trace: bool = False
    max_concurrency: int = 0

    @field_validator("headers", mode="before")
    @classmethod
    def validate_headers(cls, v: Any) -> httpx.Headers:
        """Accept mappings or header lists and convert them to httpx.Headers."""
        return _coerce_headers(v)

    @classmethod
    def from_settings(cls, settings: CourierSettings) -> "InstanceConfig":
        """Build instance defaults from environment settings.

        Args:
            settings: Loaded settings.

        Returns:
            InstanceConfig with base URL, timeout, tracing and concurrency set.
        """
        headers: dict[str, str] = {}
        if settings.user_agent:
            headers["User-Agent"] = settings.user_agent
        return cls(
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
            enable_trace=settings.enable_trace,
            max_concurrency=settings.max_concurrency,
            headers=headers,
        )


def merge_config(config: RequestConfig, instance_config: InstanceConfig | None) -> None:
    """Fill the unset fields of a request config from instance defaults.

    Fields already set on the request config are never overwritten.
    Instance headers are appended to the request headers. Lists are copied
    so in-flight requests never mutate the instance config.

    Args:
        config: Per-call configuration, updated in place.
        instance_config: Instance defaults.
    """
    if config.headers is None:
        config.headers = httpx.Headers()
    if instance_config is None:
        return

    if config.enable_trace is None:
        config.enable_trace = instance_config.enable_trace
    if not config.base_url:
        config.base_url = instance_config.base_url
    if config.transform_request is None and instance_config.transform_request is not None:
        config.transform_request = list(instance_config.transform_request)
    if (
        config.transform_response is None
        and instance_config.transform_response is not None
    ):
        config.transform_response = list(instance_config.transform_response)
    config.headers = add_headers(config.headers, instance_config.headers)
    if not config.timeout:
        config.timeout = instance_config.timeout
    if config.client is None:
        config.client = instance_config.client
    if config.adapter is None:
        config.adapter = instance_config.adapter
    if config.request_interceptors is None:
        config.request_interceptors = list(instance_config.request_interceptors)
    if config.response_interceptors is None:
        config.response_interceptors = list(instance_config.response_interceptors)
    if config.error_listeners is None:
        config.error_listeners = list(instance_config.error_listeners)
    if config.done_listeners is None:
        config.done_listeners = list(instance_config.done_listeners)
    if config.before_new_request_listeners is None:
        config.before_new_request_listeners = list(
            instance_config.before_new_request_listeners
        )
