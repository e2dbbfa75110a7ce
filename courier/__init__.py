"""Courier: configurable HTTP request pipeline with interceptors and mocks."""

from courier.adapter import default_adapter
from courier.api import (
    delete,
    get,
    get_default_instance,
    head,
    options,
    patch,
    post,
    put,
    request,
    upload,
)
from courier.codec import json_marshal, json_unmarshal, set_json_marshal, set_json_unmarshal
from courier.config import InstanceConfig, RequestConfig, merge_config
from courier.constants import VERSION
from courier.context import Context, background
from courier.errors import (
    ContextCanceledError,
    CourierError,
    CourierFailure,
    DeadlineExceededError,
    DecodingError,
    EmptyResponseError,
    EncodingError,
    ErrorCategory,
    InvalidMethodError,
    MockRouteNotFoundError,
    MultipartFinalizedError,
    RequestDataTypeInvalidError,
    RequestForbiddenError,
    TooManyRequestsError,
    create_error,
    get_internal_error_category,
)
from courier.instance import Instance
from courier.multipart import MultipartFile
from courier.response import Response
from courier.stats import ResultKind, Stats, get_stats
from courier.trace import HTTPTrace, TraceStats
from courier.transform import (
    DEFAULT_TRANSFORM_REQUEST,
    DEFAULT_TRANSFORM_RESPONSE,
    convert_request_body,
    decode_brotli,
    decode_gzip,
)
from courier.transport import ResolvingBackend, TracingTransport
from courier.values import Values, map_to_values


__version__ = VERSION

__all__ = [
    "DEFAULT_TRANSFORM_REQUEST",
    "DEFAULT_TRANSFORM_RESPONSE",
    "Context",
    "ContextCanceledError",
    "CourierError",
    "CourierFailure",
    "DeadlineExceededError",
    "DecodingError",
    "EmptyResponseError",
    "EncodingError",
    "ErrorCategory",
    "HTTPTrace",
    "Instance",
    "InstanceConfig",
    "InvalidMethodError",
    "MockRouteNotFoundError",
    "MultipartFile",
    "MultipartFinalizedError",
    "RequestConfig",
    "RequestDataTypeInvalidError",
    "RequestForbiddenError",
    "ResolvingBackend",
    "Response",
    "ResultKind",
    "Stats",
    "TooManyRequestsError",
    "TraceStats",
    "TracingTransport",
    "Values",
    "background",
    "convert_request_body",
    "create_error",
    "decode_brotli",
    "decode_gzip",
    "default_adapter",
    "delete",
    "get",
    "get_default_instance",
    "get_internal_error_category",
    "get_stats",
    "head",
    "json_marshal",
    "json_unmarshal",
    "map_to_values",
    "merge_config",
    "options",
    "patch",
    "post",
    "put",
    "request",
    "set_json_marshal",
    "set_json_unmarshal",
    "upload",
]
