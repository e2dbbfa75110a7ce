"""Request and response body transform pipelines.

Request transforms turn an arbitrary body into bytes (or a readable stream)
and may set a Content-Type. Response transforms post-process the raw response
bytes, e.g. decompression.
"""

import gzip
import zlib
from collections.abc import Callable
from typing import Any

import brotli
import httpx

from courier.codec import json_marshal
from courier.constants import (
    BROTLI_ENCODING,
    CONTENT_TYPE_JSON,
    CONTENT_TYPE_WWW_FORM_URLENCODED,
    GZIP_ENCODING,
    HEADER_CONTENT_ENCODING,
    HEADER_CONTENT_LENGTH,
    HEADER_CONTENT_TYPE,
)
from courier.errors import DecodingError, EncodingError
from courier.values import Values


TransformRequest = Callable[[Any, httpx.Headers], Any]
TransformResponse = Callable[[bytes, httpx.Headers], bytes]


def is_readable_stream(value: Any) -> bool:
    """Check if a value is a readable binary stream."""
    return callable(getattr(value, "read", None))


def set_content_type_if_unset(headers: httpx.Headers, value: str) -> None:
    """Set the Content-Type header unless the caller already set one."""
    if not headers.get(HEADER_CONTENT_TYPE):
        headers[HEADER_CONTENT_TYPE] = value


def convert_request_body(data: Any, headers: httpx.Headers) -> Any:
    """Default request body encoder.

    - bytes-like: passed through as bytes
    - str: UTF-8 encoded
    - Values: URL-encoded form, form Content-Type
    - readable stream: passed through
    - anything else: JSON, JSON Content-Type

    Args:
        data: Request body.
        headers: Request headers, updated with a Content-Type if unset.

    Returns:
        Encoded body.

    Raises:
        EncodingError: If JSON serialization fails.
    """
    if isinstance(data, bytes | bytearray | memoryview):
        return bytes(data)
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, Values):
        set_content_type_if_unset(headers, CONTENT_TYPE_WWW_FORM_URLENCODED)
        return data.encode().encode("utf-8")
    if is_readable_stream(data):
        return data

    try:
        body = json_marshal(data)
    except Exception as e:
        msg = f"Failed to encode request body as JSON: {e}"
        raise EncodingError(msg) from e
    set_content_type_if_unset(headers, CONTENT_TYPE_JSON)
    return body


def create_encoding_transform(
    encoding: str,
    decompress: Callable[[bytes], bytes],
) -> TransformResponse:
    """Create a response transform that decodes one content encoding.

    The transform is a no-op unless the Content-Encoding header equals
    ``encoding`` (case-insensitive). On success it removes the
    Content-Encoding and Content-Length headers.

    Args:
        encoding: Content-Encoding token handled by the transform.
        decompress: Function decoding the raw body.

    Returns:
        Response transform function.
    """

    def transform(body: bytes, headers: httpx.Headers) -> bytes:
        if headers.get(HEADER_CONTENT_ENCODING, "").lower() != encoding.lower():
            return body
        try:
            data = decompress(body)
        except (OSError, EOFError, zlib.error, brotli.error) as e:
            msg = f"Failed to decode {encoding} response body: {e}"
            raise DecodingError(msg) from e
        del headers[HEADER_CONTENT_ENCODING]
        if HEADER_CONTENT_LENGTH in headers:
            del headers[HEADER_CONTENT_LENGTH]
        return data

    transform.__name__ = f"decode_{encoding}"
    return transform


decode_gzip = create_encoding_transform(GZIP_ENCODING, gzip.decompress)
decode_brotli = create_encoding_transform(BROTLI_ENCODING, brotli.decompress)

DEFAULT_TRANSFORM_REQUEST: tuple[TransformRequest, ...] = (convert_request_body,)
DEFAULT_TRANSFORM_RESPONSE: tuple[TransformResponse, ...] = (
    decode_gzip,
    decode_brotli,
)
