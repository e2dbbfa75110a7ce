"""Swappable JSON marshal/unmarshal functions.

The defaults serialize pydantic models, dataclasses and plain containers
compactly and validate decoded JSON against a target type with pydantic.
"""

from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import TypeAdapter
from pydantic_core import to_json


T = TypeVar("T")

JSONMarshal = Callable[[Any], bytes]
JSONUnmarshal = Callable[[bytes, Any], Any]


def default_json_marshal(value: Any) -> bytes:
    """Serialize a value to compact JSON bytes.

    Args:
        value: Pydantic model, dataclass, or JSON-compatible value.

    Returns:
        JSON-encoded bytes such as ``{"name":"n","count":10}``.
    """
    return to_json(value, by_alias=True)


def default_json_unmarshal(data: bytes, target: type[T]) -> T:
    """Decode JSON bytes into an instance of ``target``.

    Args:
        data: JSON-encoded bytes.
        target: Type to validate against (``Any`` for plain JSON values).

    Returns:
        The decoded and validated value.
    """
    return TypeAdapter(target).validate_json(data)


_json_marshal: JSONMarshal = default_json_marshal
_json_unmarshal: JSONUnmarshal = default_json_unmarshal


def set_json_marshal(fn: JSONMarshal) -> None:
    """Replace the JSON marshal function used for request bodies."""
    global _json_marshal  # noqa: PLW0603
    _json_marshal = fn


def set_json_unmarshal(fn: JSONUnmarshal) -> None:
    """Replace the JSON unmarshal function used for response bodies."""
    global _json_unmarshal  # noqa: PLW0603
    _json_unmarshal = fn


def json_marshal(value: Any) -> bytes:
    """Serialize a value with the current marshal function."""
    return _json_marshal(value)


def json_unmarshal(data: bytes, target: Any = Any) -> Any:
    """Decode bytes with the current unmarshal function."""
    return _json_unmarshal(data, target)
