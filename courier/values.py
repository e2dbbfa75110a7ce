"""Ordered multi-value mapping for query strings and form bodies."""

from collections.abc import Iterable, Mapping
from urllib.parse import quote_plus


class Values(dict[str, list[str]]):
    """Mapping of a key to an ordered list of string values.

    Used both for URL query strings and for URL-encoded form bodies.
    Values for one key keep their insertion order; ``encode`` sorts
    the keys so the output is stable.
    """

    def __init__(
        self,
        data: Mapping[str, str | Iterable[str]] | None = None,
    ) -> None:
        """Initialize the values.

        Args:
            data: Optional mapping of key to a single value or a list of values.
        """
        super().__init__()
        if data:
            for key, value in data.items():
                if isinstance(value, str):
                    self.add(key, value)
                else:
                    for item in value:
                        self.add(key, item)

    def add(self, key: str, value: str) -> None:
        """Append a value to a key, keeping existing values."""
        self.setdefault(key, []).append(value)

    def set(self, key: str, value: str) -> None:
        """Replace all values of a key with a single value."""
        self[key] = [value]

    def get_first(self, key: str, default: str = "") -> str:
        """Get the first value of a key.

        Args:
            key: The key to look up.
            default: Value returned when the key is absent or empty.

        Returns:
            The first value stored for the key.
        """
        values = super().get(key)
        if not values:
            return default
        return values[0]

    def delete(self, key: str) -> None:
        """Remove a key and all its values if present."""
        self.pop(key, None)

    def encode(self) -> str:
        """Encode the values in URL-encoded form, sorted by key.

        Returns:
            String such as ``a=1&a=2&b=3``.
        """
        parts: list[str] = []
        for key in sorted(self):
            escaped_key = quote_plus(key)
            parts.extend(
                f"{escaped_key}={quote_plus(value)}" for value in self[key]
            )
        return "&".join(parts)


def map_to_values(data: Mapping[str, str], omit_empty: bool = False) -> Values:
    """Convert a flat string mapping to Values.

    Args:
        data: Mapping of key to value.
        omit_empty: If True, skip keys whose value is an empty string.

    Returns:
        Values with one entry per key.
    """
    values = Values()
    for key, value in data.items():
        if omit_empty and value == "":
            continue
        values.add(key, value)
    return values
