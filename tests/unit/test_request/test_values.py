"""Unit tests for multi-value query mappings."""

from courier.values import Values, map_to_values


class TestValues:
    """Tests for the Values mapping."""

    def test_add_keeps_insertion_order(self) -> None:
        """Test that values for one key keep their order."""
        values = Values()
        values.add("a", "2")
        values.add("a", "1")

        assert values["a"] == ["2", "1"]

    def test_init_accepts_single_and_multiple(self) -> None:
        """Test construction from strings and lists."""
        values = Values({"a": "1", "b": ["2", "3"]})

        assert values["a"] == ["1"]
        assert values["b"] == ["2", "3"]

    def test_set_replaces(self) -> None:
        """Test that set replaces all values."""
        values = Values({"a": ["1", "2"]})
        values.set("a", "3")

        assert values["a"] == ["3"]

    def test_get_first(self) -> None:
        """Test first-value lookup with default."""
        values = Values({"a": ["1", "2"]})

        assert values.get_first("a") == "1"
        assert values.get_first("missing") == ""
        assert values.get_first("missing", "x") == "x"

    def test_delete(self) -> None:
        """Test deleting present and missing keys."""
        values = Values({"a": "1"})
        values.delete("a")
        values.delete("missing")

        assert "a" not in values

    def test_encode_sorts_keys(self) -> None:
        """Test that encoding sorts keys and keeps per-key order."""
        values = Values()
        values.add("b", "3")
        values.add("a", "1")
        values.add("a", "2")

        assert values.encode() == "a=1&a=2&b=3"

    def test_encode_escapes(self) -> None:
        """Test that keys and values are form-escaped."""
        values = Values({"q": "a b&c", "k y": "/"})

        assert values.encode() == "k+y=%2F&q=a+b%26c"

    def test_encode_empty(self) -> None:
        """Test that empty values encode to an empty string."""
        assert Values().encode() == ""


class TestMapToValues:
    """Tests for map_to_values."""

    def test_converts_mapping(self) -> None:
        """Test converting a flat mapping."""
        values = map_to_values({"a": "1", "b": ""})

        assert values == {"a": ["1"], "b": [""]}

    def test_omit_empty(self) -> None:
        """Test that empty strings are skipped when requested."""
        values = map_to_values({"a": "1", "b": ""}, omit_empty=True)

        assert values == {"a": ["1"]}
