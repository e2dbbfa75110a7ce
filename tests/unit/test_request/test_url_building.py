"""Unit tests for URL joining, routes and templating."""

from courier.url import append_query, build_url, extract_route, substitute_params, url_join
from courier.values import Values


class TestUrlJoin:
    """Tests for url_join."""

    def test_empty_base(self) -> None:
        """Test that an empty base URL returns the URL unchanged."""
        assert url_join("", "/users") == "/users"

    def test_absolute_url_wins(self) -> None:
        """Test that absolute URLs ignore the base URL."""
        assert url_join("http://a", "https://b/x") == "https://b/x"
        assert url_join("http://a", "http://b/x") == "http://b/x"

    def test_duplicate_slash_collapsed(self) -> None:
        """Test that one duplicated slash at the seam is removed."""
        assert url_join("http://a/", "/x") == "http://a/x"

    def test_plain_concatenation(self) -> None:
        """Test joining without a shared slash."""
        assert url_join("http://a", "/x") == "http://a/x"
        assert url_join("http://a/", "x") == "http://a/x"


class TestRouteAndParams:
    """Tests for route extraction and placeholder substitution."""

    def test_extract_route(self) -> None:
        """Test that the route is the URL path with placeholders."""
        assert extract_route("http://a/users/:type?x=1") == "/users/:type"

    def test_substitute_params(self) -> None:
        """Test placeholder substitution."""
        url = substitute_params("/users/:type", {"type": "me"})

        assert url == "/users/me"

    def test_longer_names_first(self) -> None:
        """Test that :id does not clobber :idx."""
        url = substitute_params("/a/:idx/:id", {"id": "1", "idx": "2"})

        assert url == "/a/2/1"

    def test_no_params(self) -> None:
        """Test that missing params leave the URL unchanged."""
        assert substitute_params("/a/:id", None) == "/a/:id"


class TestQuery:
    """Tests for query appending."""

    def test_append_with_question_mark(self) -> None:
        """Test appending to a URL without a query."""
        assert append_query("/a", Values({"x": "1"})) == "/a?x=1"

    def test_append_with_ampersand(self) -> None:
        """Test appending to a URL that already has a query."""
        assert append_query("/a?y=2", Values({"x": "1"})) == "/a?y=2&x=1"

    def test_empty_query(self) -> None:
        """Test that an empty query appends nothing."""
        assert append_query("/a", Values()) == "/a"
        assert append_query("/a", None) == "/a"


class TestBuildUrl:
    """Tests for build_url."""

    def test_full_build(self) -> None:
        """Test base URL, params and query together."""
        url, route = build_url(
            "https://aslant.site/",
            "/users/:type",
            {"type": "me"},
            Values({"a": ["1", "2"]}),
        )

        assert url == "https://aslant.site/users/me?a=1&a=2"
        assert route == "/users/:type"
