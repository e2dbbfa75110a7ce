"""URL construction: base URL joining, route extraction, templating."""

from collections.abc import Mapping
from urllib.parse import urlsplit

from courier.values import Values


_ABSOLUTE_PREFIXES = ("http://", "https://")


def url_join(base_url: str, url: str) -> str:
    """Join a base URL and a request URL.

    An absolute ``url`` or an empty ``base_url`` returns ``url`` unchanged.
    A slash duplicated at the seam is collapsed once.

    Args:
        base_url: Base URL, e.g. ``http://a/``.
        url: Relative or absolute request URL.

    Returns:
        Joined URL.
    """
    if not base_url or url.startswith(_ABSOLUTE_PREFIXES):
        return url
    if base_url.endswith("/") and url.startswith("/"):
        return base_url + url[1:]
    return base_url + url


def extract_route(url: str) -> str:
    """Get the path component of a URL, used as a stable routing key."""
    return urlsplit(url).path


def substitute_params(url: str, params: Mapping[str, str] | None) -> str:
    """Replace ``:name`` placeholders with their parameter values.

    Longer names are substituted first so that ``:id`` never clobbers
    ``:idx``.

    Args:
        url: URL containing placeholders.
        params: Mapping of placeholder name to value.

    Returns:
        URL with placeholders replaced.
    """
    if not params:
        return url
    for key in sorted(params, key=len, reverse=True):
        url = url.replace(f":{key}", params[key])
    return url


def append_query(url: str, query: Values | None) -> str:
    """Append an encoded query string to a URL.

    Uses ``&`` when the URL already has a query, ``?`` otherwise.
    An empty query leaves the URL unchanged.
    """
    if not query:
        return url
    encoded = query.encode()
    if not encoded:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{encoded}"


def build_url(
    base_url: str,
    url: str,
    params: Mapping[str, str] | None = None,
    query: Values | None = None,
) -> tuple[str, str]:
    """Build the final request URL and its route.

    Args:
        base_url: Base URL.
        url: Relative or absolute request URL.
        params: Placeholder values.
        query: Query values.

    Returns:
        Tuple of (final URL, route).
    """
    joined = url_join(base_url, url)
    route = extract_route(joined)
    final_url = append_query(substitute_params(joined, params), query)
    return final_url, route
