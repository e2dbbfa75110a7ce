"""Package-level request functions backed by a shared default instance.

The default instance is built lazily from ``COURIER_*`` settings (60 second
timeout unless configured otherwise).
"""

from threading import Lock
from typing import Any

from courier.config import InstanceConfig, RequestConfig
from courier.instance import Instance, Query
from courier.multipart import MultipartFile
from courier.response import Response
from courier.settings import get_settings


_default_instance: Instance | None = None
_default_lock = Lock()


def get_default_instance() -> Instance:
    """Get the shared default instance, creating it on first use."""
    global _default_instance  # noqa: PLW0603
    if _default_instance is None:
        with _default_lock:
            if _default_instance is None:
                config = InstanceConfig.from_settings(get_settings())
                _default_instance = Instance(config)
    return _default_instance


def reset_default_instance() -> None:
    """Drop the shared default instance (for testing)."""
    global _default_instance  # noqa: PLW0603
    with _default_lock:
        _default_instance = None


def request(config: RequestConfig) -> Response:
    """Run a request through the default instance."""
    return get_default_instance().request(config)


def get(url: str, query: Query = None) -> Response:
    """Send a GET request with the default instance."""
    return get_default_instance().get(url, query)


def delete(url: str, query: Query = None) -> Response:
    """Send a DELETE request with the default instance."""
    return get_default_instance().delete(url, query)


def head(url: str, query: Query = None) -> Response:
    """Send a HEAD request with the default instance."""
    return get_default_instance().head(url, query)


def options(url: str, query: Query = None) -> Response:
    """Send an OPTIONS request with the default instance."""
    return get_default_instance().options(url, query)


def post(url: str, data: Any = None, query: Query = None) -> Response:
    """Send a POST request with the default instance."""
    return get_default_instance().post(url, data, query)


def put(url: str, data: Any = None, query: Query = None) -> Response:
    """Send a PUT request with the default instance."""
    return get_default_instance().put(url, data, query)


def patch(url: str, data: Any = None, query: Query = None) -> Response:
    """Send a PATCH request with the default instance."""
    return get_default_instance().patch(url, data, query)


def upload(url: str, file: MultipartFile, query: Query = None) -> Response:
    """POST a multipart body with the default instance."""
    return get_default_instance().upload(url, file, query)
