"""Error types for the request pipeline.

Every failure surfaced by an ``Instance`` is wrapped exactly once into a
``CourierError`` carrying the original cause, an HTTP-status-shaped code and
the request configuration that produced it.
"""

import errno
import socket
from enum import Enum
from typing import TYPE_CHECKING, Any

import httpx


if TYPE_CHECKING:
    from courier.config import RequestConfig


class ErrorCategory(str, Enum):
    """Classification of low-level network failures.

    - CANCELED: The request context was cancelled
    - TIMEOUT: A deadline or socket timeout expired
    - DNS: Host name resolution failed
    - ADDR: The address could not be used
    - ABORTED: The connection was aborted (ECONNABORTED)
    - REFUSED: The connection was refused (ECONNREFUSED)
    - RESET: The connection was reset by the peer (ECONNRESET)
    - UNKNOWN: Unclassified error
    """

    CANCELED = "canceled"
    TIMEOUT = "timeout"
    DNS = "dns"
    ADDR = "addr"
    ABORTED = "aborted"
    REFUSED = "refused"
    RESET = "reset"
    UNKNOWN = ""


class CourierFailure(Exception):  # noqa: N818
    """Base class for failures raised by the pipeline itself."""


class ContextError(CourierFailure):
    """Base class for context termination errors."""


class ContextCanceledError(ContextError):
    """Raised when the request context has been cancelled."""

    def __init__(self) -> None:
        super().__init__("context canceled")


class DeadlineExceededError(ContextError, TimeoutError):
    """Raised when the request context deadline has passed."""

    def __init__(self) -> None:
        super().__init__("context deadline exceeded")


class InvalidMethodError(CourierFailure):
    """Raised when the request method is not a valid HTTP token."""

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f'invalid method "{method}"')


class EncodingError(CourierFailure):
    """Raised when a request body cannot be encoded."""


class RequestDataTypeInvalidError(EncodingError):
    """Raised when the transformed request body is neither bytes nor a stream."""

    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        super().__init__(f"request data type is not supported: {type_name}")


class DecodingError(CourierFailure):
    """Raised when a response body cannot be decoded."""


class RequestForbiddenError(CourierFailure):
    """Raised when the instance is disabled (negative max concurrency)."""

    def __init__(self) -> None:
        super().__init__("request is forbidden")


class TooManyRequestsError(CourierFailure):
    """Raised when the in-flight count exceeds the instance cap."""

    def __init__(self, concurrency: int, max_concurrency: int) -> None:
        self.concurrency = concurrency
        self.max_concurrency = max_concurrency
        super().__init__(
            f"too many requests (concurrency {concurrency} > {max_concurrency})"
        )


class EmptyResponseError(CourierFailure):
    """Raised when an adapter returns no response and no error."""

    def __init__(self) -> None:
        super().__init__("adapter returned no response")


class MockRouteNotFoundError(CourierFailure):
    """Raised by a multi-route mock when no response is registered for a route."""

    def __init__(self, route: str) -> None:
        self.route = route
        super().__init__(f"no mock response registered for route: {route}")


class MultipartFinalizedError(CourierFailure):
    """Raised when a multipart body is finalized twice."""

    def __init__(self) -> None:
        super().__init__("multipart body already finalized")


class CourierError(Exception):
    """Structured error for a failed request.

    Attributes:
        code: HTTP-status-shaped code, 0 when no status was available.
        message: Message of the underlying error.
        err: The underlying error. Always set.
        config: Request configuration that produced the error.
    """

    def __init__(
        self,
        err: BaseException,
        config: "RequestConfig | None" = None,
        code: int = 0,
    ) -> None:
        """Initialize the error.

        Args:
            err: Underlying error.
            config: Request configuration of the failed call.
            code: HTTP-status-shaped code.
        """
        self.err = err
        self.config = config
        self.code = code
        self.message = str(err)
        super().__init__(str(self))

    def __str__(self) -> str:
        text = f"message={self.message}"
        if self.code != 0:
            text = f"code={self.code}, {text}"
        return text

    def timeout(self) -> bool:
        """Check whether the underlying cause is a deadline-class failure."""
        return isinstance(
            self.err, httpx.TimeoutException | TimeoutError | DeadlineExceededError
        )

    @property
    def category(self) -> ErrorCategory:
        """Network failure category of the underlying error."""
        return get_internal_error_category(self.err)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "route": self.config.route if self.config else None,
            "method": self.config.method if self.config else None,
        }


def create_error(
    err: BaseException,
    config: "RequestConfig | None" = None,
    code: int = 0,
) -> CourierError:
    """Wrap an error into a CourierError.

    Wrapping is idempotent: a CourierError is returned unchanged.

    Args:
        err: Error to wrap.
        config: Request configuration of the failed call.
        code: HTTP-status-shaped code.

    Returns:
        The structured error.
    """
    if isinstance(err, CourierError):
        return err
    return CourierError(err, config=config, code=code)


_ERRNO_CATEGORIES: dict[int, ErrorCategory] = {
    errno.ECONNREFUSED: ErrorCategory.REFUSED,
    errno.ECONNABORTED: ErrorCategory.ABORTED,
    errno.ECONNRESET: ErrorCategory.RESET,
    errno.ETIMEDOUT: ErrorCategory.TIMEOUT,
}


def _error_chain(err: BaseException) -> list[BaseException]:
    """Unwrap an error into itself followed by its causes."""
    chain: list[BaseException] = []
    seen: set[int] = set()
    current: BaseException | None = err
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        chain.append(current)
        if isinstance(current, CourierError):
            current = current.err
        else:
            current = current.__cause__ or current.__context__
    return chain


def get_internal_error_category(err: BaseException) -> ErrorCategory:
    """Classify a network-layer failure.

    Checks, in order: cancellation, timeouts, DNS failures, address
    errors, then the errno of the innermost OS error.

    Args:
        err: Error raised by the adapter or transport.

    Returns:
        The matching category, or ErrorCategory.UNKNOWN.
    """
    chain = _error_chain(err)

    if any(isinstance(e, ContextCanceledError) for e in chain):
        return ErrorCategory.CANCELED

    if any(
        isinstance(e, httpx.TimeoutException | DeadlineExceededError | socket.timeout)
        for e in chain
    ):
        return ErrorCategory.TIMEOUT

    if any(isinstance(e, socket.gaierror) for e in chain):
        return ErrorCategory.DNS

    if any(
        isinstance(e, httpx.InvalidURL | httpx.UnsupportedProtocol)
        or (isinstance(e, OSError) and e.errno == errno.EADDRNOTAVAIL)
        for e in chain
    ):
        return ErrorCategory.ADDR

    for e in chain:
        if isinstance(e, OSError) and e.errno in _ERRNO_CATEGORIES:
            return _ERRNO_CATEGORIES[e.errno]

    return ErrorCategory.UNKNOWN
