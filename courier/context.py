"""Cancellation and deadline tokens threaded through a request.

A ``Context`` carries an optional deadline and a cancellation flag. Child
contexts derived with ``with_timeout`` or ``with_cancel`` are bounded by
their parent: the child deadline never extends past the parent's, and
cancelling a parent cancels every child. Contexts are context managers;
leaving the ``with`` block cancels (releases) the context.
"""

import threading
import time
from types import TracebackType

from courier.errors import ContextCanceledError, ContextError, DeadlineExceededError


class Context:
    """Cancellation/deadline token for a request."""

    def __init__(
        self,
        parent: "Context | None" = None,
        deadline: float | None = None,
    ) -> None:
        """Initialize the context.

        Args:
            parent: Parent context whose cancellation and deadline apply.
            deadline: Absolute deadline on the ``time.monotonic`` clock.
        """
        self._parent = parent
        if parent is not None and parent.deadline is not None:
            deadline = (
                parent.deadline if deadline is None else min(deadline, parent.deadline)
            )
        self._deadline = deadline
        self._cancelled = threading.Event()

    @property
    def deadline(self) -> float | None:
        """Absolute deadline on the monotonic clock, or None if unbounded."""
        return self._deadline

    def with_cancel(self) -> "Context":
        """Derive a cancellable child context with the same deadline."""
        return Context(parent=self)

    def with_deadline(self, deadline: float) -> "Context":
        """Derive a child context bounded by an absolute monotonic deadline."""
        return Context(parent=self, deadline=deadline)

    def with_timeout(self, seconds: float) -> "Context":
        """Derive a child context that expires after ``seconds``."""
        return self.with_deadline(time.monotonic() + seconds)

    def cancel(self) -> None:
        """Cancel the context. Idempotent."""
        self._cancelled.set()

    def remaining(self) -> float | None:
        """Seconds left before the deadline, clamped at zero.

        Returns:
            Remaining seconds, or None when there is no deadline.
        """
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def err(self) -> ContextError | None:
        """Return why the context is done, or None if it is still active.

        Explicit cancellation (here or on a parent) wins over an expired
        deadline.
        """
        if self._is_cancelled():
            return ContextCanceledError()
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return DeadlineExceededError()
        return None

    def done(self) -> bool:
        """Check whether the context is cancelled or past its deadline."""
        return self.err() is not None

    def raise_for_err(self) -> None:
        """Raise the context error if the context is done.

        Raises:
            ContextCanceledError: If the context was cancelled.
            DeadlineExceededError: If the deadline has passed.
        """
        error = self.err()
        if error is not None:
            raise error

    def _is_cancelled(self) -> bool:
        ctx: Context | None = self
        while ctx is not None:
            if ctx._cancelled.is_set():  # noqa: SLF001
                return True
            ctx = ctx._parent  # noqa: SLF001
        return False

    def __enter__(self) -> "Context":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cancel()


class _BackgroundContext(Context):
    """Root context. Cancelling it is a no-op."""

    def cancel(self) -> None:
        return None


_BACKGROUND = _BackgroundContext()


def background() -> Context:
    """Get the root context: never cancelled, no deadline."""
    return _BACKGROUND
