"""Metrics collection for requests sent by instances."""

from dataclasses import dataclass, field
from threading import Lock

from courier.errors import ErrorCategory


# Module-level singleton state
_metrics_instance: "RequestMetrics | None" = None
_metrics_lock: Lock = Lock()


@dataclass
class RequestMetrics:
    """Thread-safe request metrics.

    Tracks request counts per status, received bytes, failures per category,
    rejected requests and total duration. Use get_instance() for singleton
    access.
    """

    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    requests_total: dict[int, int] = field(default_factory=dict)
    failures_total: dict[str, int] = field(default_factory=dict)
    rejected_total: int = 0
    bytes_total: int = 0
    duration_ms_total: float = 0.0
    request_count: int = 0

    @classmethod
    def get_instance(cls) -> "RequestMetrics":
        """Get the singleton instance (thread-safe).

        Returns:
            The shared RequestMetrics instance.
        """
        global _metrics_instance  # noqa: PLW0603
        if _metrics_instance is None:
            with _metrics_lock:
                if _metrics_instance is None:
                    _metrics_instance = cls()
        return _metrics_instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton instance (for testing)."""
        global _metrics_instance  # noqa: PLW0603
        with _metrics_lock:
            _metrics_instance = None

    def record_request(self, status: int, bytes_received: int, duration_ms: float) -> None:
        """Record a finished request.

        Args:
            status: HTTP status code, 0 when no response was received.
            bytes_received: Size of the response body.
            duration_ms: Duration in milliseconds.
        """
        with self._lock:
            self.requests_total[status] = self.requests_total.get(status, 0) + 1
            self.bytes_total += bytes_received
            self.duration_ms_total += duration_ms
            self.request_count += 1

    def record_failure(self, category: ErrorCategory) -> None:
        """Record a failed request.

        Args:
            category: Network category of the failure (UNKNOWN counts as "unknown").
        """
        key = category.value or "unknown"
        with self._lock:
            self.failures_total[key] = self.failures_total.get(key, 0) + 1

    def record_rejected(self) -> None:
        """Record a request rejected by admission control."""
        with self._lock:
            self.rejected_total += 1

    @property
    def avg_duration_ms(self) -> float:
        """Average request duration in milliseconds."""
        with self._lock:
            if self.request_count == 0:
                return 0.0
            return self.duration_ms_total / self.request_count

    def to_dict(self) -> dict[str, int | float | dict[str, int] | dict[int, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary representation of metrics.
        """
        avg = self.avg_duration_ms
        with self._lock:
            return {
                "requests_total": dict(self.requests_total),
                "failures_total": dict(self.failures_total),
                "rejected_total": self.rejected_total,
                "bytes_total": self.bytes_total,
                "duration_ms_total": self.duration_ms_total,
                "avg_duration_ms": avg,
            }
