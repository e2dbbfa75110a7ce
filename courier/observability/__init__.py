"""Observability module for logging and metrics."""

from courier.observability.logging import (
    bind_request_context,
    clear_request_context,
    configure_logging,
)
from courier.observability.metrics import RequestMetrics


__all__ = [
    "RequestMetrics",
    "bind_request_context",
    "clear_request_context",
    "configure_logging",
]
