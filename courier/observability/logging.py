"""Structured logging setup for request events.

Courier logs through structlog. ``configure_logging`` installs a processor
chain that masks credentials in every event, whoever emitted it, so URLs and
header maps bound by callers are as safe to log as the pipeline's own.
"""

import logging
import sys
from collections.abc import Mapping, MutableMapping
from typing import Any, TextIO

import structlog

from courier.constants import VERSION
from courier.redact import redact_headers, redact_url_credentials


# Event fields that may carry a URL with credentials
URL_FIELDS = ("url", "final_url", "base_url", "redirect_url")

# Stdlib loggers of the transport, which log every request at INFO
TRANSPORT_LOGGERS = ("httpx", "httpcore")


def redact_event(
    _: Any, __: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask URL credentials and sensitive header values in an event."""
    for key in URL_FIELDS:
        value = event_dict.get(key)
        if isinstance(value, str):
            event_dict[key] = redact_url_credentials(value)

    headers = event_dict.get("headers")
    if isinstance(headers, Mapping):
        event_dict["headers"] = redact_headers(
            (str(name), str(value)) for name, value in headers.items()
        )
    return event_dict


def add_library_version(
    _: Any, __: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Tag events of the request pipeline with the library version."""
    if event_dict.get("component") == "courier":
        event_dict.setdefault("courier_version", VERSION)
    return event_dict


def configure_logging(
    level: int = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = True,
    transport_level: int = logging.WARNING,
) -> None:
    """Configure structured logging for request events.

    Args:
        level: Level of courier events (default: INFO).
        output: Output stream (default: stderr).
        json_format: Render JSON lines instead of console output.
        transport_level: Level of the httpx/httpcore stdlib loggers. Their
            per-request INFO lines repeat ``request_complete``, so they stay
            quiet unless asked for.
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_library_version,
        redact_event,
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(format="%(name)s %(message)s", stream=output, level=level)
    for name in TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(max(level, transport_level))


def bind_request_context(**values: str) -> None:
    """Bind values, e.g. a caller trace id, to every following event."""
    structlog.contextvars.bind_contextvars(**values)


def clear_request_context(*keys: str) -> None:
    """Remove values bound with ``bind_request_context``."""
    structlog.contextvars.unbind_contextvars(*keys)
