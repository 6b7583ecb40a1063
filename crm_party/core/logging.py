"""Structured logging module for crm-party.

Provides JSON-formatted structured logging using structlog.

Patterns applied:
- Singleton _configured flag prevents reconfiguration
- configure_logging() called ONCE at startup, by the application factory
- get_logger() never configures; it returns a lazy proxy
- Underscore-prefix for unused structlog params
- JSON output via JSONRenderer
- trace_id / span_id taken from the active OpenTelemetry span
"""

import sys
from typing import Any, TextIO

import structlog
from opentelemetry import trace
from structlog._config import BoundLoggerLazyProxy
from structlog.types import EventDict


# =============================================================================
# Singleton Configuration State
# =============================================================================
_configured: bool = False


# =============================================================================
# Custom Processors
# =============================================================================
def add_trace_context(
    _logger: object, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add trace and span IDs to the log event when a span is active.

    With the no-op tracer the current span context is invalid and nothing
    is added.

    Args:
        _logger: Logger instance (unused - required by structlog interface).
        _method_name: Method name (unused).
        event_dict: Event dictionary to process.

    Returns:
        Event dictionary with trace_id and span_id added if available.
    """
    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        event_dict["trace_id"] = format(span_context.trace_id, "032x")
        event_dict["span_id"] = format(span_context.span_id, "016x")
    return event_dict


def _level_to_int(level: str) -> int:
    """Convert log level string to integer.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).

    Returns:
        Integer log level for structlog filtering.
    """
    levels = {
        "DEBUG": 10,
        "INFO": 20,
        "WARNING": 30,
        "ERROR": 40,
        "CRITICAL": 50,
    }
    return levels.get(level.upper(), 20)


# =============================================================================
# Singleton Configuration
# =============================================================================
def configure_logging(
    level: str = "INFO",
    stream: TextIO | None = None,
    force: bool = False,
) -> None:
    """Configure structlog ONCE at application startup.

    Subsequent calls are no-ops unless force=True (for testing).

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        stream: Output stream. Defaults to sys.stdout.
        force: Force reconfiguration (for testing only).
    """
    global _configured

    if _configured and not force:
        return

    processors: list[structlog.types.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
        add_trace_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_level_to_int(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stdout),
        cache_logger_on_first_use=False,
    )

    _configured = True


def reset_logging() -> None:
    """Reset configuration state for test isolation.

    Only use in tests to allow reconfiguration between tests.
    """
    global _configured
    _configured = False


def get_logger(name: str) -> Any:
    """Get a logger by name.

    The logger is a lazy proxy: processors, level filter and output stream
    are read from the structlog configuration current at each call, so
    module-level loggers follow a later configure_logging().

    Args:
        name: Logger name (typically __name__ of the module).

    Returns:
        structlog lazy logger proxy carrying ``logger=name``.
    """
    return BoundLoggerLazyProxy(
        None, initial_values={"logger": name}, logger_factory_args=()
    )
