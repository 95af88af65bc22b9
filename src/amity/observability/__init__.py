"""Observability for Amity.

Structured logging with correlation context:
- JSON formatter for log aggregation
- Console formatter for development
- Correlation key / requester context propagated via contextvars
"""

from amity.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    configure_logging,
    correlation_key_var,
    requester_id_var,
)

__all__ = [
    "ConsoleFormatter",
    "JsonFormatter",
    "LogContext",
    "configure_logging",
    "correlation_key_var",
    "requester_id_var",
]
