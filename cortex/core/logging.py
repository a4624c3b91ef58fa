"""Logging and observability configuration using Pydantic Logfire.

This module provides standardized logging utilities and configuration.
All modules should use Python's standard logging library (logging.getLogger(__name__)),
and Logfire will automatically capture and enrich these logs.

Standard usage:
    import logging
    logger = logging.getLogger(__name__)
    logger.info("Message", extra={"key": "value"})

Structured logging utilities:
    log_with_owner_context(logger, "info", "Task moved", owner_id="123", task_id="abc")
"""

import logging

import logfire
from fastapi import FastAPI

from cortex.core.config import settings


def configure_logfire() -> None:
    """Configure Pydantic Logfire with token from environment.

    Automatically integrates with Python's standard logging to capture all log records.

    Raises:
        ValueError: If running in production without a Logfire token
    """
    if settings.is_production:
        settings.require_credential("logfire_token", "Logfire")

    logfire.configure(
        token=settings.logfire_token,
        service_name="cortex",
        service_version="0.1.0",
        environment=settings.environment,
        send_to_logfire="if-token-present",
    )

    logger = logging.getLogger(__name__)
    logger.info("Logfire configured successfully")


def instrument_fastapi(app: FastAPI) -> None:
    """Add Logfire instrumentation to FastAPI application."""
    logfire.instrument_fastapi(app)
    logger = logging.getLogger(__name__)
    logger.info("FastAPI instrumentation configured")


def span(name: str) -> logfire.LogfireSpan:
    """Create a custom span for service layer functions.

    Usage:
        with span("task_service.move_task"):
            # Your service logic here
            pass
    """
    return logfire.span(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: object,
) -> None:
    """Log a message with structured context fields.

    Args:
        logger: Logger instance to use
        level: Log level ("debug", "info", "warning", "error", "critical")
        message: Log message
        **context: Additional context fields (owner_id, task_id, operation, etc.)

    Usage:
        log_with_context(logger, "info", "Conditional resolved", conditional_id="123", action="postpone")
    """
    log_method = getattr(logger, level.lower())
    log_method(message, extra=context)


def log_with_owner_context(
    logger: logging.Logger,
    level: str,
    message: str,
    owner_id: str | None = None,
    **extra: object,
) -> None:
    """Log a message with owner context.

    Args:
        logger: Logger instance to use
        level: Log level ("debug", "info", "warning", "error", "critical")
        message: Log message
        owner_id: Owning account ID to include in context
        **extra: Additional context fields

    Usage:
        log_with_owner_context(logger, "info", "Unlock recorded", owner_id="123", achievement_id="consistent")
    """
    context = {"owner_id": owner_id, **extra} if owner_id else extra
    log_with_context(logger, level, message, **context)
