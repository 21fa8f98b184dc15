"""
Logging configuration module for the banana API service.

Provides centralized structlog setup with consistent formatting across the
application. Request IDs are carried in structlog context variables so every
log line emitted while serving a request is tagged with it.
"""

import logging
import sys
from typing import Any, Optional
from uuid import uuid4

import structlog

MAX_LOGGED_VALUE_LENGTH = 200


def setup_logging(
    log_level: str = "INFO",
    service_name: str = "grafana-banana-api",
    use_json: bool = True,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Supports both JSON structured logging for production and human-readable
    console output for development.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        service_name: Name of the service, attached to every event
        use_json: Use JSON rendering instead of console rendering
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    renderer: Any
    if use_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    def add_service_name(_logger: Any, _method: str, event_dict: dict) -> dict:
        event_dict.setdefault("service", service_name)
        return event_dict

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_service_name,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("opentelemetry").setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> Any:
    """
    Get a structlog logger for a specific module.

    Args:
        name: Name for the logger (typically __name__ of the module)
    """
    return structlog.get_logger(name or "grafana-banana-api")


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Bind a request ID to the logging context.

    Args:
        request_id: Request ID to set, generates new UUID if None

    Returns:
        The request ID that was set
    """
    if request_id is None:
        request_id = str(uuid4())
    structlog.contextvars.bind_contextvars(request_id=request_id)
    return request_id


def get_request_id() -> Optional[str]:
    """Return the request ID bound to the current context, if any."""
    return structlog.contextvars.get_contextvars().get("request_id")


def clear_request_id() -> None:
    """Remove the request ID from the logging context."""
    structlog.contextvars.unbind_contextvars("request_id")


def sanitize_for_logging(value: Optional[str]) -> str:
    """
    Make a caller-supplied value safe to write into a log line.

    Carriage returns are removed and newlines become spaces so a value cannot
    forge extra log records. Long values are cut to MAX_LOGGED_VALUE_LENGTH
    characters followed by "...".

    Args:
        value: Raw value taken from the request

    Returns:
        Sanitized copy of the value
    """
    if value is None or not value.strip():
        return ""

    sanitized = value.replace("\r", "").replace("\n", " ")

    if len(sanitized) > MAX_LOGGED_VALUE_LENGTH:
        sanitized = sanitized[:MAX_LOGGED_VALUE_LENGTH] + "..."

    return sanitized
