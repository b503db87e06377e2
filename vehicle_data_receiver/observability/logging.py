"""
Structured Logging Configuration with structlog
"""

import logging
import sys
from typing import Any, Dict, Optional

import structlog

# Chatty third-party loggers kept at WARNING unless DEBUG is requested
_NOISY_LOGGERS = ("httpx", "httpcore", "psycopg")


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    service_name: str = "vehicle-data-receiver",
) -> None:
    """
    Configure structlog for the receiver

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format ("json" for production, "console" for development)
        service_name: Bound to every log line as "service"
    """
    level = getattr(logging, log_level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=True)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if level == logging.DEBUG else logging.WARNING)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service=service_name)


def log_retry_outcome(
    logger: structlog.stdlib.BoundLogger,
    failed_event_id: int,
    handler_name: str,
    imei: str,
    outcome: str,
    attempt_count: int,
    duration_ms: float,
    error: Optional[str] = None,
) -> None:
    """
    Log the outcome of reprocessing one failed event

    Args:
        logger: Structlog logger
        failed_event_id: Failed event ID
        handler_name: Handler the event was dispatched to
        imei: Device IMEI
        outcome: succeeded, failed, timeout, unknown_handler, decode_error, vanished
        attempt_count: Failed attempts recorded before this retry
        duration_ms: Time spent on the retry in milliseconds
        error: Error message if the retry did not succeed
    """
    log_data: Dict[str, Any] = {
        "event": "failed_event_retried" if outcome == "succeeded" else "failed_event_retry_failed",
        "failed_event_id": failed_event_id,
        "handler_name": handler_name,
        "imei": imei,
        "outcome": outcome,
        "attempt_count": attempt_count,
        "duration_ms": round(duration_ms, 2),
    }

    if error:
        log_data["error"] = error

    if outcome == "succeeded":
        logger.info(**log_data)
    elif outcome in ("decode_error", "unknown_handler"):
        logger.error(**log_data)
    else:
        logger.warning(**log_data)
