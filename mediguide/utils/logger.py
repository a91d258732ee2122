"""
Structured logging for the API server.
Every record is emitted as one JSON object carrying the request id of the
HTTP request that produced it.
"""

import logging
import json
from typing import Any
from contextvars import ContextVar

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

# Chatty client libraries that would otherwise log every outbound call
NOISY_LOGGERS = ("httpx", "httpcore", "urllib3")


class StructuredFormatter(logging.Formatter):
    """Formats records as JSON for log aggregation tools."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }

        request_id = request_id_ctx.get()
        if request_id:
            log_data["request_id"] = request_id

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class StructuredLogger:
    """
    Thin wrapper around a standard logger that accepts context fields as
    keyword arguments:

        logger.info("cache_miss", key=key)
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log(
        self, level: int, event: str, exc_info: bool = False, **extra_fields: Any
    ) -> None:
        self.logger.log(
            level, event, extra={"extra_fields": extra_fields}, exc_info=exc_info
        )

    def debug(self, event: str, **extra_fields: Any) -> None:
        self._log(logging.DEBUG, event, **extra_fields)

    def info(self, event: str, **extra_fields: Any) -> None:
        self._log(logging.INFO, event, **extra_fields)

    def warning(self, event: str, exc_info: bool = False, **extra_fields: Any) -> None:
        self._log(logging.WARNING, event, exc_info=exc_info, **extra_fields)

    def error(self, event: str, exc_info: bool = False, **extra_fields: Any) -> None:
        """
        Log an error event.

        Args:
            event: Event name
            exc_info: If True, include the active exception traceback
            **extra_fields: Additional context fields
        """
        self._log(logging.ERROR, event, exc_info=exc_info, **extra_fields)


def get_logger(name: str) -> StructuredLogger:
    """Returns a structured logger, typically called with __name__."""
    return StructuredLogger(name)


def set_request_id(request_id: str | None) -> None:
    request_id_ctx.set(request_id)


def get_request_id() -> str | None:
    return request_id_ctx.get()


def configure_logging(level: str = "INFO", use_structured: bool = True) -> None:
    """
    Configure application-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        use_structured: If True, use structured JSON logging
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)

    if use_structured:
        formatter = StructuredFormatter(datefmt="%Y-%m-%d %H:%M:%S")
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
