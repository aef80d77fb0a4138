"""Process-wide logging setup and the request id carried by log records."""
from __future__ import annotations

import logging
from contextvars import ContextVar, Token
from logging.config import dictConfig
from typing import Any, Dict

# Outbound clients log every request at INFO; keep them quiet unless something fails.
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "apscheduler.executors")

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(message)s"

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)


def get_request_id() -> str | None:
    return _request_id.get()


def bind_request_id(request_id: str) -> Token:
    return _request_id.set(request_id)


def reset_request_id(token: Token) -> None:
    _request_id.reset(token)


class RequestIdFilter(logging.Filter):
    """Adds ``record.request_id`` ("-" outside a request, e.g. in the scheduler)."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - minimal logic
        record.request_id = get_request_id() or "-"
        return True


def build_logging_config(log_level: str) -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": {"format": LOG_FORMAT}},
        "filters": {"request_id": {"()": RequestIdFilter}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": log_level,
                "filters": ["request_id"],
            }
        },
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        "root": {"handlers": ["console"], "level": log_level},
    }


def configure_logging(*, log_level: str = "INFO") -> None:
    """Apply the logging config; repeat calls are ignored."""
    if getattr(configure_logging, "_configured", False):
        return
    dictConfig(build_logging_config(log_level.upper()))
    setattr(configure_logging, "_configured", True)
    logging.getLogger(__name__).debug("Logging configured at %s", log_level)
