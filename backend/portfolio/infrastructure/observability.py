"""Structured Logging — JSON formatter, setup, and request-scoped loggers.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Only whitelisted extra fields are surfaced, so secrets passed as extras
      (password, token, api key) never reach the output
    - A RequestLogger stamps request_id on every line it emits
    - JSON format in production, human-readable in development

Design Decisions:
    - JSONFormatter on stdlib logging: no third-party logging dependency
    - setup_logging called once on startup via lifespan; idempotent
"""

import json
import logging
from collections.abc import MutableMapping
from datetime import datetime, timezone
from typing import Any

from portfolio.core.request_context import RequestContext

SURFACED_FIELDS = (
    "request_id", "method", "path", "client_ip", "user_agent",
    "operation", "status_code", "duration_ms", "severity", "error_type",
    "album_id", "image_id", "user", "reason", "file_name", "file_size",
    "file_type", "count", "metric", "source", "details",
)

_HANDLER_MARKER = "_portfolio_handler"


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in SURFACED_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json"):
    """Configure logging for the application."""
    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, _HANDLER_MARKER, False):
            root.removeHandler(existing)

    handler = logging.StreamHandler()
    setattr(handler, _HANDLER_MARKER, True)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(request_id)s - %(message)s",
            defaults={"request_id": "-"},
        ))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


class RequestLogger(logging.LoggerAdapter):
    """Logger bound to one request; per-call extras merge over the bound ones."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any],
    ) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs

    def bind(self, **fields: Any) -> "RequestLogger":
        return RequestLogger(self.logger, {**self.extra, **fields})


def get_request_logger(
    context: RequestContext, name: str = "portfolio.request",
) -> RequestLogger:
    return RequestLogger(logging.getLogger(name), context.to_log_extra())
