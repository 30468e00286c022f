"""Logging setup with text/JSON formatters that render `extra=` fields."""

from __future__ import annotations

import json
import logging
import sys
import time
from typing import Any

from usage_limits.core.config import settings

# Attributes present on every LogRecord; anything else came from `extra=`.
_RESERVED_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}

_configured = False


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_RECORD_ATTRS and not key.startswith("_")
    }


class KeyValueFormatter(logging.Formatter):
    """Human-readable formatter appending `key=value` pairs from extras."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = _extra_fields(record)
        if not extras:
            return base
        rendered = " ".join(f"{key}={value}" for key, value in sorted(extras.items()))
        return f"{base} {rendered}"


class JsonFormatter(logging.Formatter):
    """Single-line JSON formatter for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        payload.update(_extra_fields(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, sort_keys=True)


def build_formatter(log_format: str, *, use_utc: bool) -> logging.Formatter:
    """Return the formatter matching the configured `LOG_FORMAT`."""
    if log_format.strip().lower() == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = KeyValueFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    if use_utc:
        formatter.converter = time.gmtime
    return formatter


def configure_logging(*, force: bool = False) -> None:
    """Install the root handler once per process."""
    global _configured
    if _configured and not force:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter(settings.log_format, use_utc=settings.log_use_utc))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a module logger; configuration happens in the app factory."""
    return logging.getLogger(name)
