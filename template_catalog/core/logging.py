"""
Structured logging for the template catalog.

Production writes one JSON object per line; development writes a short
human-readable line. Every record carries the request id bound by
RequestIdMiddleware, plus whichever listing fields (user, course, template)
the caller supplied through log_event().
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

LOGGER_NAME = "template_catalog"

# Listing fields promoted to top-level keys in JSON output.
CORRELATION_FIELDS = ("user_id", "course_id", "template_id", "event_type", "error_code")

MAX_EXTRA_LENGTH = 500

request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    rid = request_id_ctx_var.get()
    return default if rid is None else rid


def _utc_timestamp(record: logging.LogRecord) -> str:
    stamp = datetime.fromtimestamp(record.created, timezone.utc)
    return stamp.strftime("%Y-%m-%dT%H:%M:%S.") + f"{stamp.microsecond // 1000:03d}Z"


def latency_bucket_ms(latency_ms: Optional[float]) -> str:
    """Coarse latency label for request logs."""
    if latency_ms is None:
        return "unknown"
    for bound, label in ((10, "<10ms"), (100, "10-100ms"), (500, "100-500ms"), (1000, "500-1000ms")):
        if latency_ms < bound:
            return label
    return ">=1000ms"


class RequestIdFilter(logging.Filter):
    """Fill in record.request_id from the context when the caller did not."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": _utc_timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update(
            (field, getattr(record, field))
            for field in CORRELATION_FIELDS
            if getattr(record, field, None) is not None
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class PrettyFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        parts = [_utc_timestamp(record), record.levelname, f"[{record.name}]"]
        rid = getattr(record, "request_id", None)
        if rid:
            parts.append(f"[rid={rid}]")
        course_id = getattr(record, "course_id", None)
        if course_id is not None:
            parts.append(f"[course={course_id}]")
        parts.append(record.getMessage())
        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(env: str = "development") -> None:
    """Install the catalog handler on the package logger."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if env.lower() == "production" else PrettyFormatter())
    handler.addFilter(RequestIdFilter())

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)
    logger.handlers = [handler]
    logger.propagate = True

    for noisy in ("uvicorn", "uvicorn.error"):
        logging.getLogger(noisy).propagate = False


def _truncate(value: Any, limit: int = MAX_EXTRA_LENGTH) -> str:
    try:
        text = str(value)
    except Exception:
        return "<unserializable>"
    return text if len(text) <= limit else text[:limit] + "...<truncated>"


def log_event(
    level: str,
    msg: str,
    *,
    request_id: Optional[str],
    user_id: Optional[int] = None,
    course_id: Optional[int] = None,
    template_id: Optional[int] = None,
    event_type: Optional[str] = None,
    error_code: Optional[str] = None,
    extra: Optional[Dict[str, object]] = None,
) -> None:
    """Emit one structured catalog event.

    Free-form values in ``extra`` are stringified and truncated so a large
    search string or row dump cannot flood the log.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        configure_logging(os.getenv("ENV", "development"))

    fields: Dict[str, object] = {
        "request_id": request_id or get_request_id(),
        "user_id": user_id,
        "course_id": course_id,
        "template_id": template_id,
        "event_type": event_type,
        "error_code": error_code,
    }
    for key, value in (extra or {}).items():
        fields[key] = _truncate(value)

    getattr(logger, level, logger.info)(msg, extra=fields)
