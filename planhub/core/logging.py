"""
Structured logging for planhub.

Every record carries the request_id bound by RequestIdMiddleware. Events
logged through log_event() also carry their own key/value fields, which the
JSON formatter (production) emits as top-level keys and the pretty formatter
(everywhere else) appends as `key=value` pairs.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

LOGGER_NAME = "planhub"

request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Fields the error handlers attach with `extra=` rather than through log_event
HANDLER_FIELDS = ("error_code", "error_message", "status")


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    """Fetch the current request_id from context (if any)."""
    rid = request_id_ctx_var.get()
    return rid if rid is not None else default


def latency_bucket_ms(latency_ms: Optional[float]) -> str:
    if latency_ms is None:
        return "unknown"
    for limit, label in ((10, "<10ms"), (100, "10-100ms"), (500, "100-500ms"), (1000, "500-1000ms")):
        if latency_ms < limit:
            return label
    return ">=1000ms"


def _record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields = {name: getattr(record, name, None) for name in HANDLER_FIELDS}
    fields.update(getattr(record, "event_fields", None) or {})
    return {k: v for k, v in fields.items() if v is not None}


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "event": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update(_record_fields(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class PrettyFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        rid = getattr(record, "request_id", None)
        parts = [self.formatTime(record), record.levelname, f"[{LOGGER_NAME}]"]
        if rid:
            parts.append(f"[rid={rid}]")
        parts.append(record.getMessage())
        parts.extend(f"{k}={v}" for k, v in _record_fields(record).items())
        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(env: str = "development") -> None:
    """Install one stdout handler on the planhub logger; JSON in production."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if env.lower() == "production" else PrettyFormatter())
    handler.addFilter(RequestIdFilter())

    logger.handlers = [handler]
    logger.propagate = True


def log_event(level: str, event: str, *, request_id: Optional[str] = None, **fields: Any) -> None:
    """
    Log a named event with structured fields.

    None-valued fields are dropped, so callers can pass optional ids freely:
        log_event("info", "plan.created", plan_id=plan.id, user_id=actor_id)
    """
    logger = logging.getLogger(LOGGER_NAME)
    event_fields = {k: v for k, v in fields.items() if v is not None}
    extra = {"request_id": request_id or get_request_id(), "event_fields": event_fields}
    # Mirror the fields as record attributes so handlers and tests can read them
    for key, value in event_fields.items():
        extra.setdefault(key, value)
    logger.log(logging.getLevelName(level.upper()), event, extra=extra)
