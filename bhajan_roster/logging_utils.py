from __future__ import annotations

import contextvars
import json
import logging
import sys
import time
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Iterator


@dataclass(frozen=True)
class RequestContext:
    request_id: str = "-"
    route: str = "-"
    method: str = "-"
    edit_mode: bool = False


_EMPTY_CONTEXT = RequestContext()
_context_var: contextvars.ContextVar[RequestContext] = contextvars.ContextVar("roster_request", default=_EMPTY_CONTEXT)

# Attributes every LogRecord carries; anything else on a record came from `extra`.
_STANDARD_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message", "taskName"}
_CONTEXT_ATTRS = frozenset(RequestContext.__dataclass_fields__)
_HEADER_KEYS = ("timestamp", "level", "logger", "event", "request_id", "method", "route", "status_code")
_SKIPPED_ATTRS = _STANDARD_RECORD_ATTRS | _CONTEXT_ATTRS | {"event", "status_code"}


class RequestContextFilter(logging.Filter):
    """Stamps the current request context and an ``event`` name onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in asdict(_context_var.get()).items():
            if not hasattr(record, key):
                setattr(record, key, value)
        if not hasattr(record, "event"):
            record.event = record.msg if isinstance(record.msg, str) else "log"
        if not hasattr(record, "status_code"):
            record.status_code = None
        return True


class StructuredFormatter(logging.Formatter):
    def __init__(self, json_output: bool) -> None:
        super().__init__()
        self.json_output = json_output

    def _payload(self, record: logging.LogRecord) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": getattr(record, "event", "log"),
            "request_id": getattr(record, "request_id", "-"),
            "method": getattr(record, "method", "-"),
            "route": getattr(record, "route", "-"),
        }
        if getattr(record, "status_code", None) is not None:
            payload["status_code"] = record.status_code
        if getattr(record, "edit_mode", False):
            payload["edit_mode"] = True

        message = record.getMessage()
        if message and message != payload["event"]:
            payload["message"] = message
        payload.update(
            (key, value)
            for key, value in record.__dict__.items()
            if not key.startswith("_") and key not in _SKIPPED_ATTRS
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return payload

    def format(self, record: logging.LogRecord) -> str:
        payload = self._payload(record)
        if self.json_output:
            return json.dumps(payload, default=str)

        head = [f"{key}={payload.pop(key)}" for key in _HEADER_KEYS if key in payload]
        return " ".join(head + [f"{key}={value}" for key, value in payload.items()])


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    root = logging.getLogger()
    if getattr(root, "_roster_logging_configured", False):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter(json_output=json_output))
    context_filter = RequestContextFilter()
    handler.addFilter(context_filter)

    root.handlers.clear()
    root.addHandler(handler)
    root.addFilter(context_filter)
    root.setLevel(level.upper())
    root._roster_logging_configured = True  # type: ignore[attr-defined]


def set_request_context(*, request_id: str, route: str, method: str, edit_mode: bool = False) -> None:
    _context_var.set(RequestContext(request_id=request_id, route=route, method=method, edit_mode=edit_mode))


def clear_request_context() -> None:
    _context_var.set(_EMPTY_CONTEXT)


def current_request_id() -> str:
    return _context_var.get().request_id


def new_request_id() -> str:
    return str(uuid.uuid4())


def log_event(logger: logging.Logger, event: str, level: int = logging.INFO, **fields: Any) -> None:
    logger.log(level, event, extra={"event": event, **fields})


def elapsed_ms(start_time: float) -> int:
    return int((time.perf_counter() - start_time) * 1000)


@contextmanager
def timed_operation(logger: logging.Logger, event: str, **fields: Any) -> Iterator[dict[str, Any]]:
    """Log ``event`` with ``duration_ms`` once the block finishes.

    The yielded dict is merged into the log fields, so the block can attach
    counts it only knows at the end.
    """
    started = time.perf_counter()
    extra: dict[str, Any] = {}
    yield extra
    log_event(logger, event, duration_ms=elapsed_ms(started), **fields, **extra)
