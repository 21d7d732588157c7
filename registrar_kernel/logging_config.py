"""
Structured JSON logging for the registrar kernel.

Every record is one JSON object per line with ``ts``, ``level``,
``logger`` and ``message``, the fields bound in ``LogContext``, anything
passed through ``extra=``, and for exceptions their type, message,
``code`` and public attributes.

Context fields:
    correlation_id    one engine call
    actor_id          staff user performing it
    request_id        surrogate key of the document request
    reference_number  public SPC-DOC reference
"""

__all__ = [
    "CONTEXT_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator, Mapping

CONTEXT_FIELDS = ("correlation_id", "actor_id", "request_id", "reference_number")

_context: ContextVar[Mapping[str, str]] = ContextVar("registrar_log_context", default={})


class LogContext:
    """Request-scoped log fields, isolated per thread and per task."""

    @staticmethod
    def _merge(values: Mapping[str, Any]) -> dict[str, str]:
        merged = dict(_context.get())
        for name, value in values.items():
            if name in CONTEXT_FIELDS and value is not None:
                merged[name] = str(value)
        return merged

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Set known fields; None values and unknown names are ignored."""
        _context.set(cls._merge(fields))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block, then restore."""
        token = _context.set(cls._merge(fields))
        try:
            yield cls
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

_RESERVED = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # RegistrarKernelError subclasses keep their context as attributes
    for name, value in vars(exc).items():
        if not name.startswith("_"):
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for name, value in vars(record).items():
            if name not in _RESERVED:
                payload.setdefault(name, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

_ROOT = "registrar_kernel"
_setup_lock = threading.Lock()
_configured = False


def get_logger(name: str) -> logging.Logger:
    """Logger named ``registrar_kernel.<name>``."""
    return logging.getLogger(f"{_ROOT}.{name}")


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``registrar_kernel`` logger.

    Only the first call has an effect until ``reset_logging()``.  Records
    do not propagate to the root logger.
    """
    global _configured
    with _setup_lock:
        if _configured:
            return
        _configured = True

    root = logging.getLogger(_ROOT)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    root.propagate = False

    target = handler or logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())
    root.addHandler(target)


def reset_logging() -> None:
    """Drop handlers and allow ``configure_logging`` again.  Tests only."""
    global _configured
    with _setup_lock:
        _configured = False
    root = logging.getLogger(_ROOT)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
