"""
Structured JSON logging for the settlement kernel.

Responsibility:
    One JSON object per line for every record under the ``settlement_kernel``
    logger: timestamp, level, logger, event name, the request fields bound
    through ``LogContext``, the record's ``extra`` fields, and, when the
    record carries an exception, its type and message.  A
    ``SettlementKernelError`` also contributes its ``code``, its
    ``retryable`` flag and its structured attributes, so a rejected payment
    can be traced from the log line alone.

Architecture position:
    Kernel -- imported by every layer.  Depends only on ``exceptions``.
"""

import json
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterator, TextIO
from uuid import UUID

from settlement_kernel.exceptions import SettlementKernelError

LOGGER_ROOT = "settlement_kernel"

CONTEXT_FIELDS = ("correlation_id", "actor_id", "operation", "job_id", "profile_id")

# Replaced on every change, never mutated in place
_context: ContextVar[dict[str, str]] = ContextVar("settlement_log_context", default={})


def _merged(fields: dict[str, Any]) -> dict[str, str]:
    unknown = sorted(set(fields) - set(CONTEXT_FIELDS))
    if unknown:
        raise TypeError(f"Unknown log context fields: {unknown}")
    merged = dict(_context.get())
    merged.update((k, str(v)) for k, v in fields.items() if v is not None)
    return merged


class LogContext:
    """Request-scoped log fields, isolated per thread and per asyncio task."""

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def set(**fields: Any) -> None:
        """Update the named fields.  None values leave a field unchanged."""
        _context.set(_merged(fields))

    @staticmethod
    def clear() -> None:
        _context.set({})

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """Set fields for the duration of a block, then restore the previous set."""
        token = _context.set(_merged(fields))
        try:
            yield
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    return repr(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    if isinstance(exc, SettlementKernelError):
        fields["exc_code"] = exc.code
        fields["exc_retryable"] = exc.retryable
        for name, value in vars(exc).items():
            if not name.startswith("_"):
                fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.get_all())
        for name, value in vars(record).items():
            if name not in _RECORD_ATTRIBUTES:
                payload.setdefault(name, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Logger ``settlement_kernel.<name>``."""
    return logging.getLogger(f"{LOGGER_ROOT}.{name}")


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

_lock = threading.Lock()
_installed: logging.Handler | None = None


def configure_logging(
    level: int | str = logging.INFO,
    stream: TextIO | None = None,
) -> logging.Handler:
    """
    Write settlement_kernel records to stream (stderr by default) as JSON.

    Only the first call has an effect; later calls return the handler it
    installed.
    """
    global _installed
    with _lock:
        if _installed is None:
            handler = logging.StreamHandler(stream or sys.stderr)
            handler.setFormatter(StructuredFormatter())
            root = logging.getLogger(LOGGER_ROOT)
            root.setLevel(level)
            root.propagate = False
            root.addHandler(handler)
            _installed = handler
        return _installed


def reset_logging() -> None:
    """Undo configure_logging.  Handlers added by anyone else are left alone."""
    global _installed
    with _lock:
        root = logging.getLogger(LOGGER_ROOT)
        if _installed is not None:
            root.removeHandler(_installed)
            _installed = None
        root.setLevel(logging.NOTSET)
        root.propagate = True
