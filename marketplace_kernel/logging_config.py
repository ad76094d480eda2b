"""
Structured JSON logging for the marketplace kernel.

Every record is one JSON object per line::

    {"ts": "...", "level": "INFO", "logger": "marketplace_kernel.services.settlement",
     "message": "settlement_credited", "operation": "request_completion",
     "engagement_id": "...", "provider_amount": "142.50"}

Messages are event names.  Per-request fields (``correlation_id``,
``engagement_id``, ``negotiation_id``, ``actor_id``, ``operation``) live in
``LogContext`` and are merged into every record emitted while they are
bound; per-event fields travel in ``extra=``.  When a record carries
exception info, the exception's ``code`` and public attributes are
flattened into ``exc_*`` fields so a rejected request can be queried by
error code.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

__all__ = [
    "LogContext",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
    "reset_logging",
]

_LOGGER_PREFIX = "marketplace_kernel"

CONTEXT_FIELDS = (
    "correlation_id",
    "engagement_id",
    "negotiation_id",
    "actor_id",
    "operation",
)

_context: ContextVar[Mapping[str, str]] = ContextVar("marketplace_log_context", default={})


def _known_fields(fields: Mapping[str, Any]) -> dict[str, str]:
    return {
        name: str(value)
        for name, value in fields.items()
        if name in CONTEXT_FIELDS and value is not None
    }


class LogContext:
    """
    Request-scoped log fields, isolated per thread and per asyncio task.

    The stored mapping is replaced, never mutated, so ``bind()`` can
    restore the previous state exactly.
    """

    @classmethod
    def set(
        cls,
        *,
        correlation_id: str | None = None,
        engagement_id: str | None = None,
        negotiation_id: str | None = None,
        actor_id: str | None = None,
        operation: str | None = None,
    ) -> None:
        """Add or overwrite fields; None leaves a field as it is."""
        update = _known_fields(
            {
                "correlation_id": correlation_id,
                "engagement_id": engagement_id,
                "negotiation_id": negotiation_id,
                "actor_id": actor_id,
                "operation": operation,
            }
        )
        _context.set({**_context.get(), **update})

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type[LogContext]]:
        """
        Bind fields for the duration of a ``with`` block.

        Values are stringified; None values and names outside
        CONTEXT_FIELDS are ignored.
        """
        token = _context.set({**_context.get(), **_known_fields(fields)})
        try:
            yield cls
        finally:
            _context.reset(token)


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    return str(obj)


# Attributes every LogRecord has; anything else on a record came from extra=
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
}


class StructuredFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context.get(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and key not in payload:
                payload[key] = value

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record))

        return json.dumps(payload, default=_json_default)

    def _exception_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        exc = record.exc_info[1]
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        for name, value in vars(exc).items():
            if not name.startswith("_"):
                fields[f"exc_{name}"] = value
        fields["traceback"] = self.formatException(record.exc_info)
        return fields


def get_logger(name: str) -> logging.Logger:
    """``get_logger("services.settlement")`` -> ``marketplace_kernel.services.settlement``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_configure_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``marketplace_kernel`` logger.

    Only the first call has any effect; later calls (for example from
    ``init_engine_from_url``) leave an earlier configuration in place.
    """
    global _configured
    with _configure_lock:
        if _configured:
            return
        _configured = True

    root = logging.getLogger(_LOGGER_PREFIX)
    root.setLevel(level)
    root.propagate = False
    target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())
    root.addHandler(target)


def reset_logging() -> None:
    """Undo configure_logging().  Tests only."""
    global _configured
    with _configure_lock:
        _configured = False
    root = logging.getLogger(_LOGGER_PREFIX)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
    root.propagate = True
