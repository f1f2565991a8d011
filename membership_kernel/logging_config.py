"""
Structured JSON logging for the membership kernel.

Every record under the ``membership_kernel`` namespace is rendered as one
JSON line:

    {"ts": ..., "level": ..., "logger": ..., "message": "workflow_transition",
     "request_id": ..., "actor_id": ..., "application_id": ...,
     "action": "submit", "actor_role": "COMPANY_REP", "outcome": "success",
     "from_state": "DRAFT", "to_state": "SUBMITTED", ..., "duration_ms": 1.2}

Request-scoped identifiers come from ``LogContext``.  Workflow fields passed
through ``extra`` are promoted in a fixed order so that transition records
line up when read side by side; any other extras follow.  Exceptions are
nested under ``error`` with the kernel error code and its structured
attributes.
"""

__all__ = [
    "CONTEXT_FIELDS",
    "WORKFLOW_FIELDS",
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
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any

from membership_kernel.exceptions import MembershipKernelError

LOGGER_NAMESPACE = "membership_kernel"

CONTEXT_FIELDS = ("request_id", "actor_id", "application_id")

WORKFLOW_FIELDS = (
    "action",
    "actor_role",
    "outcome",
    "from_state",
    "to_state",
    "reason",
)

_EMPTY: Mapping[str, str] = MappingProxyType({})

_context: ContextVar[Mapping[str, str]] = ContextVar(
    "membership_log_context", default=_EMPTY
)


class LogContext:
    """Identifiers of the request, actor and application currently being served.

    Backed by a single ContextVar holding a read-only mapping, so each thread
    and each asyncio task sees its own values.
    """

    @classmethod
    def set(
        cls,
        *,
        request_id: str | None = None,
        actor_id: str | None = None,
        application_id: str | None = None,
    ) -> None:
        _context.set(
            _merge(request_id=request_id, actor_id=actor_id, application_id=application_id)
        )

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set(_EMPTY)

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """Add fields for the duration of the block.

        Names outside ``CONTEXT_FIELDS`` and None values are ignored.
        """
        token = _context.set(_merge(**fields))
        try:
            yield cls
        finally:
            _context.reset(token)


def _merge(**fields: Any) -> Mapping[str, str]:
    merged = dict(_context.get())
    for name, value in fields.items():
        if name in CONTEXT_FIELDS and value is not None:
            merged[name] = str(value)
    return MappingProxyType(merged)


# LogRecord attributes that are not caller-supplied extras
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _describe_error(exc: BaseException) -> dict[str, Any]:
    error: dict[str, Any] = {"type": type(exc).__name__, "message": str(exc)}
    if isinstance(exc, MembershipKernelError):
        error["code"] = exc.code
        error.update(
            (k, v) for k, v in vars(exc).items() if not k.startswith("_")
        )
    return error


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(_context.get())

        extras = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}
        for name in WORKFLOW_FIELDS:
            if name in extras:
                entry[name] = extras.pop(name)
        for key, value in extras.items():
            # a None extra never hides a bound context value
            if value is not None or key not in entry:
                entry[key] = value

        if record.exc_info and record.exc_info[1] is not None:
            error = _describe_error(record.exc_info[1])
            error["traceback"] = self.formatException(record.exc_info)
            entry["error"] = error

        return json.dumps(entry, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Logger ``membership_kernel.<name>``."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_HANDLER_NAME = "membership_kernel.json"
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach the JSON handler to the kernel namespace.

    Idempotent: once a handler is attached, later calls change nothing.
    The namespace does not propagate to the root logger.
    """
    kernel_logger = logging.getLogger(LOGGER_NAMESPACE)
    with _lock:
        if any(h.get_name() == _HANDLER_NAME for h in kernel_logger.handlers):
            return
        target = handler or logging.StreamHandler(stream or sys.stderr)
        target.set_name(_HANDLER_NAME)
        target.setFormatter(StructuredFormatter())
        kernel_logger.addHandler(target)
        kernel_logger.setLevel(level)
        kernel_logger.propagate = False


def reset_logging() -> None:
    """Detach the JSON handler and restore defaults. Tests only."""
    kernel_logger = logging.getLogger(LOGGER_NAMESPACE)
    with _lock:
        for h in [h for h in kernel_logger.handlers if h.get_name() == _HANDLER_NAME]:
            kernel_logger.removeHandler(h)
        kernel_logger.setLevel(logging.NOTSET)
        kernel_logger.propagate = True
