"""
progress_kernel.logging_config -- Structured JSON logging.

Responsibility:
    Give every engine and service a logger under the ``progress_kernel``
    namespace whose records render as one JSON object per line, carrying
    the recompute-scoped identifiers (project, report, task, attendance
    sheet) bound by the caller.

Architecture position:
    Kernel -- imported by every layer; imports nothing from the project.
    Configuration is the entrypoint's job (``configure_logging``); library
    code only calls ``get_logger`` and ``LogContext.bind``.

Invariants enforced:
    - Context fields live in ContextVars, so values bound in one thread or
      task never leak into another; ``contextvars.copy_context`` carries
      them into worker threads.
    - ``LogContext.bind`` restores the previous value of every field it
      set, including on exceptions.
    - Decimal values render as strings and dates as ISO-8601, so logged
      quantities are never rounded through float.

Failure modes:
    - ``LogContext.set`` / ``bind`` raise TypeError for a field name
      outside ``LogContext.FIELDS``.

Usage:
    logger = get_logger("engines.aggregation")
    with LogContext.bind(project_id=project.id, task_id=task.id):
        logger.info("aggregation_started", extra={"reports": 3})
"""

__all__ = [
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
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from typing import Any

LOGGER_PREFIX = "progress_kernel"


# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------


class LogContext:
    """Recompute-scoped identifiers attached to every structured record."""

    FIELDS = (
        "correlation_id",  # input fingerprint of the running recompute
        "project_id",
        "report_id",
        "task_id",
        "attendance_id",
        "actor_id",
    )

    _vars: dict[str, ContextVar[str | None]] = {
        name: ContextVar(f"progress_log_{name}", default=None) for name in FIELDS
    }

    @classmethod
    def _var(cls, name: str) -> ContextVar[str | None]:
        try:
            return cls._vars[name]
        except KeyError:
            raise TypeError(f"Unknown log context field: {name!r}") from None

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Set the given fields; None values leave a field unchanged."""
        for name, value in fields.items():
            var = cls._var(name)
            if value is not None:
                var.set(value)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        """Every field currently set, in ``FIELDS`` order."""
        values = {name: var.get() for name, var in cls._vars.items()}
        return {name: value for name, value in values.items() if value is not None}

    @classmethod
    def clear(cls) -> None:
        for var in cls._vars.values():
            var.set(None)

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block."""
        tokens = [
            (cls._var(name), cls._var(name).set(value))
            for name, value in fields.items()
            if value is not None
        ]
        try:
            yield cls
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

# Attributes every LogRecord carries; anything else came from ``extra``.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)  # Decimal keeps its exact digits


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # Typed kernel errors keep the offending ids as public attributes.
    for name, value in vars(exc).items():
        if not name.startswith("_") and name != "code":
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, logger, message,
    bound context fields, ``extra`` fields and exception details."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


# ---------------------------------------------------------------------------
# Loggers and setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger named ``progress_kernel.<name>``."""
    return logging.getLogger(f"{LOGGER_PREFIX}.{name}")


_state_lock = threading.Lock()
_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Install one JSON handler on the ``progress_kernel`` logger.

    Only the first call has an effect until ``reset_logging``; later
    calls keep the existing handler and level.

    Args:
        level: Threshold for the whole namespace.
        stream: Target of the default StreamHandler (stderr when None).
        handler: Use this handler instead of a StreamHandler.
    """
    global _handler
    with _state_lock:
        if _handler is not None:
            return
        if handler is None:
            handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(StructuredFormatter())
        namespace = logging.getLogger(LOGGER_PREFIX)
        namespace.setLevel(level)
        namespace.propagate = False
        namespace.addHandler(handler)
        _handler = handler


def reset_logging() -> None:
    """Remove the installed handler and restore propagation. Test helper."""
    global _handler
    with _state_lock:
        _handler = None
    namespace = logging.getLogger(LOGGER_PREFIX)
    namespace.handlers.clear()
    namespace.setLevel(logging.NOTSET)
    namespace.propagate = True
