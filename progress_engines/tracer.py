"""
progress_engines.tracer -- Engine invocation tracer emitting PROGRESS_ENGINE_TRACE.

Responsibility:
    Provide a lightweight decorator (``@traced_engine``) that wraps pure
    engine invocations with structured trace logging.  The trace captures
    engine_name, engine_version, input_fingerprint (deterministic SHA-256
    hash of selected arguments), and duration_ms.

Architecture position:
    Engines -- infrastructure support for the pure calculation layer.
    Does NOT introduce I/O into engines; emits a log record only.

Invariants enforced:
    - Fingerprint computation is deterministic: _canonicalize produces
      stable string representations; dict keys are sorted; the hash is
      SHA-256 truncated to 16 hex chars.  Identical inputs give identical
      fingerprints, so callers may cache recomputes by fingerprint.
    - Engine purity: the decorator only reads arguments and emits a log
      record; it does not mutate inputs.

Failure modes:
    - Fingerprint fields that are not parameters of the wrapped function
      are recorded as "null".
    - Exceptions from the wrapped engine propagate unchanged; a trace
      record with ``outcome="error"`` and the error code is still emitted.

Usage:
    from progress_engines.tracer import traced_engine

    @traced_engine("aggregation", "1.0", fingerprint_fields=("task", "reports"))
    def aggregate(self, task, reports):
        ...
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from progress_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")

TRACE_TYPE = "PROGRESS_ENGINE_TRACE"


def _canonicalize(value: Any) -> str:
    """Produce a stable string representation of a value for fingerprinting.

    Frozen dataclasses are walked field by field so the fingerprint does
    not depend on ``repr`` formatting.
    """
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (bool, int, float, Decimal)):
        return str(value)
    if isinstance(value, str):
        return value
    if isinstance(value, date):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        items = (
            (f.name, getattr(value, f.name)) for f in dataclasses.fields(value)
        )
        return (
            type(value).__name__
            + "{"
            + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items)
            + "}"
        )
    if isinstance(value, Mapping):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        return "{" + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    if isinstance(value, (set, frozenset)):
        return "{" + ",".join(sorted(_canonicalize(v) for v in value)) + "}"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: dict[str, Any],
) -> str:
    """Compute a deterministic SHA-256 fingerprint of selected arguments.

    Only the fields listed in fingerprint_fields are included. Missing
    fields are recorded as "null". The result is a hex digest prefix
    (16 chars).
    """
    parts: list[str] = []
    for field in fingerprint_fields:
        val = arguments.get(field)
        parts.append(f"{field}={_canonicalize(val)}")
    canonical = "|".join(parts)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorator that emits PROGRESS_ENGINE_TRACE for pure engine invocations.

    Args:
        engine_name: Engine identifier (e.g., "variance").
        engine_version: Engine version (e.g., "1.0").
        fingerprint_fields: Parameter names (positional or keyword) to
            include in the input fingerprint hash.

    Returns:
        Decorator function.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fp = ""
            if fingerprint_fields:
                bound = signature.bind_partial(*args, **kwargs)
                fp = compute_input_fingerprint(
                    fingerprint_fields, dict(bound.arguments)
                )

            t0 = time.monotonic()
            outcome = "ok"
            error_code = None
            try:
                return func(*args, **kwargs)
            except Exception as exc:
                outcome = "error"
                error_code = getattr(exc, "code", type(exc).__name__)
                raise
            finally:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                _logger.info(
                    TRACE_TYPE,
                    extra={
                        "trace_type": TRACE_TYPE,
                        "engine_name": engine_name,
                        "engine_version": engine_version,
                        "input_fingerprint": fp,
                        "duration_ms": duration_ms,
                        "function": func.__qualname__,
                        "outcome": outcome,
                        "error_code": error_code,
                    },
                )

        return wrapper

    return decorator
