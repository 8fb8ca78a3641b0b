"""
Settings Loader (``progress_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the typed
``progress_config.schema`` dataclasses.  The single public entry point
for runtime settings is ``progress_config.get_active_settings()``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` with descriptive messages.
* Omitted keys take the dataclass defaults; unknown keys are rejected.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  settings identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong types or unknown keys  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from progress_config.schema import EngineSettings, HealthPolicyDef, RecomputeDef

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping")
    return data


def parse_decimal(value: Any, key: str) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"{key}: expected a number, got {value!r}")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"{key}: expected a number, got {value!r}") from e


def _reject_unknown(data: dict[str, Any], allowed: set[str], section: str) -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValueError(f"Unknown keys in {section}: {', '.join(unknown)}")


def parse_health(data: dict[str, Any]) -> HealthPolicyDef:
    """Parse the ``health`` section."""
    _reject_unknown(
        data, {"schedule_tolerance", "behind_majority", "weight_by_volume"}, "health",
    )
    defaults = HealthPolicyDef()
    weight_by_volume = data.get("weight_by_volume", defaults.weight_by_volume)
    if not isinstance(weight_by_volume, bool):
        raise ValueError(
            f"health.weight_by_volume: expected a boolean, got {weight_by_volume!r}"
        )
    tolerance = parse_decimal(
        data.get("schedule_tolerance", defaults.schedule_tolerance),
        "health.schedule_tolerance",
    )
    if not tolerance.is_finite() or tolerance < 0:
        raise ValueError(
            f"health.schedule_tolerance: expected a number >= 0, got {tolerance}"
        )
    majority = parse_decimal(
        data.get("behind_majority", defaults.behind_majority),
        "health.behind_majority",
    )
    if not majority.is_finite() or not 0 <= majority < 1:
        raise ValueError(
            f"health.behind_majority: expected a number in [0, 1), got {majority}"
        )
    return HealthPolicyDef(
        schedule_tolerance=tolerance,
        behind_majority=majority,
        weight_by_volume=weight_by_volume,
    )


def parse_recompute(data: dict[str, Any]) -> RecomputeDef:
    """Parse the ``recompute`` section."""
    _reject_unknown(data, {"max_workers"}, "recompute")
    max_workers = data.get("max_workers", RecomputeDef().max_workers)
    if isinstance(max_workers, bool) or not isinstance(max_workers, int) or max_workers < 1:
        raise ValueError(
            f"recompute.max_workers: expected a positive integer, got {max_workers!r}"
        )
    return RecomputeDef(max_workers=max_workers)


def parse_settings(data: dict[str, Any]) -> EngineSettings:
    """
    Parse a complete settings document.

    Postconditions:
        - Returns an ``EngineSettings`` whose ``checksum`` is the
          ``compute_checksum`` of ``data``.
    """
    _reject_unknown(
        data, {"settings_id", "version", "health", "recompute", "log_level"}, "settings",
    )
    log_level = str(data.get("log_level", "INFO")).upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(f"log_level: unknown level {log_level!r}")
    return EngineSettings(
        settings_id=str(data.get("settings_id", "default")),
        version=int(data.get("version", 1)),
        health=parse_health(data.get("health") or {}),
        recompute=parse_recompute(data.get("recompute") or {}),
        log_level=log_level,
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
