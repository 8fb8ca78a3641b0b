"""
Engine settings schema.

Defines the human-authored, reviewable settings artifact for the
progress engine.  YAML files are parsed into these types by the loader;
``progress_config.bridges`` turns them into engine inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class HealthPolicyDef:
    """Health classification tolerances (see ``SummaryPolicy``)."""

    schedule_tolerance: Decimal = Decimal("0.10")  # fraction of planned cumulative
    behind_majority: Decimal = Decimal("0.5")  # BEHIND when share is greater
    weight_by_volume: bool = True


@dataclass(frozen=True)
class RecomputeDef:
    """Recompute orchestration knobs."""

    max_workers: int = 1  # 1 = sequential per-task fan-out


@dataclass(frozen=True)
class EngineSettings:
    """Parsed settings file: the sole runtime configuration artifact."""

    settings_id: str = "default"
    version: int = 1
    health: HealthPolicyDef = field(default_factory=HealthPolicyDef)
    recompute: RecomputeDef = field(default_factory=RecomputeDef)
    log_level: str = "INFO"
    checksum: str = ""
