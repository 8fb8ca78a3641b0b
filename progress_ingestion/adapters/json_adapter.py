"""
JSON snapshot adapter.

Reads one project's materialized records from a JSON file shaped as
``{"project": {...}, "reports": [...], "attendances": [...]}`` and maps
them into domain objects.  Reports and attendance sheets are returned in
file order; the engine expects the producer to have sorted them by date.

Architecture: progress_ingestion/adapters. File I/O only.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from progress_ingestion.mapping import parse_attendance, parse_project, parse_report
from progress_kernel.domain.models import Project, ProjectAttendance, ProjectReport
from progress_kernel.logging_config import get_logger

logger = get_logger("ingestion.json_adapter")


@dataclass(frozen=True)
class ProjectSnapshot:
    """Everything one project recompute needs."""

    project: Project
    reports: tuple[ProjectReport, ...]
    attendances: tuple[ProjectAttendance, ...]


def snapshot_from_document(data: dict[str, Any]) -> ProjectSnapshot:
    """Map an already-decoded snapshot document."""
    if not isinstance(data, dict) or "project" not in data:
        raise ValueError("Snapshot must be an object with a 'project' key")
    return ProjectSnapshot(
        project=parse_project(data["project"]),
        reports=tuple(parse_report(r) for r in data.get("reports") or []),
        attendances=tuple(parse_attendance(a) for a in data.get("attendances") or []),
    )


def load_snapshot(source_path: Path | str, encoding: str = "utf-8") -> ProjectSnapshot:
    path = Path(source_path)
    with path.open("r", encoding=encoding) as f:
        data = json.load(f)
    snapshot = snapshot_from_document(data)
    logger.info("snapshot_loaded", extra={
        "source_path": str(path),
        "project_id": snapshot.project.id,
        "reports": len(snapshot.reports),
        "attendances": len(snapshot.attendances),
    })
    return snapshot
