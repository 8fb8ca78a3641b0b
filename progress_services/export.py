"""
Plain-data export of recompute results.

Turns a ``RecomputeResult`` into JSON-ready dicts for reporting
collaborators.  Decimals become strings (never floats), dates become ISO
strings, and Unknown stays ``None``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from progress_engines.summary import ProjectSummary, TaskSummary
from progress_engines.variance import VariancePoint, VarianceSeries
from progress_services.recompute import RecomputeResult


def _dec(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


def variance_point_to_dict(point: VariancePoint) -> dict[str, Any]:
    return {
        "date": point.date.isoformat(),
        "report_id": point.report_id,
        "status": point.status.value,
        "actual_cumulative": _dec(point.actual_cumulative),
        "estimation_date": point.estimation_date.isoformat() if point.estimation_date else None,
        "planned_cumulative": _dec(point.planned_cumulative),
        "schedule_variance": _dec(point.schedule_variance),
        "variance_ratio": _dec(point.variance_ratio),
        "planned_value": _dec(point.planned_value),
        "earned_value": _dec(point.earned_value),
        "spi": _dec(point.spi),
    }


def task_summary_to_dict(task: TaskSummary, series: VarianceSeries | None = None) -> dict[str, Any]:
    data = {
        "task_id": task.task_id,
        "name": task.name,
        "group_id": task.group_id,
        "volume": _dec(task.volume.value),
        "unit": task.volume.unit,
        "cumulative": _dec(task.cumulative),
        "percent_complete": _dec(task.percent_complete),
        "raw_ratio": _dec(task.raw_ratio),
        "over_reported": task.is_over_reported,
        "is_behind": task.is_behind,
        "budget": _dec(task.budget),
        "earned_value": _dec(task.earned_value),
    }
    if series is not None:
        data["variance"] = [variance_point_to_dict(p) for p in series.points]
    return data


def summary_to_dict(summary: ProjectSummary) -> dict[str, Any]:
    return {
        "project_id": summary.project_id,
        "name": summary.name,
        "weighted_completion": _dec(summary.weighted_completion),
        "health": summary.health.value,
        "behind_share": _dec(summary.behind_share),
        "behind_task_ids": list(summary.behind_task_ids),
        "total_budget": _dec(summary.total_budget),
        "earned_value": _dec(summary.earned_value),
        "contract_value": _dec(summary.contract_value),
        "groups": [
            {
                "group_id": g.group.id,
                "name": g.group.name,
                "task_ids": list(g.task_ids),
                "completion": _dec(g.completion),
                "behind_tasks": g.behind_tasks,
            }
            for g in summary.groups
        ],
        "attendance": {
            "days": summary.attendance.days,
            "regular_known_minutes": summary.attendance.regular_known_minutes,
            "outsourced_known_minutes": summary.attendance.outsourced_known_minutes,
            "unknown_entries": summary.attendance.unknown_entries,
            "peak_crew_size": summary.attendance.peak_crew_size,
            "per_day": [
                {
                    "date": d.date.isoformat(),
                    "attendance_id": d.attendance_id,
                    "crew_size": d.crew_size,
                    "regular_headcount": d.regular_headcount,
                    "outsourced_headcount": d.outsourced_headcount,
                    "known_minutes": d.known_minutes,
                    "unknown_entries": d.unknown_entries,
                }
                for d in summary.attendance.per_day
            ],
        },
    }


def result_to_dict(result: RecomputeResult, include_variance: bool = False) -> dict[str, Any]:
    """Full recompute result as plain data."""
    data = summary_to_dict(result.summary)
    data["input_fingerprint"] = result.input_fingerprint
    data["tasks"] = [
        task_summary_to_dict(
            t, result.variance.get(t.task_id) if include_variance else None,
        )
        for t in result.summary.tasks
    ]
    data["accepted_report_ids"] = list(result.accepted_report_ids)
    data["rejected_reports"] = [
        {"report_id": r.report_id, "code": r.code, "message": str(r.error)}
        for r in result.rejected_reports
    ]
    data["rejected_attendances"] = [
        {"attendance_id": r.attendance_id, "code": r.code, "message": str(r.error)}
        for r in result.rejected_attendances
    ]
    return data
