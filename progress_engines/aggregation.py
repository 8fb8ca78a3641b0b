"""
Module: progress_engines.aggregation
Responsibility:
    Fold the chronologically ordered reports that mention a task into a
    cumulative-progress timeline, and expose the task's completion
    against its volume target.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import progress_kernel and sibling engine modules.

Invariants enforced:
    - Each report value is that day's INCREMENT; the timeline carries the
      running sum, so cumulative values are non-decreasing by date.
    - Dates are strictly increasing across the reports that give a task
      a value.  Purity: identical inputs produce identical timelines.
    - percent_complete is clamped to 1; the unclamped ratio is kept so
      over-reporting is visible.
    - Ratios are truncated, never rounded up, so a task reads 1 only once
      cumulative reaches the target.

Failure modes:
    - DuplicateReportDateError when two reports give the task a value on
      the same date.
    - UnsortedReportsError when the reports are not in date order.
    - NegativeProgressValueError on a negative daily value.
    All three are contract violations (validation should have caught
    them) and are raised, never turned into a partial timeline.

Usage:
    from progress_engines.aggregation import ProgressAggregator

    timeline = ProgressAggregator().aggregate(task, reports)
    timeline.cumulative        # Decimal("150")
    timeline.percent_complete  # Decimal("0.75")
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_DOWN, Decimal
from types import MappingProxyType

from progress_engines.tracer import traced_engine
from progress_engines.validation import ValidatedReport
from progress_kernel.domain.models import Project, ProjectReport, Task
from progress_kernel.domain.values import RATIO_QUANTUM, Volume
from progress_kernel.exceptions import (
    DuplicateReportDateError,
    NegativeProgressValueError,
    UnsortedReportsError,
)
from progress_kernel.logging_config import get_logger

logger = get_logger("engines.aggregation")

ONE = Decimal("1")
ZERO = Decimal("0")


@dataclass(frozen=True)
class ProgressPoint:
    """One report's contribution to a task, with the running total."""

    date: date
    report_id: str
    increment: Decimal
    cumulative: Decimal
    planned: bool = False  # task was also on that day's plan checklist


@dataclass(frozen=True)
class ProgressTimeline:
    """
    Chronological cumulative progress for one task.

    Contract:
        Frozen snapshot; recomputed in full on each aggregation.
    Guarantees:
        - ``points`` are strictly increasing in date.
        - ``cumulative`` of each point >= that of the previous point.
        - Empty timeline => cumulative 0, percent_complete 0 (when the
          target is positive).
    Non-goals:
        - Does not convert units; ``target.unit`` is carried opaquely.
    """

    task_id: str
    target: Volume
    points: tuple[ProgressPoint, ...] = ()
    planned_days: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.points

    @property
    def reported_days(self) -> int:
        return len(self.points)

    @property
    def cumulative(self) -> Decimal:
        if not self.points:
            return ZERO
        return self.points[-1].cumulative

    @property
    def raw_ratio(self) -> Decimal | None:
        """cumulative / target, unclamped and truncated. None when the target is zero."""
        if not self.target.is_positive:
            return None
        ratio = self.cumulative / self.target.value
        return ratio.quantize(RATIO_QUANTUM, rounding=ROUND_DOWN)

    @property
    def percent_complete(self) -> Decimal | None:
        """raw_ratio clamped to 1. None when the target is zero."""
        ratio = self.raw_ratio
        if ratio is None:
            return None
        return min(ONE, ratio)

    @property
    def is_over_reported(self) -> bool:
        return self.target.is_positive and self.cumulative > self.target.value

    @property
    def last_report_date(self) -> date | None:
        if not self.points:
            return None
        return self.points[-1].date

    def cumulative_as_of(self, as_of: date) -> Decimal:
        """Cumulative value from reports dated on or before ``as_of``."""
        total = ZERO
        for point in self.points:
            if point.date > as_of:
                break
            total = point.cumulative
        return total


def _unwrap(report: ProjectReport | ValidatedReport) -> ProjectReport:
    if isinstance(report, ValidatedReport):
        return report.report
    return report


def build_task_report_index(
    reports: Iterable[ProjectReport | ValidatedReport],
) -> Mapping[str, tuple[str, ...]]:
    """Rebuild the task -> report id back-reference from the report list.

    A report mentions a task when the task appears in its task or plan
    section.  Report ids keep the order of ``reports``.
    """
    index: dict[str, list[str]] = {}
    for item in reports:
        report = _unwrap(item)
        mentioned = [e.task_id for e in report.tasks] + [
            p.task_id for p in report.plan
        ]
        for task_id in dict.fromkeys(mentioned):
            index.setdefault(task_id, []).append(report.id)
    return MappingProxyType({k: tuple(v) for k, v in index.items()})


class ProgressAggregator:
    """
    Pure function aggregator for task progress.

    Contract:
        No I/O, fully deterministic.  Reports are supplied in
        chronological order and are expected to have passed validation.
    Guarantees:
        - Running sum over incremental daily values.
        - One point per report giving the task a value.
    Non-goals:
        - Does not re-sort reports or merge same-day values.
        - Does not compare against the plan (see ``VarianceCalculator``).
    """

    @traced_engine("aggregation", "1.0", fingerprint_fields=("task", "reports"))
    def aggregate(
        self,
        task: Task,
        reports: Iterable[ProjectReport | ValidatedReport],
    ) -> ProgressTimeline:
        """
        Fold reports into a cumulative timeline for ``task``.

        Preconditions:
            reports are ordered by date; each gives the task at most one
            value.

        Postconditions:
            Returned timeline points are strictly increasing in date with
            non-decreasing cumulative values.

        Raises:
            DuplicateReportDateError, UnsortedReportsError,
            NegativeProgressValueError
        """
        logger.info("aggregation_started", extra={
            "task_id": task.id,
            "target_value": task.volume.value,
            "unit": task.volume.unit,
        })

        points: list[ProgressPoint] = []
        planned_days = 0
        cumulative = ZERO

        for item in reports:
            report = _unwrap(item)
            planned = task.id in report.planned_task_ids
            if planned:
                planned_days += 1

            entry = report.value_for(task.id)
            if entry is None:
                continue

            if points:
                previous = points[-1]
                if report.date == previous.date:
                    logger.error("aggregation_duplicate_report_date", extra={
                        "task_id": task.id,
                        "report_id": report.id,
                        "conflicting_report_id": previous.report_id,
                    })
                    raise DuplicateReportDateError(
                        report.id, task.id, report.date, previous.report_id,
                    )
                if report.date < previous.date:
                    logger.error("aggregation_unsorted_reports", extra={
                        "task_id": task.id,
                        "report_id": report.id,
                    })
                    raise UnsortedReportsError(task.id, previous.date, report.date)

            if entry.value < ZERO:
                raise NegativeProgressValueError(report.id, task.id, entry.value)

            cumulative = cumulative + entry.value
            points.append(ProgressPoint(
                date=report.date,
                report_id=report.id,
                increment=entry.value,
                cumulative=cumulative,
                planned=planned,
            ))

        timeline = ProgressTimeline(
            task_id=task.id,
            target=task.volume,
            points=tuple(points),
            planned_days=planned_days,
        )

        logger.info("aggregation_completed", extra={
            "task_id": task.id,
            "reported_days": timeline.reported_days,
            "cumulative": timeline.cumulative,
            "raw_ratio": timeline.raw_ratio,
            "over_reported": timeline.is_over_reported,
        })
        return timeline

    def aggregate_project(
        self,
        project: Project,
        reports: Iterable[ProjectReport | ValidatedReport],
    ) -> Mapping[str, ProgressTimeline]:
        """Timelines for every task in the project, keyed by task id."""
        materialized = tuple(reports)
        return MappingProxyType({
            task.id: self.aggregate(task, materialized) for task in project.tasks
        })
