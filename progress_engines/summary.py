"""
Module: progress_engines.summary
Responsibility:
    Roll task-level progress and variance up to a project-level
    completion figure and health status, with per-group and attendance
    rollups for downstream reporting.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    The join point of a project recompute: needs every task's timeline
    and variance series.

Invariants enforced:
    - Weighted completion = sum(volume x percentComplete) / sum(volume)
      over tasks with a positive volume; zero-volume tasks are reported
      but excluded from the weighting.
    - Health: ON_TRACK when no task is behind by more than the tolerance,
      BEHIND when the behind share exceeds the majority threshold,
      AT_RISK otherwise.  Tolerance and majority come from SummaryPolicy.
    - Unknown stays Unknown: no positive-volume task => completion None;
      a task with no known variance is never counted as behind.

Failure modes:
    - ValueError from SummaryPolicy on a negative tolerance or a majority
      outside [0, 1).

Usage:
    from progress_engines.summary import ProjectSummarizer, SummaryPolicy

    summary = ProjectSummarizer(SummaryPolicy()).summarize(
        project, timelines, variance_series, attendance_summaries,
    )
    summary.weighted_completion  # Decimal("0.625")
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_DOWN, Decimal
from enum import Enum

from progress_engines.aggregation import ProgressTimeline
from progress_engines.attendance import AttendanceSummary
from progress_engines.tracer import traced_engine
from progress_engines.variance import VariancePoint, VarianceSeries
from progress_kernel.domain.models import Group, Project, Task
from progress_kernel.domain.values import AMOUNT_QUANTUM, RATIO_QUANTUM, Volume
from progress_kernel.logging_config import get_logger

logger = get_logger("engines.summary")

ZERO = Decimal("0")
ONE = Decimal("1")


class HealthStatus(str, Enum):
    """Project schedule health."""

    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    BEHIND = "behind"


@dataclass(frozen=True)
class SummaryPolicy:
    """
    Tolerances for health classification.

    schedule_tolerance: a task is behind when its latest known schedule
        variance is below -(tolerance x planned cumulative).
    behind_majority: BEHIND when the behind share is strictly greater.
    weight_by_volume: share measured by task volume (True) or task count.
    """

    schedule_tolerance: Decimal = Decimal("0.10")
    behind_majority: Decimal = Decimal("0.5")
    weight_by_volume: bool = True

    def __post_init__(self) -> None:
        if self.schedule_tolerance < ZERO:
            raise ValueError("schedule_tolerance cannot be negative")
        if not ZERO <= self.behind_majority < ONE:
            raise ValueError("behind_majority must be in [0, 1)")


@dataclass(frozen=True)
class TaskSummary:
    """One task's rolled-up progress."""

    task_id: str
    name: str
    group_id: str
    volume: Volume
    cumulative: Decimal
    percent_complete: Decimal | None
    raw_ratio: Decimal | None
    latest_variance: VariancePoint | None
    is_behind: bool
    budget: Decimal | None = None
    earned_value: Decimal | None = None

    @property
    def in_weighting(self) -> bool:
        return self.volume.is_positive

    @property
    def is_over_reported(self) -> bool:
        return self.raw_ratio is not None and self.raw_ratio > ONE


@dataclass(frozen=True)
class GroupSummary:
    """Volume-weighted completion of the tasks sharing a group label."""

    group: Group
    task_ids: tuple[str, ...]
    completion: Decimal | None
    behind_tasks: int = 0


@dataclass(frozen=True)
class DailyCrew:
    """One attendance sheet's crew figures, as carried in the rollup."""

    date: date
    attendance_id: str
    crew_size: int
    regular_headcount: int
    outsourced_headcount: int
    known_minutes: int
    unknown_entries: int


@dataclass(frozen=True)
class AttendanceRollup:
    """Attendance totals across the days supplied to the summarizer."""

    days: int = 0
    regular_known_minutes: int = 0
    outsourced_known_minutes: int = 0
    unknown_entries: int = 0
    peak_crew_size: int = 0
    per_day: tuple[DailyCrew, ...] = ()  # one entry per sheet, input order


@dataclass(frozen=True)
class ProjectSummary:
    """Project-level snapshot for reporting collaborators."""

    project_id: str
    name: str
    tasks: tuple[TaskSummary, ...]
    groups: tuple[GroupSummary, ...]
    weighted_completion: Decimal | None
    health: HealthStatus
    behind_share: Decimal
    behind_task_ids: tuple[str, ...]
    attendance: AttendanceRollup
    total_budget: Decimal | None = None
    earned_value: Decimal | None = None
    contract_value: Decimal | None = None

    def task(self, task_id: str) -> TaskSummary | None:
        for summary in self.tasks:
            if summary.task_id == task_id:
                return summary
        return None


def weighted_completion(tasks: Iterable[TaskSummary]) -> Decimal | None:
    """Volume-weighted mean percent complete; None without positive volume."""
    numerator = ZERO
    denominator = ZERO
    for task in tasks:
        if not task.in_weighting:
            continue
        numerator += task.volume.value * task.percent_complete
        denominator += task.volume.value
    if denominator == ZERO:
        return None
    return (numerator / denominator).quantize(RATIO_QUANTUM, rounding=ROUND_DOWN)


def _behind_share(tasks: tuple[TaskSummary, ...], by_volume: bool) -> Decimal:
    if not tasks:
        return ZERO
    if by_volume:
        total = sum((t.volume.value for t in tasks if t.in_weighting), ZERO)
        if total > ZERO:
            behind = sum(
                (t.volume.value for t in tasks if t.in_weighting and t.is_behind),
                ZERO,
            )
            return (behind / total).quantize(RATIO_QUANTUM)
    # Count-based share, also used when no task carries volume.
    behind_count = sum(1 for t in tasks if t.is_behind)
    return (Decimal(behind_count) / Decimal(len(tasks))).quantize(RATIO_QUANTUM)


class ProjectSummarizer:
    """
    Pure function summarizer for a project recompute.

    Contract:
        No I/O, fully deterministic.  Missing timelines or variance
        series for a task are treated as "no reports yet".
    Guarantees:
        - One TaskSummary per project task, in project task order.
        - One GroupSummary per distinct group, in first-seen order.
    Non-goals:
        - Does not schedule crews or forecast completion dates.
    """

    def __init__(self, policy: SummaryPolicy | None = None):
        self.policy = policy or SummaryPolicy()

    @traced_engine(
        "summary", "1.0",
        fingerprint_fields=("project", "timelines", "variance_series"),
    )
    def summarize(
        self,
        project: Project,
        timelines: Mapping[str, ProgressTimeline],
        variance_series: Mapping[str, VarianceSeries],
        attendance_summaries: Iterable[AttendanceSummary] = (),
    ) -> ProjectSummary:
        """
        Roll task results up into a ProjectSummary.

        Args:
            project: The project snapshot.
            timelines: Progress timeline per task id.
            variance_series: Variance series per task id.
            attendance_summaries: Per-day attendance summaries.

        Returns:
            ProjectSummary
        """
        logger.info("summary_started", extra={
            "project_id": project.id,
            "tasks": len(project.tasks),
            "schedule_tolerance": self.policy.schedule_tolerance,
            "behind_majority": self.policy.behind_majority,
            "weight_by_volume": self.policy.weight_by_volume,
        })

        tasks = tuple(
            self._summarize_task(task, timelines, variance_series)
            for task in project.tasks
        )
        completion = weighted_completion(tasks)
        share = _behind_share(tasks, self.policy.weight_by_volume)
        behind_ids = tuple(t.task_id for t in tasks if t.is_behind)
        health = self._health(behind_ids, share)

        budgets = [t.budget for t in tasks if t.budget is not None]
        earned = [t.earned_value for t in tasks if t.earned_value is not None]

        summary = ProjectSummary(
            project_id=project.id,
            name=project.name,
            tasks=tasks,
            groups=self._groups(project, tasks),
            weighted_completion=completion,
            health=health,
            behind_share=share,
            behind_task_ids=behind_ids,
            attendance=self._attendance(attendance_summaries),
            total_budget=sum(budgets, ZERO) if budgets else None,
            earned_value=sum(earned, ZERO) if earned else None,
            contract_value=project.value,
        )

        logger.info("summary_completed", extra={
            "project_id": project.id,
            "weighted_completion": completion,
            "health": health.value,
            "behind_share": share,
            "behind_tasks": len(behind_ids),
        })
        return summary

    def _summarize_task(
        self,
        task: Task,
        timelines: Mapping[str, ProgressTimeline],
        variance_series: Mapping[str, VarianceSeries],
    ) -> TaskSummary:
        timeline = timelines.get(task.id) or ProgressTimeline(
            task_id=task.id, target=task.volume,
        )
        series = variance_series.get(task.id) or VarianceSeries(task_id=task.id)
        latest = series.latest_known
        is_behind = (
            latest is not None and latest.is_behind(self.policy.schedule_tolerance)
        )

        percent = timeline.percent_complete
        earned = None
        if task.cost is not None and percent is not None:
            earned = (task.cost * percent).quantize(AMOUNT_QUANTUM)

        return TaskSummary(
            task_id=task.id,
            name=task.name,
            group_id=task.group.id,
            volume=task.volume,
            cumulative=timeline.cumulative,
            percent_complete=percent,
            raw_ratio=timeline.raw_ratio,
            latest_variance=latest,
            is_behind=is_behind,
            budget=task.cost,
            earned_value=earned,
        )

    def _health(self, behind_ids: tuple[str, ...], share: Decimal) -> HealthStatus:
        if not behind_ids:
            return HealthStatus.ON_TRACK
        if share > self.policy.behind_majority:
            return HealthStatus.BEHIND
        return HealthStatus.AT_RISK

    def _groups(
        self,
        project: Project,
        tasks: tuple[TaskSummary, ...],
    ) -> tuple[GroupSummary, ...]:
        groups = project.groups()
        members: dict[str, list[TaskSummary]] = {}
        for summary in tasks:
            members.setdefault(summary.group_id, []).append(summary)
        return tuple(
            GroupSummary(
                group=groups[group_id],
                task_ids=tuple(t.task_id for t in group_tasks),
                completion=weighted_completion(group_tasks),
                behind_tasks=sum(1 for t in group_tasks if t.is_behind),
            )
            for group_id, group_tasks in members.items()
        )

    def _attendance(
        self, summaries: Iterable[AttendanceSummary],
    ) -> AttendanceRollup:
        days: set = set()
        regular = outsourced = unknown = peak = 0
        per_day: list[DailyCrew] = []
        for summary in summaries:
            per_day.append(DailyCrew(
                date=summary.date,
                attendance_id=summary.attendance_id,
                crew_size=summary.crew_size,
                regular_headcount=summary.regular.headcount,
                outsourced_headcount=summary.outsourced.headcount,
                known_minutes=summary.known_minutes,
                unknown_entries=summary.unknown_entries,
            ))
            days.add(summary.date)
            regular += summary.regular.known_minutes
            outsourced += summary.outsourced.known_minutes
            unknown += summary.unknown_entries
            peak = max(peak, summary.crew_size)
        return AttendanceRollup(
            days=len(days),
            regular_known_minutes=regular,
            outsourced_known_minutes=outsourced,
            unknown_entries=unknown,
            peak_crew_size=peak,
            per_day=tuple(per_day),
        )
