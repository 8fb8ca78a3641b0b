"""
progress_services.recompute -- Whole-project recompute orchestration.

Responsibility:
    Run one project's full pipeline over materialized inputs:
    Validator -> Aggregator/Reconciler -> Variance Calculator ->
    Summarizer, and return every derived artifact as one immutable
    ``RecomputeResult``.

Architecture position:
    Services -- orchestration over pure engines + config.
    Holds no state between calls; every call recomputes in full.

Invariants enforced:
    - Reports are validated in the order given, each against the
      reports accepted before it; rejected reports never reach the
      aggregator.
    - A report id is accepted at most once; later reports reusing an
      accepted id are rejected with DUPLICATE_REPORT_ID.
    - Attendance sheets with an invalid interval are rejected, not
      reconciled.
    - Per-task aggregation/variance pairs are independent and may run on
      a thread pool (``max_workers > 1``); the summarizer is the join.
    - Identical inputs and settings give equal results and the same
      ``input_fingerprint``.

Failure modes:
    - UnsortedEstimationError if any task's estimation is out of order
      (checked before any task is computed; no partial result).
    - UnsortedReportsError from the aggregator if accepted reports are
      not in date order.
    Validation failures are never raised; they are returned in
    ``rejected_reports`` / ``rejected_attendances``.

Audit relevance:
    Each recompute logs ``recompute_started`` / ``recompute_completed``
    under a LogContext bound to the project id and the input fingerprint.
"""

from __future__ import annotations

import contextvars
import time
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from types import MappingProxyType

from progress_config.bridges import build_summary_policy
from progress_config.schema import EngineSettings
from progress_engines.aggregation import (
    ProgressAggregator,
    ProgressTimeline,
    build_task_report_index,
)
from progress_engines.attendance import AttendanceReconciler, AttendanceSummary
from progress_engines.summary import ProjectSummarizer, ProjectSummary
from progress_engines.tracer import compute_input_fingerprint
from progress_engines.validation import ReportValidator, ValidatedReport
from progress_engines.variance import VarianceCalculator, VarianceSeries
from progress_kernel.domain.models import (
    Project,
    ProjectAttendance,
    ProjectReport,
    Task,
)
from progress_kernel.exceptions import (
    DuplicateReportIdError,
    InvalidAttendanceIntervalError,
    ReportValidationError,
)
from progress_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.recompute")


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RejectedReport:
    """A report that failed validation, with the structured error."""

    report_id: str
    error: ReportValidationError

    @property
    def code(self) -> str:
        return self.error.code


@dataclass(frozen=True)
class RejectedAttendance:
    """An attendance sheet with an invalid entry/exit interval."""

    attendance_id: str
    error: InvalidAttendanceIntervalError

    @property
    def code(self) -> str:
        return self.error.code


@dataclass(frozen=True)
class RecomputeResult:
    """
    Every artifact of one project recompute.

    Contract:
        Frozen snapshot; mappings are read-only views.
    Guarantees:
        - ``timelines`` and ``variance`` hold one entry per project task.
        - ``attendance`` holds one summary per accepted sheet, in input
          order.
    """

    project_id: str
    input_fingerprint: str
    accepted_report_ids: tuple[str, ...]
    rejected_reports: tuple[RejectedReport, ...]
    rejected_attendances: tuple[RejectedAttendance, ...]
    timelines: Mapping[str, ProgressTimeline]
    variance: Mapping[str, VarianceSeries]
    attendance: tuple[AttendanceSummary, ...]
    report_index: Mapping[str, tuple[str, ...]]
    summary: ProjectSummary

    @property
    def has_rejections(self) -> bool:
        return bool(self.rejected_reports or self.rejected_attendances)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ProjectRecomputeService:
    """
    Orchestrates a full recompute of one project.

    Contract
    --------
    * ``recompute`` depends only on its arguments and the settings given
      at construction; it never reads files or the clock for results.
    * Safe to call concurrently for different projects; no shared
      mutable state.

    Non-goals
    ---------
    * Does NOT persist anything or cache results.
    * Does NOT sort inputs; producers supply chronological order.
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        validator: ReportValidator | None = None,
        aggregator: ProgressAggregator | None = None,
        variance_calculator: VarianceCalculator | None = None,
        reconciler: AttendanceReconciler | None = None,
    ):
        self._settings = settings or EngineSettings()
        self._validator = validator or ReportValidator()
        self._aggregator = aggregator or ProgressAggregator()
        self._variance = variance_calculator or VarianceCalculator()
        self._reconciler = reconciler or AttendanceReconciler()
        self._summarizer = ProjectSummarizer(build_summary_policy(self._settings))

    @property
    def max_workers(self) -> int:
        return self._settings.recompute.max_workers

    def recompute(
        self,
        project: Project,
        reports: Iterable[ProjectReport],
        attendances: Iterable[ProjectAttendance] = (),
    ) -> RecomputeResult:
        """
        Recompute every derived artifact for ``project``.

        Args:
            project: The project snapshot.
            reports: The project's reports, oldest first.
            attendances: The project's attendance sheets, oldest first.

        Returns:
            RecomputeResult

        Raises:
            UnsortedEstimationError: a task's estimation is out of order.
            UnsortedReportsError: accepted reports are out of date order.
        """
        reports = tuple(reports)
        attendances = tuple(attendances)
        fingerprint = compute_input_fingerprint(
            ("project", "reports", "attendances"),
            {"project": project, "reports": reports, "attendances": attendances},
        )

        with LogContext.bind(project_id=project.id, correlation_id=fingerprint):
            t0 = time.monotonic()
            logger.info("recompute_started", extra={
                "reports": len(reports),
                "attendances": len(attendances),
                "tasks": len(project.tasks),
                "max_workers": self.max_workers,
            })

            for task in project.tasks:
                error = self._validator.validate_estimation(task)
                if error is not None:
                    raise error

            accepted, rejected = self._validate_reports(project, reports, attendances)
            summaries, rejected_attendances = self._reconcile(project, attendances)
            timelines, series = self._compute_tasks(project, accepted)

            summary = self._summarizer.summarize(
                project, timelines, series, summaries,
            )

            result = RecomputeResult(
                project_id=project.id,
                input_fingerprint=fingerprint,
                accepted_report_ids=tuple(v.id for v in accepted),
                rejected_reports=tuple(rejected),
                rejected_attendances=tuple(rejected_attendances),
                timelines=timelines,
                variance=series,
                attendance=tuple(summaries),
                report_index=build_task_report_index(accepted),
                summary=summary,
            )

            logger.info("recompute_completed", extra={
                "accepted_reports": len(result.accepted_report_ids),
                "rejected_reports": len(result.rejected_reports),
                "rejected_attendances": len(result.rejected_attendances),
                "weighted_completion": summary.weighted_completion,
                "health": summary.health.value,
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
            })
            return result

    def _validate_reports(
        self,
        project: Project,
        reports: tuple[ProjectReport, ...],
        attendances: tuple[ProjectAttendance, ...],
    ) -> tuple[list[ValidatedReport], list[RejectedReport]]:
        index = {a.id: a for a in attendances}
        accepted: list[ValidatedReport] = []
        rejected: list[RejectedReport] = []
        accepted_ids: set[str] = set()
        for report in reports:
            if report.id in accepted_ids:
                logger.warning("report_id_already_accepted", extra={"report_id": report.id})
                rejected.append(RejectedReport(report.id, DuplicateReportIdError(report.id)))
                continue
            with LogContext.bind(report_id=report.id):
                outcome = self._validator.validate(
                    report,
                    project,
                    index,
                    [v.report for v in accepted],
                )
            if outcome.is_valid:
                accepted.append(outcome.validated)
                accepted_ids.add(report.id)
            else:
                rejected.append(RejectedReport(report.id, outcome.error))
        return accepted, rejected

    def _reconcile(
        self,
        project: Project,
        attendances: tuple[ProjectAttendance, ...],
    ) -> tuple[list[AttendanceSummary], list[RejectedAttendance]]:
        summaries: list[AttendanceSummary] = []
        rejected: list[RejectedAttendance] = []
        for attendance in attendances:
            with LogContext.bind(attendance_id=attendance.id):
                error = self._validator.validate_attendance(attendance)
                if error is not None:
                    logger.warning("attendance_rejected", extra={"code": error.code})
                    rejected.append(RejectedAttendance(attendance.id, error))
                    continue
                summaries.append(self._reconciler.reconcile(attendance, project))
        return summaries, rejected

    def _compute_task(
        self,
        task: Task,
        accepted: tuple[ValidatedReport, ...],
    ) -> tuple[ProgressTimeline, VarianceSeries]:
        with LogContext.bind(task_id=task.id):
            timeline = self._aggregator.aggregate(task, accepted)
            return timeline, self._variance.variance_for_task(task, timeline)

    def _compute_tasks(
        self,
        project: Project,
        accepted: list[ValidatedReport],
    ) -> tuple[Mapping[str, ProgressTimeline], Mapping[str, VarianceSeries]]:
        frozen = tuple(accepted)
        if self.max_workers > 1 and len(project.tasks) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                # Each task runs in a copy of the caller's context so log
                # records keep the bound project id.
                futures = [
                    pool.submit(
                        contextvars.copy_context().run,
                        self._compute_task, task, frozen,
                    )
                    for task in project.tasks
                ]
                results = [f.result() for f in futures]
        else:
            results = [self._compute_task(task, frozen) for task in project.tasks]

        timelines = {}
        series = {}
        for task, (timeline, variance) in zip(project.tasks, results):
            timelines[task.id] = timeline
            series[task.id] = variance
        return MappingProxyType(timelines), MappingProxyType(series)
