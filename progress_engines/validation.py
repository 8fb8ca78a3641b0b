"""
Report Validator (``progress_engines.validation``).

Responsibility
--------------
Checks a single incoming daily report for internal consistency before it
is accepted into the aggregation pipeline, and offers the companion checks
for attendance sheets and task estimations:

* report belongs to the project being recomputed
* (a) every task reference in the task and plan sections exists
* (b) no task appears twice in the task section; no negative value
* (c) weather intervals lie within one day, are ordered, do not overlap
* (d) the attendance reference resolves to a sheet of the same project
  and date
* (e) no already-accepted report gives one of its tasks a value on the
  same date

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO clock reads.
May only import from ``progress_kernel``.

Invariants enforced
-------------------
* Checks run in the order above; the first failure short-circuits.
* Validation performs no aggregation and never mutates its inputs.
* Failures are RETURNED as structured errors inside ``ValidationOutcome``;
  nothing is auto-corrected or silently dropped.

Failure modes
-------------
* Returns an outcome carrying one of the ``ReportValidationError``
  subclasses for business rule violations.
* ``ValidationOutcome.raise_for_error()`` raises that same error for
  callers that prefer exceptions.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from types import MappingProxyType

from progress_engines.tracer import traced_engine
from progress_kernel.domain.models import (
    AttendanceEntry,
    Estimation,
    Project,
    ProjectAttendance,
    ProjectReport,
    Task,
)
from progress_kernel.domain.values import MinuteInterval, is_minute_of_day
from progress_kernel.exceptions import (
    AttendanceMismatchError,
    DuplicateReportDateError,
    DuplicateTaskInReportError,
    InvalidAttendanceIntervalError,
    InvalidWeatherIntervalError,
    NegativeProgressValueError,
    OverlappingWeatherIntervalError,
    ProjectMismatchError,
    ReportValidationError,
    UnknownTaskReferenceError,
    UnsortedEstimationError,
)
from progress_kernel.logging_config import get_logger

logger = get_logger("engines.validation")


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ValidatedReport:
    """
    A report that passed every check, paired with its attendance sheet.

    Contract:
        Only ``ReportValidator.validate`` constructs these in production
        code; downstream engines may rely on the checks having passed.
    """

    report: ProjectReport
    attendance: ProjectAttendance

    @property
    def id(self) -> str:
        return self.report.id

    @property
    def date(self) -> date:
        return self.report.date

    @property
    def task_values(self) -> Mapping[str, Decimal]:
        return MappingProxyType({e.task_id: e.value for e in self.report.tasks})

    @property
    def rain_minutes(self) -> int | None:
        """Minutes of rain or heavy rain; None when weather was not recorded."""
        if self.report.weather is None:
            return None
        return sum(
            w.interval.duration_minutes
            for w in self.report.weather
            if w.condition.is_rain
        )


@dataclass(frozen=True)
class ValidationOutcome:
    """Either a ``ValidatedReport`` or the first error found, never both."""

    report_id: str
    validated: ValidatedReport | None = None
    error: ReportValidationError | None = None

    def __post_init__(self) -> None:
        if (self.validated is None) == (self.error is None):
            raise ValueError(
                "ValidationOutcome needs exactly one of validated or error"
            )

    @property
    def is_valid(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> ValidatedReport:
        if self.error is not None:
            raise self.error
        return self.validated


# ---------------------------------------------------------------------------
# Individual checks (each returns the first violation or None)
# ---------------------------------------------------------------------------


def check_task_references(
    report: ProjectReport, project: Project,
) -> UnknownTaskReferenceError | None:
    known = project.task_ids
    for entry in report.tasks:
        if entry.task_id not in known:
            return UnknownTaskReferenceError(report.id, entry.task_id, "task")
    for entry in report.plan:
        if entry.task_id not in known:
            return UnknownTaskReferenceError(report.id, entry.task_id, "plan")
    return None


def check_task_values(report: ProjectReport) -> ReportValidationError | None:
    seen: set[str] = set()
    for entry in report.tasks:
        if entry.task_id in seen:
            return DuplicateTaskInReportError(report.id, entry.task_id)
        seen.add(entry.task_id)
        if entry.value < Decimal("0"):
            return NegativeProgressValueError(report.id, entry.task_id, entry.value)
    return None


def check_weather(report: ProjectReport) -> ReportValidationError | None:
    """Intervals must lie within one day, be ordered, and not overlap.

    Overlap is half-open: a span ending at minute 600 and one starting at
    600 are adjacent, not overlapping. A zero-length span covers no minute
    and never overlaps anything.
    """
    if not report.weather:
        return None

    intervals: list[MinuteInterval] = []
    for entry in report.weather:
        interval = entry.interval
        if not interval.is_within_day or not interval.is_ordered:
            return InvalidWeatherIntervalError(report.id, entry.start, entry.end)
        if interval.duration_minutes > 0:
            intervals.append(interval)

    if not intervals:
        return None
    ordered = sorted(intervals, key=lambda i: (i.start, i.end))
    widest = ordered[0]
    for interval in ordered[1:]:
        if widest.overlaps(interval):
            return OverlappingWeatherIntervalError(
                report.id, widest.as_tuple(), interval.as_tuple(),
            )
        if interval.end > widest.end:
            widest = interval
    return None


def check_attendance_reference(
    report: ProjectReport,
    attendances: Mapping[str, ProjectAttendance],
) -> AttendanceMismatchError | None:
    attendance = attendances.get(report.attendance_id)
    if attendance is None:
        return AttendanceMismatchError(
            report.id, report.attendance_id, "attendance record not found",
        )
    if attendance.project_id != report.project_id:
        return AttendanceMismatchError(
            report.id,
            report.attendance_id,
            f"attendance belongs to project {attendance.project_id}",
        )
    if attendance.date != report.date:
        return AttendanceMismatchError(
            report.id,
            report.attendance_id,
            f"attendance dated {attendance.date.isoformat()}, "
            f"report dated {report.date.isoformat()}",
        )
    return None


def check_report_date_conflicts(
    report: ProjectReport,
    accepted_reports: Iterable[ProjectReport],
) -> DuplicateReportDateError | None:
    """A task may receive at most one value per date across all reports.

    Re-validating an identical accepted report is not a conflict; a
    different report reusing its id is.
    """
    task_ids = {e.task_id for e in report.tasks}
    if not task_ids:
        return None
    for other in accepted_reports:
        if other == report or other.date != report.date:
            continue
        if other.project_id != report.project_id:
            continue
        for entry in other.tasks:
            if entry.task_id in task_ids:
                return DuplicateReportDateError(
                    report.id, entry.task_id, report.date, other.id,
                )
    return None


def find_attendance_violation(
    attendance: ProjectAttendance,
) -> InvalidAttendanceIntervalError | None:
    """First entry whose times lie outside the day or whose exit precedes entry."""
    for entry in attendance.users:
        if _attendance_interval_invalid(entry):
            return InvalidAttendanceIntervalError(
                attendance.id, entry.user_id, entry.entry_minute, entry.exit_minute,
            )
    return None


def _attendance_interval_invalid(entry: AttendanceEntry) -> bool:
    for minute in (entry.entry_minute, entry.exit_minute):
        if minute is not None and not is_minute_of_day(minute):
            return True
    if entry.entry_minute is not None and entry.exit_minute is not None:
        return entry.exit_minute < entry.entry_minute
    return False


def find_estimation_disorder(
    task_id: str,
    estimation: Iterable[Estimation],
) -> UnsortedEstimationError | None:
    """First pair of estimation entries not strictly increasing in date."""
    previous: date | None = None
    for entry in estimation:
        if previous is not None and entry.date <= previous:
            return UnsortedEstimationError(task_id, previous, entry.date)
        previous = entry.date
    return None


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------


def _index_attendances(
    attendances: Mapping[str, ProjectAttendance] | Iterable[ProjectAttendance],
) -> Mapping[str, ProjectAttendance]:
    if isinstance(attendances, Mapping):
        return attendances
    return {a.id: a for a in attendances}


class ReportValidator:
    """
    Pure validator for daily reports and their companion records.

    Contract:
        No I/O, fully deterministic.  All reference data (project,
        attendance sheets, already-accepted reports) passed as parameters.
    Guarantees:
        - Returns exactly one of a ``ValidatedReport`` or an error.
        - The same inputs always produce the same outcome.
    Non-goals:
        - Does not enforce approval workflow.
        - Does not sort or repair records.
    """

    @traced_engine("report_validator", "1.0", fingerprint_fields=("report",))
    def validate(
        self,
        report: ProjectReport,
        project: Project,
        attendances: Mapping[str, ProjectAttendance] | Iterable[ProjectAttendance] = (),
        accepted_reports: Iterable[ProjectReport] = (),
    ) -> ValidationOutcome:
        """
        Validate one report against its project and companion records.

        Args:
            report: The candidate report.
            project: The project snapshot the report must belong to.
            attendances: Attendance sheets, as a list or keyed by id.
            accepted_reports: Reports already accepted for this project.

        Returns:
            ValidationOutcome with either the validated wrapper or the
            first error found.
        """
        logger.info("report_validation_started", extra={
            "report_id": report.id,
            "project_id": project.id,
            "report_date": report.date,
            "task_entries": len(report.tasks),
            "plan_entries": len(report.plan),
        })

        index = _index_attendances(attendances)
        error = self._first_error(report, project, index, accepted_reports)

        if error is not None:
            logger.warning("report_validation_failed", extra={
                "report_id": report.id,
                "error_code": error.code,
                "error_message": str(error),
            })
            return ValidationOutcome(report_id=report.id, error=error)

        validated = ValidatedReport(
            report=report, attendance=index[report.attendance_id],
        )
        logger.info("report_validation_completed", extra={
            "report_id": report.id,
            "attendance_id": report.attendance_id,
        })
        return ValidationOutcome(report_id=report.id, validated=validated)

    def _first_error(
        self,
        report: ProjectReport,
        project: Project,
        attendances: Mapping[str, ProjectAttendance],
        accepted_reports: Iterable[ProjectReport],
    ) -> ReportValidationError | None:
        if report.project_id != project.id:
            return ProjectMismatchError(report.id, report.project_id, project.id)
        return (
            check_task_references(report, project)
            or check_task_values(report)
            or check_weather(report)
            or check_attendance_reference(report, attendances)
            or check_report_date_conflicts(report, accepted_reports)
        )

    def validate_attendance(
        self, attendance: ProjectAttendance,
    ) -> InvalidAttendanceIntervalError | None:
        """Return the first invalid entry/exit interval, or None."""
        error = find_attendance_violation(attendance)
        if error is not None:
            logger.warning("attendance_validation_failed", extra={
                "attendance_id": attendance.id,
                "user_id": error.user_id,
                "error_code": error.code,
            })
        return error

    def validate_estimation(self, task: Task) -> UnsortedEstimationError | None:
        """Return the first out-of-order estimation entry, or None."""
        if task.estimation is None:
            return None
        error = find_estimation_disorder(task.id, task.estimation)
        if error is not None:
            logger.warning("estimation_validation_failed", extra={
                "task_id": task.id,
                "error_code": error.code,
            })
        return error
