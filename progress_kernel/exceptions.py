"""
Typed Exception Hierarchy for the Progress Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Field records arrive from many crews and many ingestion paths. Callers must
be able to reject, quarantine, or send a record back for correction without
parsing message strings, so every failure:
  1. Has a TYPED exception class (catch by type, not message)
  2. Has a CODE attribute (machine-readable, API-safe)
  3. Carries structured DATA naming the offending entity
     (report id, task id, attendance id)

Example:
    outcome = validator.validate(report, project, attendances)
    if not outcome.is_valid:
        quarantine(outcome.error.report_id, code=outcome.error.code)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ProgressKernelError (base)
    |
    +-- ReportValidationError
    |   +-- ProjectMismatchError
    |   +-- UnknownTaskReferenceError
    |   +-- DuplicateTaskInReportError
    |   +-- NegativeProgressValueError
    |   +-- InvalidWeatherIntervalError
    |   +-- OverlappingWeatherIntervalError
    |   +-- AttendanceMismatchError
    |   +-- DuplicateReportDateError
    |   +-- DuplicateReportIdError
    |   +-- InvalidAttendanceIntervalError
    |
    +-- EstimationError
    |   +-- UnsortedEstimationError
    |
    +-- ComputationContractError
        +-- UnsortedReportsError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                          | When Raised / Returned
-------------|-------------------------------|----------------------------------
Validation   | PROJECT_MISMATCH              | Report filed against another project
             | UNKNOWN_TASK_REFERENCE        | Task/plan cites a task not in project
             | DUPLICATE_TASK_IN_REPORT      | Same task twice in one task section
             | NEGATIVE_PROGRESS_VALUE       | Reported daily value below zero
             | INVALID_WEATHER_INTERVAL      | start > end, or outside 0-1439
             | OVERLAPPING_WEATHER_INTERVAL  | Two weather intervals overlap
             | ATTENDANCE_MISMATCH           | Attendance ref missing or mismatched
             | DUPLICATE_REPORT_DATE         | Task reported twice on the same date
             | DUPLICATE_REPORT_ID           | Report id submitted more than once
             | INVALID_ATTENDANCE_INTERVAL   | exit < entry, or outside 0-1439
-------------|-------------------------------|----------------------------------
Estimation   | UNSORTED_ESTIMATION           | Estimation dates not strictly increasing
-------------|-------------------------------|----------------------------------
Computation  | UNSORTED_REPORTS              | Reports for a task out of date order

===============================================================================
RETURNED VS RAISED
===============================================================================

The report validator RETURNS these errors inside a ``ValidationOutcome``.
The recompute service returns DuplicateReportIdError the same way, inside
a ``RejectedReport``.
The aggregator, variance calculator, and attendance reconciler assume
validated input and RAISE the same types when they meet an invariant
violation mid-fold; a partially computed timeline is never produced.
"""

from __future__ import annotations

from datetime import date


class ProgressKernelError(Exception):
    """
    Base exception for all progress kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PROGRESS_KERNEL_ERROR"


# Report validation


class ReportValidationError(ProgressKernelError):
    """Base exception for field-record validation failures."""

    code: str = "REPORT_VALIDATION_ERROR"


class ProjectMismatchError(ReportValidationError):
    """Report was filed against a different project."""

    code: str = "PROJECT_MISMATCH"

    def __init__(self, report_id: str, report_project_id: str, project_id: str):
        self.report_id = report_id
        self.report_project_id = report_project_id
        self.project_id = project_id
        super().__init__(
            f"Report {report_id} belongs to project {report_project_id}, "
            f"not {project_id}"
        )


class UnknownTaskReferenceError(ReportValidationError):
    """Report task or plan section cites a task the project does not own."""

    code: str = "UNKNOWN_TASK_REFERENCE"

    def __init__(self, report_id: str, task_id: str, section: str):
        self.report_id = report_id
        self.task_id = task_id
        self.section = section
        super().__init__(
            f"Report {report_id} references unknown task {task_id} "
            f"in {section} section"
        )


class DuplicateTaskInReportError(ReportValidationError):
    """Same task appears twice in one report's task section."""

    code: str = "DUPLICATE_TASK_IN_REPORT"

    def __init__(self, report_id: str, task_id: str):
        self.report_id = report_id
        self.task_id = task_id
        super().__init__(
            f"Task {task_id} appears more than once in report {report_id}"
        )


class NegativeProgressValueError(ReportValidationError):
    """A daily progress value is negative."""

    code: str = "NEGATIVE_PROGRESS_VALUE"

    def __init__(self, report_id: str, task_id: str, value: object):
        self.report_id = report_id
        self.task_id = task_id
        self.value = str(value)
        super().__init__(
            f"Report {report_id} gives task {task_id} negative value {value}"
        )


class InvalidWeatherIntervalError(ReportValidationError):
    """Weather interval is reversed or falls outside the calendar day."""

    code: str = "INVALID_WEATHER_INTERVAL"

    def __init__(self, report_id: str, start: int, end: int):
        self.report_id = report_id
        self.start = start
        self.end = end
        super().__init__(
            f"Invalid weather interval [{start}, {end}] in report {report_id}"
        )


class OverlappingWeatherIntervalError(ReportValidationError):
    """Two weather intervals in one report overlap."""

    code: str = "OVERLAPPING_WEATHER_INTERVAL"

    def __init__(
        self,
        report_id: str,
        first: tuple[int, int],
        second: tuple[int, int],
    ):
        self.report_id = report_id
        self.first = first
        self.second = second
        super().__init__(
            f"Weather intervals {list(first)} and {list(second)} overlap "
            f"in report {report_id}"
        )


class AttendanceMismatchError(ReportValidationError):
    """Attendance reference does not resolve, or resolves to another project/day."""

    code: str = "ATTENDANCE_MISMATCH"

    def __init__(self, report_id: str, attendance_id: str, reason: str):
        self.report_id = report_id
        self.attendance_id = attendance_id
        self.reason = reason
        super().__init__(
            f"Report {report_id} attendance {attendance_id}: {reason}"
        )


class DuplicateReportDateError(ReportValidationError):
    """Two accepted reports give the same task a value on the same date."""

    code: str = "DUPLICATE_REPORT_DATE"

    def __init__(
        self,
        report_id: str,
        task_id: str,
        report_date: date,
        conflicting_report_id: str,
    ):
        self.report_id = report_id
        self.task_id = task_id
        self.report_date = report_date
        self.conflicting_report_id = conflicting_report_id
        super().__init__(
            f"Task {task_id} already has a value on {report_date.isoformat()} "
            f"from report {conflicting_report_id}; report {report_id} conflicts"
        )


class DuplicateReportIdError(ReportValidationError):
    """A report id was submitted again after a report with that id was accepted."""

    code: str = "DUPLICATE_REPORT_ID"

    def __init__(self, report_id: str):
        self.report_id = report_id
        super().__init__(f"Report {report_id} was already accepted")


class InvalidAttendanceIntervalError(ReportValidationError):
    """Attendance exit precedes entry, or a time lies outside the day."""

    code: str = "INVALID_ATTENDANCE_INTERVAL"

    def __init__(
        self,
        attendance_id: str,
        user_id: str,
        entry_minute: int | None,
        exit_minute: int | None,
    ):
        self.attendance_id = attendance_id
        self.user_id = user_id
        self.entry_minute = entry_minute
        self.exit_minute = exit_minute
        super().__init__(
            f"Attendance {attendance_id} user {user_id}: invalid interval "
            f"entry={entry_minute} exit={exit_minute}"
        )


# Estimation


class EstimationError(ProgressKernelError):
    """Base exception for planned-estimation errors."""

    code: str = "ESTIMATION_ERROR"


class UnsortedEstimationError(EstimationError):
    """Estimation entries are not strictly increasing in date."""

    code: str = "UNSORTED_ESTIMATION"

    def __init__(self, task_id: str, previous: date, current: date):
        self.task_id = task_id
        self.previous = previous
        self.current = current
        super().__init__(
            f"Estimation for task {task_id} is not strictly increasing: "
            f"{current.isoformat()} follows {previous.isoformat()}"
        )


# Computation contract


class ComputationContractError(ProgressKernelError):
    """
    Base exception for invariant violations met during computation.

    Aggregation, variance and summary assume validated input; these
    indicate a caller skipped validation or ordering.
    """

    code: str = "COMPUTATION_CONTRACT_ERROR"


class UnsortedReportsError(ComputationContractError):
    """Reports for a task were supplied out of chronological order."""

    code: str = "UNSORTED_REPORTS"

    def __init__(self, task_id: str, previous: date, current: date):
        self.task_id = task_id
        self.previous = previous
        self.current = current
        super().__init__(
            f"Reports for task {task_id} are out of order: "
            f"{current.isoformat()} follows {previous.isoformat()}"
        )
