"""
Attendance Reconciler (``progress_engines.attendance``).

Responsibility
--------------
Derive per-person worked time and crew-presence totals for one project
day from its attendance sheet, independent of progress.

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO clock reads.
Times are minute offsets supplied by the caller.

Invariants enforced
-------------------
* minutes worked = exit - entry, in the sheet's own unit (minutes).
* Open attendance (entry, no exit) and a missing entry are Unknown,
  never zero; the two are distinguished by ``HoursStatus``.
* Outsourced workers are totalled separately from regular users.
* Crew size counts distinct user ids, split regular vs outsourced.

Failure modes
-------------
* Raises ``InvalidAttendanceIntervalError`` if an exit precedes its entry
  or a time lies outside 0-1439 (the sheet should have been validated).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from progress_engines.tracer import traced_engine
from progress_engines.validation import find_attendance_violation
from progress_kernel.domain.models import AttendanceEntry, Project, ProjectAttendance
from progress_kernel.domain.values import AMOUNT_QUANTUM
from progress_kernel.logging_config import get_logger

logger = get_logger("engines.attendance")

MINUTES_PER_HOUR = Decimal("60")


class HoursStatus(str, Enum):
    """How a person's worked time is known."""

    RECORDED = "recorded"
    OPEN = "open"  # entered, not yet exited
    MISSING_ENTRY = "missing_entry"  # data gap


def minutes_to_hours(minutes: int) -> Decimal:
    return (Decimal(minutes) / MINUTES_PER_HOUR).quantize(AMOUNT_QUANTUM)


@dataclass(frozen=True)
class AttendanceLine:
    """One attendance entry with its derived worked time."""

    user_id: str
    name: str
    role: str
    status: HoursStatus
    minutes_worked: int | None = None
    outsource_id: str | None = None

    @property
    def is_outsourced(self) -> bool:
        return self.outsource_id is not None

    @property
    def hours_worked(self) -> Decimal | None:
        if self.minutes_worked is None:
            return None
        return minutes_to_hours(self.minutes_worked)


@dataclass(frozen=True)
class CrewTotals:
    """Totals for one side of the crew (regular or outsourced)."""

    headcount: int = 0
    known_minutes: int = 0
    unknown_entries: int = 0

    @property
    def known_hours(self) -> Decimal:
        return minutes_to_hours(self.known_minutes)

    @property
    def is_complete(self) -> bool:
        """True when every entry on this side has a known worked time."""
        return self.unknown_entries == 0


@dataclass(frozen=True)
class AttendanceSummary:
    """
    Worked time and crew presence for one project day.

    ``known_minutes`` totals only RECORDED entries; consumers must check
    ``unknown_entries`` before treating a total as the full day.
    """

    attendance_id: str
    project_id: str
    date: date
    lines: tuple[AttendanceLine, ...]
    regular: CrewTotals
    outsourced: CrewTotals
    off_roster_user_ids: tuple[str, ...] = ()

    @property
    def crew_size(self) -> int:
        return self.regular.headcount + self.outsourced.headcount

    @property
    def known_minutes(self) -> int:
        return self.regular.known_minutes + self.outsourced.known_minutes

    @property
    def unknown_entries(self) -> int:
        return self.regular.unknown_entries + self.outsourced.unknown_entries


def reconcile_entry(entry: AttendanceEntry) -> AttendanceLine:
    """Derive one line; assumes the interval has been validated."""
    outsource_id = entry.outsource.id if entry.outsource is not None else None
    if entry.entry_minute is None:
        status, minutes = HoursStatus.MISSING_ENTRY, None
    elif entry.exit_minute is None:
        status, minutes = HoursStatus.OPEN, None
    else:
        status, minutes = HoursStatus.RECORDED, entry.exit_minute - entry.entry_minute
    return AttendanceLine(
        user_id=entry.user_id,
        name=entry.name,
        role=entry.role,
        status=status,
        minutes_worked=minutes,
        outsource_id=outsource_id,
    )


def _totals(lines: list[AttendanceLine]) -> CrewTotals:
    return CrewTotals(
        headcount=len({line.user_id for line in lines}),
        known_minutes=sum(
            line.minutes_worked for line in lines if line.minutes_worked is not None
        ),
        unknown_entries=sum(1 for line in lines if line.minutes_worked is None),
    )


class AttendanceReconciler:
    """
    Pure reconciler for daily attendance sheets.

    Contract:
        No I/O, fully deterministic.
    Guarantees:
        - One ``AttendanceLine`` per sheet entry, in sheet order.
        - Regular and outsourced totals never mix.
    Non-goals:
        - Does not compute pay, overtime, or breaks.
    """

    @traced_engine("attendance", "1.0", fingerprint_fields=("attendance",))
    def reconcile(
        self,
        attendance: ProjectAttendance,
        project: Project | None = None,
    ) -> AttendanceSummary:
        """
        Summarize one attendance sheet.

        Args:
            attendance: The day's sheet.
            project: Optional project snapshot; when given, regular entries
                whose user is not on the project roster are listed in
                ``off_roster_user_ids``.

        Raises:
            InvalidAttendanceIntervalError: exit before entry, or a time
                outside the day.
        """
        logger.info("attendance_reconcile_started", extra={
            "attendance_id": attendance.id,
            "project_id": attendance.project_id,
            "attendance_date": attendance.date,
            "entries": len(attendance.users),
        })

        violation = find_attendance_violation(attendance)
        if violation is not None:
            logger.error("attendance_invalid_interval", extra={
                "attendance_id": attendance.id,
                "user_id": violation.user_id,
            })
            raise violation

        lines = [reconcile_entry(entry) for entry in attendance.users]
        regular = [line for line in lines if not line.is_outsourced]
        outsourced = [line for line in lines if line.is_outsourced]

        off_roster: tuple[str, ...] = ()
        if project is not None:
            roster = project.roster_ids
            off_roster = tuple(dict.fromkeys(
                line.user_id for line in regular if line.user_id not in roster
            ))

        summary = AttendanceSummary(
            attendance_id=attendance.id,
            project_id=attendance.project_id,
            date=attendance.date,
            lines=tuple(lines),
            regular=_totals(regular),
            outsourced=_totals(outsourced),
            off_roster_user_ids=off_roster,
        )

        logger.info("attendance_reconcile_completed", extra={
            "attendance_id": attendance.id,
            "crew_size": summary.crew_size,
            "regular_headcount": summary.regular.headcount,
            "outsourced_headcount": summary.outsourced.headcount,
            "known_minutes": summary.known_minutes,
            "unknown_entries": summary.unknown_entries,
        })
        return summary
