"""
Field Progress Domain Models (``progress_kernel.domain.models``).

Responsibility
--------------
Frozen dataclass value objects for the nouns of field-construction
tracking: projects and their tasks, daily progress reports, and daily
attendance records. They carry no behaviour beyond lookups and
construction-time normalisation.

Architecture position
---------------------
**Kernel > Domain** -- pure data definitions with ZERO I/O. Produced by
ingestion collaborators, consumed read-only by every engine.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* Sequences are normalised to tuples at construction.
* Optional sections (estimation, report ids, cost, weather,
  documentation, detail lists) are ``None`` when absent; an empty tuple
  means "present and empty".
* Volumetric and cost fields use ``Decimal`` -- NEVER ``float``.
* A project lists each user at most once.

Failure modes
-------------
* Construction with an invalid weather condition raises ``ValueError``.
* Duplicate project users or duplicate task ids raise ``ValueError``.

Semantics that are *checked by engines* rather than here (weather and
attendance interval ranges, task references, estimation ordering) are left
unvalidated on purpose so a bad record can be returned to its producer as
a structured validation failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from progress_kernel.domain.values import MinuteInterval, Volume, to_decimal


def _tuple_or_none(value):
    if value is None:
        return None
    return tuple(value)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class WeatherCondition(str, Enum):
    """Closed set of weather conditions a crew can record."""
    SUNNY = "sunny"
    CLOUDY = "cloudy"
    RAINY = "rainy"
    HEAVY_RAIN = "heavy rain"

    @property
    def is_rain(self) -> bool:
        return self in (WeatherCondition.RAINY, WeatherCondition.HEAVY_RAIN)


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Person:
    """A named person at a customer."""
    id: str
    name: str
    role: str


@dataclass(frozen=True)
class Customer:
    """The customer a project is delivered to."""
    id: str
    person: Person


@dataclass(frozen=True)
class ProjectUser:
    """A member of the project's permanent roster."""
    user_id: str
    role: str


@dataclass(frozen=True)
class Group:
    """Label shared by many tasks. Tasks reference a group; they do not own it."""
    id: str
    name: str


@dataclass(frozen=True)
class Estimation:
    """Planned cumulative value for a task as of a date."""
    date: date
    value: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", to_decimal(self.value))


@dataclass(frozen=True)
class Task:
    """A unit of project work with a volumetric completion target.

    ``estimation`` is expected strictly increasing in date; ordering is
    checked when the sequence is consumed, not here. ``report_ids`` is a
    denormalised back-reference kept for round-tripping source records;
    engines rebuild it from the report list instead of trusting it.
    """
    id: str
    group: Group
    name: str
    volume: Volume
    cost: Decimal | None = None
    estimation: tuple[Estimation, ...] | None = None
    report_ids: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        if self.cost is not None:
            object.__setattr__(self, "cost", to_decimal(self.cost))
        object.__setattr__(self, "estimation", _tuple_or_none(self.estimation))
        object.__setattr__(self, "report_ids", _tuple_or_none(self.report_ids))


@dataclass(frozen=True)
class Project:
    """A project snapshot: tasks, roster and customer."""
    id: str
    name: str
    tasks: tuple[Task, ...]
    users: tuple[ProjectUser, ...]
    customer: Customer
    value: Decimal | None = None  # contract value

    def __post_init__(self) -> None:
        object.__setattr__(self, "tasks", tuple(self.tasks))
        object.__setattr__(self, "users", tuple(self.users))
        if self.value is not None:
            object.__setattr__(self, "value", to_decimal(self.value))

        task_ids = [t.id for t in self.tasks]
        if len(task_ids) != len(set(task_ids)):
            raise ValueError(f"Project {self.id} has duplicate task ids")
        user_ids = [u.user_id for u in self.users]
        if len(user_ids) != len(set(user_ids)):
            raise ValueError(f"Project {self.id} lists a user more than once")

    @property
    def task_ids(self) -> frozenset[str]:
        return frozenset(t.id for t in self.tasks)

    @property
    def roster_ids(self) -> frozenset[str]:
        return frozenset(u.user_id for u in self.users)

    def get_task(self, task_id: str) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def groups(self) -> Mapping[str, Group]:
        """Lookup of the groups referenced by this project's tasks, by id."""
        found: dict[str, Group] = {}
        for task in self.tasks:
            found.setdefault(task.group.id, task.group)
        return MappingProxyType(found)


# ---------------------------------------------------------------------------
# Daily report
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReportTaskEntry:
    """That day's incremental progress on one task."""
    task_id: str
    value: Decimal
    details: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", to_decimal(self.value))
        object.__setattr__(self, "details", _tuple_or_none(self.details))


@dataclass(frozen=True)
class ReportPlanEntry:
    """A checklist item: the task was planned for that day."""
    task_id: str
    details: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "details", _tuple_or_none(self.details))


@dataclass(frozen=True)
class WeatherEntry:
    """Weather observed over a time-of-day span (minute offsets)."""
    start: int
    end: int
    condition: WeatherCondition

    def __post_init__(self) -> None:
        object.__setattr__(self, "condition", WeatherCondition(self.condition))

    @property
    def interval(self) -> MinuteInterval:
        return MinuteInterval(self.start, self.end)


@dataclass(frozen=True)
class DocumentationEntry:
    """Reference to a site photo; storage lives outside the engine."""
    image_url: str
    description: str | None = None


@dataclass(frozen=True)
class CustomerReference:
    """Customer and customer person a report was filed for."""
    customer_id: str
    person_id: str


@dataclass(frozen=True)
class ProjectReport:
    """A crew's daily report for one project."""
    id: str
    project_id: str
    tasks: tuple[ReportTaskEntry, ...]
    plan: tuple[ReportPlanEntry, ...]
    attendance_id: str
    user_id: str
    customer: CustomerReference
    date: date
    weather: tuple[WeatherEntry, ...] | None = None
    documentation: tuple[DocumentationEntry, ...] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "tasks", tuple(self.tasks))
        object.__setattr__(self, "plan", tuple(self.plan))
        object.__setattr__(self, "weather", _tuple_or_none(self.weather))
        object.__setattr__(
            self, "documentation", _tuple_or_none(self.documentation)
        )

    def value_for(self, task_id: str) -> ReportTaskEntry | None:
        for entry in self.tasks:
            if entry.task_id == task_id:
                return entry
        return None

    @property
    def planned_task_ids(self) -> frozenset[str]:
        return frozenset(p.task_id for p in self.plan)


# ---------------------------------------------------------------------------
# Attendance
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OutsourceWorker:
    """Reference to the outsourcing party a non-roster worker came from."""
    id: str
    name: str


@dataclass(frozen=True)
class AttendanceEntry:
    """One person's presence on site; times are minute offsets within the day.

    An entry without ``exit_minute`` is still open. Neither missing time
    means zero presence.
    """
    user_id: str
    name: str
    role: str
    entry_minute: int | None = None
    exit_minute: int | None = None
    outsource: OutsourceWorker | None = None

    @property
    def is_outsourced(self) -> bool:
        return self.outsource is not None


@dataclass(frozen=True)
class ProjectAttendance:
    """Attendance sheet for one project on one day."""
    id: str
    project_id: str
    date: date
    users: tuple[AttendanceEntry, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "users", tuple(self.users))
