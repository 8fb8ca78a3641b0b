"""
Document mapping (``progress_ingestion.mapping``).

Responsibility
--------------
Map raw document snapshots, as stored by the field application
(``_id``-keyed projects, reports and attendance sheets), into frozen
``progress_kernel.domain`` value objects.

Architecture position
---------------------
**Ingestion layer** -- no I/O here; ``adapters`` reads files.  May import
``progress_kernel`` only.

Invariants enforced
-------------------
* Absent optional sections stay ``None``; present-but-empty become ``()``.
* Tasks naming the same group id share a single ``Group`` instance.
* Dates accept ISO dates or ISO datetimes; only the calendar day is kept.

Failure modes
-------------
* ``ValueError`` naming the document path for missing required keys,
  bad dates, or unknown weather conditions.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from progress_kernel.domain.models import (
    AttendanceEntry,
    Customer,
    CustomerReference,
    DocumentationEntry,
    Estimation,
    Group,
    OutsourceWorker,
    Person,
    Project,
    ProjectAttendance,
    ProjectReport,
    ProjectUser,
    ReportPlanEntry,
    ReportTaskEntry,
    Task,
    WeatherCondition,
    WeatherEntry,
)
from progress_kernel.domain.values import Volume


def _require(doc: dict[str, Any], key: str, where: str) -> Any:
    if not isinstance(doc, dict):
        raise ValueError(f"{where}: expected an object, got {type(doc).__name__}")
    if key not in doc or doc[key] is None:
        raise ValueError(f"{where}: missing required key '{key}'")
    return doc[key]


def _optional_list(doc: dict[str, Any], key: str) -> list[Any] | None:
    if not isinstance(doc, dict):
        raise ValueError(f"expected an object holding '{key}', got {type(doc).__name__}")
    value = doc.get(key)
    if value is None:
        return None
    if not isinstance(value, list):
        raise ValueError(f"'{key}' must be a list, got {type(value).__name__}")
    return value


def parse_date(value: Any, where: str = "date") -> date:
    """Parse a calendar date from a date, datetime, or ISO string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError as e:
            raise ValueError(f"{where}: invalid date {value!r}") from e
    raise ValueError(f"{where}: cannot parse date from {value!r}")


def _details(doc: dict[str, Any]) -> tuple[str, ...] | None:
    detail = _optional_list(doc, "detail")
    if detail is None:
        return None
    return tuple(str(d) for d in detail)


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------


def parse_task(
    doc: dict[str, Any],
    groups: dict[str, Group] | None = None,
    where: str = "task",
) -> Task:
    """Parse one task; ``groups`` is the shared group cache of the project."""
    groups = groups if groups is not None else {}
    group_doc = _require(doc, "group", where)
    group_id = str(_require(group_doc, "_id", f"{where}.group"))
    group = groups.get(group_id)
    if group is None:
        group = Group(id=group_id, name=str(group_doc.get("name", "")))
        groups[group_id] = group

    volume_doc = _require(doc, "volume", where)
    estimation = _optional_list(doc, "estimation")
    report_ids = _optional_list(doc, "report_id")

    return Task(
        id=str(_require(doc, "_id", where)),
        group=group,
        name=str(doc.get("name", "")),
        volume=Volume.of(
            _require(volume_doc, "value", f"{where}.volume"),
            str(volume_doc.get("unit", "")),
        ),
        cost=doc.get("cost"),
        estimation=None if estimation is None else tuple(
            Estimation(
                date=parse_date(
                    _require(e, "date", f"{where}.estimation[{i}]"),
                    f"{where}.estimation[{i}].date",
                ),
                value=_require(e, "value", f"{where}.estimation[{i}]"),
            )
            for i, e in enumerate(estimation)
        ),
        report_ids=None if report_ids is None else tuple(str(r) for r in report_ids),
    )


def parse_project(doc: dict[str, Any]) -> Project:
    """Parse a project document with its tasks, roster and customer."""
    where = "project"
    groups: dict[str, Group] = {}
    tasks = tuple(
        parse_task(t, groups, f"{where}.task[{i}]")
        for i, t in enumerate(_optional_list(doc, "task") or [])
    )
    users = tuple(
        ProjectUser(
            user_id=str(_require(u, "user_id", f"{where}.user[{i}]")),
            role=str(u.get("role", "")),
        )
        for i, u in enumerate(_optional_list(doc, "user") or [])
    )
    customer_doc = _require(doc, "customer", where)
    person_doc = _require(customer_doc, "person", f"{where}.customer")
    customer = Customer(
        id=str(_require(customer_doc, "_id", f"{where}.customer")),
        person=Person(
            id=str(_require(person_doc, "_id", f"{where}.customer.person")),
            name=str(person_doc.get("name", "")),
            role=str(person_doc.get("role", "")),
        ),
    )
    return Project(
        id=str(_require(doc, "_id", where)),
        name=str(doc.get("name", "")),
        tasks=tasks,
        users=users,
        customer=customer,
        value=doc.get("value"),
    )


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


def parse_weather(doc: dict[str, Any], where: str = "weather") -> WeatherEntry:
    time_span = _require(doc, "time", where)
    if not isinstance(time_span, (list, tuple)) or len(time_span) != 2:
        raise ValueError(f"{where}.time: expected [start, end], got {time_span!r}")
    condition = _require(doc, "condition", where)
    try:
        parsed = WeatherCondition(condition)
    except ValueError as e:
        raise ValueError(f"{where}.condition: unknown condition {condition!r}") from e
    return WeatherEntry(start=int(time_span[0]), end=int(time_span[1]), condition=parsed)


def parse_report(doc: dict[str, Any]) -> ProjectReport:
    """Parse a daily report document."""
    where = f"report {doc.get('_id', '?')}" if isinstance(doc, dict) else "report"
    weather = _optional_list(doc, "weather")
    documentation = _optional_list(doc, "documentation")
    customer_doc = _require(doc, "customer", where)

    return ProjectReport(
        id=str(_require(doc, "_id", where)),
        project_id=str(_require(doc, "project_id", where)),
        tasks=tuple(
            ReportTaskEntry(
                task_id=str(_require(t, "_id", f"{where}.task[{i}]")),
                value=_require(t, "value", f"{where}.task[{i}]"),
                details=_details(t),
            )
            for i, t in enumerate(_optional_list(doc, "task") or [])
        ),
        plan=tuple(
            ReportPlanEntry(
                task_id=str(_require(p, "task_id", f"{where}.plan[{i}]")),
                details=_details(p),
            )
            for i, p in enumerate(_optional_list(doc, "plan") or [])
        ),
        attendance_id=str(_require(doc, "attendance_id", where)),
        user_id=str(_require(doc, "user_id", where)),
        customer=CustomerReference(
            customer_id=str(_require(customer_doc, "_id", f"{where}.customer")),
            person_id=str(_require(customer_doc, "person_id", f"{where}.customer")),
        ),
        date=parse_date(_require(doc, "date", where), f"{where}.date"),
        weather=None if weather is None else tuple(
            parse_weather(w, f"{where}.weather[{i}]") for i, w in enumerate(weather)
        ),
        documentation=None if documentation is None else tuple(
            DocumentationEntry(
                image_url=str(_require(d, "image_url", f"{where}.documentation[{i}]")),
                description=d.get("description"),
            )
            for i, d in enumerate(documentation)
        ),
    )


# ---------------------------------------------------------------------------
# Attendance
# ---------------------------------------------------------------------------


def _optional_minute(doc: dict[str, Any], key: str, where: str) -> int | None:
    value = doc.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{where}.{key}: expected minutes, got {value!r}")
    return int(value)


def parse_attendance(doc: dict[str, Any]) -> ProjectAttendance:
    """Parse a daily attendance sheet document."""
    where = f"attendance {doc.get('_id', '?')}" if isinstance(doc, dict) else "attendance"
    entries = []
    for i, u in enumerate(_optional_list(doc, "user") or []):
        at = f"{where}.user[{i}]"
        user_id = str(_require(u, "_id", at))
        outsource_doc = u.get("outsource")
        entries.append(AttendanceEntry(
            user_id=user_id,
            name=str(u.get("name", "")),
            role=str(u.get("role", "")),
            entry_minute=_optional_minute(u, "entry", at),
            exit_minute=_optional_minute(u, "exit", at),
            outsource=None if outsource_doc is None else OutsourceWorker(
                id=str(_require(outsource_doc, "_id", f"{at}.outsource")),
                name=str(outsource_doc.get("name", "")),
            ),
        ))
    return ProjectAttendance(
        id=str(_require(doc, "_id", where)),
        project_id=str(_require(doc, "project_id", where)),
        date=parse_date(_require(doc, "date", where), f"{where}.date"),
        users=tuple(entries),
    )
