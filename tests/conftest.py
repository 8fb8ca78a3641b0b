"""
Pytest fixtures for the progress engine test suite.

Provides:
- Factory fixtures for projects, tasks, daily reports and attendance sheets
- A logging reset so structured-logging tests start from a clean state

All dates are expressed as day offsets from ``D0`` so scenarios read as
"report on day 3" rather than calendar arithmetic.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from progress_kernel.domain.models import (
    AttendanceEntry,
    Customer,
    CustomerReference,
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
    WeatherEntry,
)
from progress_kernel.domain.values import Volume
from progress_kernel.logging_config import LogContext, reset_logging

D0 = date(2024, 3, 1)

DEFAULT_GROUP = Group(id="G1", name="Earthworks")


def day(n: int) -> date:
    return D0 + timedelta(days=n)


@pytest.fixture(autouse=True)
def _clean_log_context():
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def make_task():
    def _make(
        task_id="T1",
        volume="200",
        unit="m3",
        group=DEFAULT_GROUP,
        cost=None,
        estimation=None,
        name=None,
    ) -> Task:
        if estimation is not None:
            estimation = [
                e if isinstance(e, Estimation) else Estimation(day(e[0]), Decimal(str(e[1])))
                for e in estimation
            ]
        return Task(
            id=task_id,
            group=group,
            name=name or f"Task {task_id}",
            volume=Volume.of(volume, unit),
            cost=cost,
            estimation=estimation,
        )

    return _make


@pytest.fixture
def make_project(make_task):
    def _make(tasks=None, users=("U1", "U2"), project_id="P1", value=None) -> Project:
        return Project(
            id=project_id,
            name=f"Project {project_id}",
            tasks=tuple(tasks) if tasks is not None else (make_task(),),
            users=tuple(ProjectUser(user_id=u, role="worker") for u in users),
            customer=Customer(id="C1", person=Person(id="CP1", name="Dana", role="owner")),
            value=value,
        )

    return _make


@pytest.fixture
def make_attendance():
    def _make(n=0, entries=None, attendance_id=None, project_id="P1") -> ProjectAttendance:
        if entries is None:
            entries = [AttendanceEntry("U1", "Ari", "worker", 480, 1020)]
        return ProjectAttendance(
            id=attendance_id or f"A{n}",
            project_id=project_id,
            date=day(n),
            users=tuple(entries),
        )

    return _make


@pytest.fixture
def make_report():
    def _make(
        report_id,
        n,
        values=None,
        plan=(),
        weather=None,
        attendance_id=None,
        project_id="P1",
    ) -> ProjectReport:
        values = values if values is not None else {}
        return ProjectReport(
            id=report_id,
            project_id=project_id,
            tasks=tuple(
                ReportTaskEntry(task_id=t, value=Decimal(str(v)))
                for t, v in values.items()
            ),
            plan=tuple(ReportPlanEntry(task_id=t) for t in plan),
            attendance_id=attendance_id or f"A{n}",
            user_id="U1",
            customer=CustomerReference(customer_id="C1", person_id="CP1"),
            date=day(n),
            weather=(
                None if weather is None else tuple(
                    WeatherEntry(start=s, end=e, condition=c) for s, e, c in weather
                )
            ),
        )

    return _make


@pytest.fixture
def outsourced_entry():
    def _make(user_id="X1", entry=420, exit=900) -> AttendanceEntry:
        return AttendanceEntry(
            user_id=user_id,
            name="Contract hand",
            role="helper",
            entry_minute=entry,
            exit_minute=exit,
            outsource=OutsourceWorker(id="O1", name="Labour Co"),
        )

    return _make


@pytest.fixture
def day_of():
    """``day_of(n)`` is the calendar date n days after D0."""
    return day
