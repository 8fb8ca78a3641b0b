"""
Pure domain layer.

This module contains immutable snapshots of projects, reports and
attendance with NO dependencies on:
- Persistence
- Time/clock
- I/O

Every engine consumes these objects read-only.
"""

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
from progress_kernel.domain.values import MinuteInterval, Volume

__all__ = [
    "AttendanceEntry",
    "Customer",
    "CustomerReference",
    "DocumentationEntry",
    "Estimation",
    "Group",
    "MinuteInterval",
    "OutsourceWorker",
    "Person",
    "Project",
    "ProjectAttendance",
    "ProjectReport",
    "ProjectUser",
    "ReportPlanEntry",
    "ReportTaskEntry",
    "Task",
    "Volume",
    "WeatherCondition",
    "WeatherEntry",
]
