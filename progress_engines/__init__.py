"""
Module: progress_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    higher layers (progress_services, scripts).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import progress_kernel (and sibling engine modules).
    MUST NOT import progress_config, progress_ingestion or
    progress_services.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Report and attendance dates arrive as explicit inputs.
    - Decimal-only arithmetic for volumes, ratios and costs.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every engine invocation is traced via ``@traced_engine`` (see
    ``progress_engines.tracer``), emitting PROGRESS_ENGINE_TRACE log
    records with engine name, version, input fingerprint and duration.

Usage:
    from progress_engines import (
        ReportValidator, ProgressAggregator, VarianceCalculator,
        AttendanceReconciler, ProjectSummarizer,
    )
"""

from progress_kernel.logging_config import get_logger

logger = get_logger("engines")

from progress_engines.aggregation import (
    ProgressAggregator,
    ProgressPoint,
    ProgressTimeline,
    build_task_report_index,
)
from progress_engines.attendance import (
    AttendanceLine,
    AttendanceReconciler,
    AttendanceSummary,
    CrewTotals,
    HoursStatus,
)
from progress_engines.summary import (
    AttendanceRollup,
    DailyCrew,
    GroupSummary,
    HealthStatus,
    ProjectSummarizer,
    ProjectSummary,
    SummaryPolicy,
    TaskSummary,
)
from progress_engines.tracer import compute_input_fingerprint, traced_engine
from progress_engines.validation import (
    ReportValidator,
    ValidatedReport,
    ValidationOutcome,
)
from progress_engines.variance import (
    VarianceCalculator,
    VariancePoint,
    VarianceSeries,
    VarianceStatus,
)

__all__ = [
    "AttendanceLine",
    "AttendanceReconciler",
    "AttendanceRollup",
    "AttendanceSummary",
    "CrewTotals",
    "DailyCrew",
    "GroupSummary",
    "HealthStatus",
    "HoursStatus",
    "ProgressAggregator",
    "ProgressPoint",
    "ProgressTimeline",
    "ProjectSummarizer",
    "ProjectSummary",
    "ReportValidator",
    "SummaryPolicy",
    "TaskSummary",
    "ValidatedReport",
    "ValidationOutcome",
    "VarianceCalculator",
    "VariancePoint",
    "VarianceSeries",
    "VarianceStatus",
    "build_task_report_index",
    "compute_input_fingerprint",
    "traced_engine",
]
