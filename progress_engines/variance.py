"""
progress_engines.variance -- Schedule variance of actual progress against plan.

Responsibility:
    Compare a task's cumulative-progress timeline with its planned
    estimation checkpoints and produce one variance point per report
    date.  When the task carries a cost, each point also carries earned
    value figures (planned value, earned value, SPI).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import progress_kernel and sibling engine modules.

Invariants enforced:
    - Estimation is a step function: the plan as of a report date is the
      latest estimation entry dated on or before it.
    - No estimation on or before a date => status NO_ESTIMATE and every
      figure is None.  Unknown is never coerced to zero.
    - varianceRatio is None when the planned cumulative is zero.
    - One point per timeline point, in chronological order.
    - Purity: identical inputs produce identical outputs.

Failure modes:
    - UnsortedEstimationError if estimation dates are not strictly
      increasing (raised at consumption time; the engine never sorts).

Usage:
    from progress_engines.variance import VarianceCalculator

    series = VarianceCalculator().variance(timeline, task.estimation)
    series.latest.schedule_variance   # Decimal("50"), ahead of plan
"""

from __future__ import annotations

import bisect
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from progress_engines.aggregation import ProgressTimeline
from progress_engines.tracer import traced_engine
from progress_engines.validation import find_estimation_disorder
from progress_kernel.domain.models import Estimation, Task
from progress_kernel.domain.values import AMOUNT_QUANTUM, RATIO_QUANTUM
from progress_kernel.logging_config import get_logger

logger = get_logger("engines.variance")

ZERO = Decimal("0")
ONE = Decimal("1")


class VarianceStatus(str, Enum):
    """Whether a plan figure existed for the point."""

    MEASURED = "measured"
    NO_ESTIMATE = "no_estimate"  # no estimation on or before the report date


@dataclass(frozen=True)
class VariancePoint:
    """
    Actual vs planned cumulative progress at one report date.

    All plan-derived fields are None when ``status`` is NO_ESTIMATE.
    """

    date: date
    report_id: str
    actual_cumulative: Decimal
    status: VarianceStatus
    estimation_date: date | None = None
    planned_cumulative: Decimal | None = None
    schedule_variance: Decimal | None = None  # actual - planned; >0 ahead
    variance_ratio: Decimal | None = None  # actual / planned
    planned_value: Decimal | None = None  # cost-weighted plan (BCWS)
    earned_value: Decimal | None = None  # cost-weighted actual (BCWP)
    spi: Decimal | None = None  # earned / planned value

    @property
    def is_known(self) -> bool:
        return self.status == VarianceStatus.MEASURED

    @property
    def value_variance(self) -> Decimal | None:
        """Earned value minus planned value, when both are known."""
        if self.earned_value is None or self.planned_value is None:
            return None
        return self.earned_value - self.planned_value

    def is_behind(self, tolerance: Decimal) -> bool:
        """True when actual trails plan by more than ``tolerance`` x planned.

        Unknown points are never behind.
        """
        if not self.is_known:
            return False
        shortfall = -self.schedule_variance
        return shortfall > tolerance * self.planned_cumulative


@dataclass(frozen=True)
class VarianceSeries:
    """Variance points for one task, one per report date, oldest first."""

    task_id: str
    points: tuple[VariancePoint, ...] = ()

    @property
    def latest(self) -> VariancePoint | None:
        if not self.points:
            return None
        return self.points[-1]

    @property
    def latest_known(self) -> VariancePoint | None:
        for point in reversed(self.points):
            if point.is_known:
                return point
        return None

    @property
    def unknown_count(self) -> int:
        return sum(1 for p in self.points if not p.is_known)


# ---------------------------------------------------------------------------
# Earned value helpers
# ---------------------------------------------------------------------------


def cost_weighted_value(
    cost: Decimal,
    cumulative: Decimal,
    target: Decimal,
) -> Decimal:
    """cost x min(1, cumulative / target), to cents.  Target must be positive."""
    share = min(ONE, cumulative / target)
    return (cost * share).quantize(AMOUNT_QUANTUM)


def schedule_performance_index(
    earned_value: Decimal,
    planned_value: Decimal,
) -> Decimal | None:
    """SPI = EV / PV. >1 = ahead of schedule.  None when PV is zero."""
    if planned_value == ZERO:
        return None
    return (earned_value / planned_value).quantize(RATIO_QUANTUM)


# ---------------------------------------------------------------------------
# Calculator
# ---------------------------------------------------------------------------


class VarianceCalculator:
    """
    Pure function calculator for schedule variance.

    Contract:
        No I/O, no clock access, fully deterministic.  The estimation
        sequence must already be strictly increasing in date.
    Guarantees:
        - ``scheduleVariance`` = actual cumulative - planned cumulative.
        - ``varianceRatio`` = actual / planned when planned > 0.
        - NO_ESTIMATE points carry no figures.
    Non-goals:
        - Does not interpolate between estimation checkpoints.
        - Does not judge project health (see ``ProjectSummarizer``).
    """

    @traced_engine(
        "variance", "1.0",
        fingerprint_fields=("timeline", "estimation", "cost"),
    )
    def variance(
        self,
        timeline: ProgressTimeline,
        estimation: Sequence[Estimation] | None,
        cost: Decimal | None = None,
    ) -> VarianceSeries:
        """
        Compute one variance point per timeline point.

        Args:
            timeline: The task's cumulative progress timeline.
            estimation: Planned (date, cumulative value) checkpoints,
                strictly increasing in date; None when the task has no plan.
            cost: Optional task cost; enables earned value figures when the
                timeline target is positive.

        Returns:
            VarianceSeries in chronological order.

        Raises:
            UnsortedEstimationError: If estimation dates are not strictly
                increasing.
        """
        logger.info("variance_started", extra={
            "task_id": timeline.task_id,
            "timeline_points": len(timeline.points),
            "estimation_entries": len(estimation) if estimation is not None else None,
        })

        checkpoints = tuple(estimation) if estimation is not None else ()
        disorder = find_estimation_disorder(timeline.task_id, checkpoints)
        if disorder is not None:
            logger.error("variance_unsorted_estimation", extra={
                "task_id": timeline.task_id,
                "previous": disorder.previous,
                "current": disorder.current,
            })
            raise disorder

        checkpoint_dates = [c.date for c in checkpoints]
        with_value = cost is not None and timeline.target.is_positive

        points: list[VariancePoint] = []
        for point in timeline.points:
            idx = bisect.bisect_right(checkpoint_dates, point.date) - 1
            earned = (
                cost_weighted_value(cost, point.cumulative, timeline.target.value)
                if with_value else None
            )
            if idx < 0:
                points.append(VariancePoint(
                    date=point.date,
                    report_id=point.report_id,
                    actual_cumulative=point.cumulative,
                    status=VarianceStatus.NO_ESTIMATE,
                    earned_value=earned,
                ))
                continue

            checkpoint = checkpoints[idx]
            planned = checkpoint.value
            ratio = None
            if planned > ZERO:
                ratio = (point.cumulative / planned).quantize(RATIO_QUANTUM)

            planned_value = None
            spi = None
            if with_value:
                planned_value = cost_weighted_value(
                    cost, planned, timeline.target.value,
                )
                spi = schedule_performance_index(earned, planned_value)

            points.append(VariancePoint(
                date=point.date,
                report_id=point.report_id,
                actual_cumulative=point.cumulative,
                status=VarianceStatus.MEASURED,
                estimation_date=checkpoint.date,
                planned_cumulative=planned,
                schedule_variance=point.cumulative - planned,
                variance_ratio=ratio,
                planned_value=planned_value,
                earned_value=earned,
                spi=spi,
            ))

        series = VarianceSeries(task_id=timeline.task_id, points=tuple(points))
        latest = series.latest
        logger.info("variance_completed", extra={
            "task_id": timeline.task_id,
            "points": len(series.points),
            "unknown_points": series.unknown_count,
            "latest_schedule_variance": (
                latest.schedule_variance if latest is not None else None
            ),
        })
        return series

    def variance_for_task(
        self,
        task: Task,
        timeline: ProgressTimeline,
    ) -> VarianceSeries:
        """Variance using the task's own estimation and cost."""
        return self.variance(timeline, task.estimation, cost=task.cost)
