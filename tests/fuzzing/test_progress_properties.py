"""
Property-based tests for the progress engines.

Generates report and estimation sequences with Hypothesis and checks the
invariants every timeline and variance series must hold whatever the
inputs:

- Cumulative progress is the running sum and never decreases
- Aggregation is idempotent
- percent_complete stays within [0, 1] and reads 1 only at the target
- Planned values follow the latest estimation on or before each date
- Volume-weighted completion stays within [0, 1]
"""

from datetime import date, timedelta
from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from progress_engines.aggregation import ProgressAggregator
from progress_engines.summary import ProjectSummarizer, SummaryPolicy
from progress_engines.variance import VarianceCalculator, VarianceStatus
from progress_kernel.domain.models import (
    Customer,
    CustomerReference,
    Estimation,
    Group,
    Person,
    Project,
    ProjectReport,
    ProjectUser,
    ReportTaskEntry,
    Task,
)
from progress_kernel.domain.values import Volume

START = date(2024, 3, 1)
GROUP = Group(id="G1", name="Earthworks")

increments = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("1000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
volumes = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("5000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
gaps = st.integers(min_value=1, max_value=5)

# The autouse log reset runs once per test, not once per example.
SUPPRESSED = [HealthCheck.too_slow, HealthCheck.function_scoped_fixture]


def _task(task_id="T1", volume="200", estimation=None) -> Task:
    return Task(
        id=task_id,
        group=GROUP,
        name=f"Task {task_id}",
        volume=Volume.of(volume, "m3"),
        estimation=estimation,
    )


def _dates(day_gaps):
    current = START
    out = []
    for gap in day_gaps:
        current += timedelta(days=gap)
        out.append(current)
    return out


def _reports(task_id, values, day_gaps):
    return [
        ProjectReport(
            id=f"R{i}",
            project_id="P1",
            tasks=(ReportTaskEntry(task_id=task_id, value=value),),
            plan=(),
            attendance_id=f"A{i}",
            user_id="U1",
            customer=CustomerReference(customer_id="C1", person_id="CP1"),
            date=when,
        )
        for i, (value, when) in enumerate(zip(values, _dates(day_gaps)))
    ]


def _project(tasks) -> Project:
    return Project(
        id="P1",
        name="Project P1",
        tasks=tuple(tasks),
        users=(ProjectUser(user_id="U1", role="worker"),),
        customer=Customer(id="C1", person=Person(id="CP1", name="Dana", role="owner")),
    )


@st.composite
def report_days(draw, max_size=15):
    values = draw(st.lists(increments, max_size=max_size))
    day_gaps = draw(st.lists(gaps, min_size=len(values), max_size=len(values)))
    return values, day_gaps


class TestTimelineProperties:

    @given(days=report_days())
    @settings(max_examples=200, suppress_health_check=SUPPRESSED)
    def test_cumulative_is_running_sum(self, days):
        values, day_gaps = days
        timeline = ProgressAggregator().aggregate(_task(), _reports("T1", values, day_gaps))

        assert len(timeline.points) == len(values)
        running = Decimal("0")
        previous = Decimal("0")
        for value, point in zip(values, timeline.points):
            running += value
            assert point.cumulative == running
            assert point.cumulative >= previous
            previous = point.cumulative
        assert timeline.cumulative == sum(values, Decimal("0"))

    @given(days=report_days())
    @settings(max_examples=100, suppress_health_check=SUPPRESSED)
    def test_aggregation_is_idempotent(self, days):
        values, day_gaps = days
        task = _task()
        reports = _reports("T1", values, day_gaps)
        aggregator = ProgressAggregator()
        assert aggregator.aggregate(task, reports) == aggregator.aggregate(task, reports)

    @given(days=report_days(), volume=volumes)
    @settings(max_examples=200, suppress_health_check=SUPPRESSED)
    def test_percent_complete_bounds(self, days, volume):
        values, day_gaps = days
        timeline = ProgressAggregator().aggregate(
            _task(volume=volume), _reports("T1", values, day_gaps),
        )
        percent = timeline.percent_complete

        assert Decimal("0") <= percent <= Decimal("1")
        assert (percent == Decimal("1")) == (timeline.cumulative >= volume)
        assert timeline.raw_ratio <= timeline.cumulative / volume
        assert timeline.is_over_reported == (timeline.cumulative > volume)


class TestVarianceProperties:

    @given(
        days=report_days(),
        plan_offsets=st.lists(st.integers(min_value=0, max_value=60), unique=True, max_size=8),
        plan_values=st.lists(increments, min_size=8, max_size=8),
    )
    @settings(max_examples=200, suppress_health_check=SUPPRESSED)
    def test_planned_value_is_latest_estimation(self, days, plan_offsets, plan_values):
        values, day_gaps = days
        estimation = [
            Estimation(START + timedelta(days=offset), value)
            for offset, value in zip(sorted(plan_offsets), plan_values)
        ]
        task = _task(estimation=estimation)
        timeline = ProgressAggregator().aggregate(task, _reports("T1", values, day_gaps))
        series = VarianceCalculator().variance_for_task(task, timeline)

        assert len(series.points) == len(timeline.points)
        for point in series.points:
            earlier = [e for e in estimation if e.date <= point.date]
            if not earlier:
                assert point.status == VarianceStatus.NO_ESTIMATE
                assert point.planned_cumulative is None
                continue
            assert point.status == VarianceStatus.MEASURED
            assert point.estimation_date == earlier[-1].date
            assert point.planned_cumulative == earlier[-1].value
            assert point.schedule_variance == point.actual_cumulative - earlier[-1].value


class TestSummaryProperties:

    @given(
        first=report_days(max_size=6),
        second=report_days(max_size=6),
        volume_a=volumes,
        volume_b=volumes,
    )
    @settings(max_examples=100, suppress_health_check=SUPPRESSED)
    def test_weighted_completion_in_unit_range(self, first, second, volume_a, volume_b):
        project = _project([_task("T1", volume_a), _task("T2", volume_b)])
        reports = _reports("T1", *first)
        aggregator = ProgressAggregator()
        calculator = VarianceCalculator()
        timelines = {
            "T1": aggregator.aggregate(project.tasks[0], reports),
            "T2": aggregator.aggregate(project.tasks[1], _reports("T2", *second)),
        }
        series = {
            task.id: calculator.variance_for_task(task, timelines[task.id])
            for task in project.tasks
        }

        summary = ProjectSummarizer(SummaryPolicy()).summarize(project, timelines, series, ())

        assert Decimal("0") <= summary.weighted_completion <= Decimal("1")
        complete = all(
            timelines[t.id].cumulative >= t.volume.value for t in project.tasks
        )
        assert (summary.weighted_completion == Decimal("1")) == complete
