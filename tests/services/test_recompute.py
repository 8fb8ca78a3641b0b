"""
Tests for ProjectRecomputeService and the JSON export of its results.

Covers:
- Full pipeline over a small project
- Rejected reports and attendance sheets are reported, not raised
- A report id is accepted once; resubmissions are rejected
- Determinism and fingerprint stability
- Thread-pool fan-out gives the same result as sequential
- Estimation ordering checked before any task is computed
"""

import json
import logging
from dataclasses import replace
from decimal import Decimal

import pytest

from progress_config.schema import EngineSettings, RecomputeDef
from progress_engines.summary import HealthStatus
from progress_kernel.domain.models import AttendanceEntry
from progress_kernel.exceptions import UnsortedEstimationError
from progress_services import ProjectRecomputeService
from progress_services.export import result_to_dict


@pytest.fixture
def project(make_project, make_task):
    return make_project(tasks=[
        make_task("T1", volume="100", cost="1000", estimation=[(0, 20), (2, 60)]),
        make_task("T2", volume="300", estimation=[(0, 30)]),
    ])


@pytest.fixture
def field_days(make_report, make_attendance):
    reports = [
        make_report("R0", 0, values={"T1": 20, "T2": 30}, plan=["T1"]),
        make_report("R1", 1, values={"T1": 10}),
        make_report("R2", 2, values={"T1": 30, "T2": 120}),
    ]
    attendances = [make_attendance(n) for n in range(3)]
    return reports, attendances


class TestPipeline:

    def test_full_recompute(self, project, field_days):
        reports, attendances = field_days
        result = ProjectRecomputeService().recompute(project, reports, attendances)

        assert result.project_id == "P1"
        assert result.accepted_report_ids == ("R0", "R1", "R2")
        assert not result.has_rejections
        assert result.timelines["T1"].cumulative == Decimal("60")
        assert result.timelines["T2"].cumulative == Decimal("150")
        assert result.variance["T1"].latest.schedule_variance == Decimal("0")
        # (100 x 0.6 + 300 x 0.5) / 400
        assert result.summary.weighted_completion == Decimal("0.525")
        assert result.summary.health == HealthStatus.ON_TRACK
        assert result.summary.attendance.days == 3
        assert result.report_index["T1"] == ("R0", "R1", "R2")
        assert len(result.input_fingerprint) == 16

    def test_rejected_report_is_excluded(self, project, field_days, make_report):
        reports, attendances = field_days
        duplicate = make_report("R1b", 1, values={"T1": 99})
        result = ProjectRecomputeService().recompute(
            project, reports[:2] + [duplicate] + reports[2:], attendances,
        )

        assert [r.report_id for r in result.rejected_reports] == ["R1b"]
        assert result.rejected_reports[0].code == "DUPLICATE_REPORT_DATE"
        assert "R1b" not in result.accepted_report_ids
        assert result.timelines["T1"].cumulative == Decimal("60")

    def test_same_report_submitted_twice(self, project, make_report, make_attendance):
        report = make_report("R0", 0, values={"T1": 10})
        result = ProjectRecomputeService().recompute(
            project, [report, report], [make_attendance(0)],
        )

        assert result.accepted_report_ids == ("R0",)
        assert [r.code for r in result.rejected_reports] == ["DUPLICATE_REPORT_ID"]
        assert result.timelines["T1"].cumulative == Decimal("10")

    def test_reused_report_id_with_new_values(self, project, make_report, make_attendance):
        first = make_report("R0", 0, values={"T1": 10})
        second = make_report("R0", 1, values={"T1": 99})
        result = ProjectRecomputeService().recompute(
            project, [first, second], [make_attendance(0), make_attendance(1)],
        )

        assert result.accepted_report_ids == ("R0",)
        assert result.rejected_reports[0].report_id == "R0"
        assert result.rejected_reports[0].code == "DUPLICATE_REPORT_ID"
        assert result.timelines["T1"].cumulative == Decimal("10")
        assert result.report_index["T1"] == ("R0",)

    def test_rejected_attendance(self, project, field_days, make_attendance):
        reports, attendances = field_days
        bad = make_attendance(
            5, entries=[AttendanceEntry("U1", "Ari", "worker", 900, 600)],
        )
        result = ProjectRecomputeService().recompute(project, reports, attendances + [bad])

        assert result.has_rejections
        assert result.rejected_attendances[0].attendance_id == "A5"
        assert result.rejected_attendances[0].code == "INVALID_ATTENDANCE_INTERVAL"
        assert len(result.attendance) == 3

    def test_report_pointing_at_invalid_sheet_still_resolves(self, project, make_report, make_attendance):
        sheet = make_attendance(0, entries=[AttendanceEntry("U1", "Ari", "worker", 900, 600)])
        result = ProjectRecomputeService().recompute(
            project, [make_report("R0", 0, values={"T1": 5})], [sheet],
        )
        assert result.accepted_report_ids == ("R0",)
        assert result.attendance == ()

    def test_unsorted_estimation_raises_first(self, make_project, make_task, make_report):
        project = make_project(tasks=[make_task("T1", estimation=[(3, 10), (1, 5)])])
        with pytest.raises(UnsortedEstimationError):
            ProjectRecomputeService().recompute(project, [make_report("R0", 0)], [])

    def test_no_reports(self, project):
        result = ProjectRecomputeService().recompute(project, [])
        assert result.accepted_report_ids == ()
        assert result.summary.weighted_completion == Decimal("0")
        assert all(t.is_empty for t in result.timelines.values())


class TestDeterminism:

    def test_same_inputs_same_output(self, project, field_days):
        reports, attendances = field_days
        service = ProjectRecomputeService()
        first = service.recompute(project, reports, attendances)
        second = service.recompute(project, iter(reports), tuple(attendances))

        assert first.input_fingerprint == second.input_fingerprint
        assert first.summary == second.summary
        assert dict(first.timelines) == dict(second.timelines)

    def test_fingerprint_changes_with_inputs(self, project, field_days):
        reports, attendances = field_days
        service = ProjectRecomputeService()
        base = service.recompute(project, reports, attendances)
        changed = service.recompute(project, reports[:2], attendances)
        assert base.input_fingerprint != changed.input_fingerprint

    def test_thread_pool_matches_sequential(self, project, field_days):
        reports, attendances = field_days
        sequential = ProjectRecomputeService().recompute(project, reports, attendances)
        pooled = ProjectRecomputeService(
            EngineSettings(recompute=RecomputeDef(max_workers=4)),
        ).recompute(project, reports, attendances)

        assert pooled.summary == sequential.summary
        assert dict(pooled.variance) == dict(sequential.variance)

    def test_policy_comes_from_settings(self, make_project, make_task, make_report, make_attendance):
        project = make_project(tasks=[make_task("T1", estimation=[(0, 100)])])
        reports = [make_report("R0", 0, values={"T1": 85})]
        attendances = [make_attendance(0)]

        default = ProjectRecomputeService().recompute(project, reports, attendances)
        lenient_settings = EngineSettings()
        lenient_settings = replace(
            lenient_settings,
            health=replace(lenient_settings.health, schedule_tolerance=Decimal("0.2")),
        )
        lenient = ProjectRecomputeService(lenient_settings).recompute(
            project, reports, attendances,
        )

        assert default.summary.health == HealthStatus.BEHIND
        assert lenient.summary.health == HealthStatus.ON_TRACK


class TestLogging:

    def test_recompute_logs_bound_to_project(self, project, field_days, caplog):
        reports, attendances = field_days
        with caplog.at_level(logging.INFO, logger="progress_kernel"):
            ProjectRecomputeService().recompute(project, reports, attendances)

        messages = [r.getMessage() for r in caplog.records]
        assert messages[0] == "recompute_started"
        assert messages[-1] == "recompute_completed"


class TestExport:

    def test_result_is_json_ready(self, project, field_days):
        reports, attendances = field_days
        result = ProjectRecomputeService().recompute(project, reports, attendances)
        data = json.loads(json.dumps(result_to_dict(result, include_variance=True)))

        assert data["weighted_completion"] == "0.5250"
        assert data["health"] == "on_track"
        assert data["tasks"][0]["task_id"] == "T1"
        assert data["tasks"][0]["variance"][0]["status"] == "measured"
        assert data["groups"][0]["task_ids"] == ["T1", "T2"]
        assert data["rejected_reports"] == []

    def test_variance_omitted_by_default(self, project, field_days):
        reports, attendances = field_days
        result = ProjectRecomputeService().recompute(project, reports, attendances)
        assert "variance" not in result_to_dict(result)["tasks"][0]

    def test_attendance_per_day_exported(self, project, field_days):
        reports, attendances = field_days
        result = ProjectRecomputeService().recompute(project, reports, attendances)
        per_day = json.loads(json.dumps(result_to_dict(result)))["attendance"]["per_day"]

        assert [d["attendance_id"] for d in per_day] == ["A0", "A1", "A2"]
        assert per_day[0]["date"] == "2024-03-01"
        assert per_day[0]["crew_size"] == 1
        assert per_day[0]["known_minutes"] == 540
