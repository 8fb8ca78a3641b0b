"""Tests for scripts/recompute_project.py."""

import importlib.util
import json
from pathlib import Path

import pytest

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "recompute_project.py"


@pytest.fixture(scope="module")
def cli():
    spec = importlib.util.spec_from_file_location("recompute_project", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _snapshot(tmp_path, reports):
    doc = {
        "project": {
            "_id": "P1",
            "name": "Riverside",
            "task": [{
                "_id": "T1",
                "group": {"_id": "G1", "name": "Earthworks"},
                "name": "Excavation",
                "volume": {"value": 200, "unit": "m3"},
                "estimation": [{"date": "2024-03-01", "value": 100}],
            }],
            "user": [{"user_id": "U1", "role": "foreman"}],
            "customer": {"_id": "C1", "person": {"_id": "CP1", "name": "Dana", "role": "owner"}},
        },
        "reports": reports,
        "attendances": [{
            "_id": "A1",
            "project_id": "P1",
            "date": "2024-03-01",
            "user": [{"_id": "U1", "name": "Ari", "role": "foreman", "entry": 480, "exit": 1020}],
        }],
    }
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(doc))
    return path


def _report(report_id, task_id="T1", value=100):
    return {
        "_id": report_id,
        "project_id": "P1",
        "task": [{"_id": task_id, "value": value}],
        "plan": [],
        "attendance_id": "A1",
        "user_id": "U1",
        "customer": {"_id": "C1", "person_id": "CP1"},
        "date": "2024-03-01",
    }


class TestRecomputeCli:

    def test_prints_summary(self, cli, tmp_path, capsys):
        path = _snapshot(tmp_path, [_report("R1")])

        assert cli.main([str(path), "--variance", "--log-level", "ERROR"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["project_id"] == "P1"
        assert data["weighted_completion"] == "0.5000"
        assert data["tasks"][0]["variance"][0]["schedule_variance"] == "0"

    def test_rejections_exit_2(self, cli, tmp_path, capsys):
        path = _snapshot(tmp_path, [_report("R1"), _report("R2", value=5)])

        assert cli.main([str(path), "--log-level", "ERROR"]) == 2

        data = json.loads(capsys.readouterr().out)
        assert data["rejected_reports"][0]["code"] == "DUPLICATE_REPORT_DATE"

    def test_bad_snapshot_exit_1(self, cli, tmp_path, capsys):
        path = tmp_path / "broken.json"
        path.write_text(json.dumps({"reports": []}))

        assert cli.main([str(path), "--log-level", "ERROR"]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_resubmitted_report_exit_2(self, cli, tmp_path, capsys):
        path = _snapshot(tmp_path, [_report("R1"), _report("R1")])

        assert cli.main([str(path), "--log-level", "ERROR"]) == 2

        data = json.loads(capsys.readouterr().out)
        assert data["accepted_report_ids"] == ["R1"]
        assert data["rejected_reports"][0]["code"] == "DUPLICATE_REPORT_ID"

    def test_log_level_is_case_insensitive(self, cli, tmp_path, capsys):
        path = _snapshot(tmp_path, [_report("R1")])
        assert cli.main([str(path), "--log-level", "error"]) == 0

    def test_unknown_log_level_is_usage_error(self, cli, tmp_path, capsys):
        path = _snapshot(tmp_path, [_report("R1")])

        with pytest.raises(SystemExit) as exc:
            cli.main([str(path), "--log-level", "LOUD"])

        assert exc.value.code == 2
        assert "invalid choice" in capsys.readouterr().err
