"""
Tests for engine settings loading.

Covers:
- Bundled default settings
- Overrides from a custom YAML file
- Validation failures (unknown keys, bad types, bad log level)
- Checksum stability
- Bridge to the summarizer policy
"""

from decimal import Decimal

import pytest

from progress_config import DEFAULT_SETTINGS_PATH, get_active_settings
from progress_config.bridges import build_summary_policy
from progress_config.loader import compute_checksum, load_yaml_file, parse_settings
from progress_config.schema import EngineSettings, HealthPolicyDef
from progress_engines.summary import SummaryPolicy


def _write(tmp_path, text: str):
    path = tmp_path / "settings.yaml"
    path.write_text(text)
    return path


class TestDefaultSettings:

    def test_bundled_file_exists(self):
        assert DEFAULT_SETTINGS_PATH.exists()

    def test_defaults(self):
        settings = get_active_settings()

        assert settings.settings_id == "default"
        assert settings.health.schedule_tolerance == Decimal("0.10")
        assert settings.health.behind_majority == Decimal("0.5")
        assert settings.health.weight_by_volume is True
        assert settings.recompute.max_workers == 1
        assert settings.log_level == "INFO"
        assert len(settings.checksum) == 64

    def test_bundled_defaults_match_dataclass_defaults(self):
        settings = get_active_settings()
        assert settings.health == EngineSettings().health
        assert settings.recompute == EngineSettings().recompute


class TestCustomSettings:

    def test_override(self, tmp_path):
        path = _write(tmp_path, (
            "settings_id: strict\n"
            "version: 3\n"
            "log_level: debug\n"
            "health:\n"
            "  schedule_tolerance: '0.05'\n"
            "recompute:\n"
            "  max_workers: 4\n"
        ))
        settings = get_active_settings(path)

        assert settings.settings_id == "strict"
        assert settings.version == 3
        assert settings.log_level == "DEBUG"
        assert settings.health.schedule_tolerance == Decimal("0.05")
        assert settings.health.behind_majority == Decimal("0.5")
        assert settings.recompute.max_workers == 4

    def test_empty_file_uses_defaults(self, tmp_path):
        settings = get_active_settings(_write(tmp_path, ""))
        assert settings.health == EngineSettings().health

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_settings(tmp_path / "nope.yaml")

    def test_non_mapping_rejected(self, tmp_path):
        with pytest.raises(ValueError, match="mapping"):
            load_yaml_file(_write(tmp_path, "- a\n- b\n"))


class TestValidation:

    def test_unknown_top_level_key(self):
        with pytest.raises(ValueError, match="Unknown keys in settings"):
            parse_settings({"colour": "blue"})

    def test_unknown_health_key(self):
        with pytest.raises(ValueError, match="Unknown keys in health"):
            parse_settings({"health": {"tolerance": "0.1"}})

    def test_bad_tolerance(self):
        with pytest.raises(ValueError, match="schedule_tolerance"):
            parse_settings({"health": {"schedule_tolerance": "lots"}})

    def test_bool_is_not_a_number(self):
        with pytest.raises(ValueError):
            parse_settings({"health": {"behind_majority": True}})

    def test_weight_by_volume_must_be_bool(self):
        with pytest.raises(ValueError, match="weight_by_volume"):
            parse_settings({"health": {"weight_by_volume": "yes please"}})

    @pytest.mark.parametrize("workers", [0, -2, "4", True])
    def test_bad_max_workers(self, workers):
        with pytest.raises(ValueError, match="max_workers"):
            parse_settings({"recompute": {"max_workers": workers}})

    def test_bad_log_level(self):
        with pytest.raises(ValueError, match="log_level"):
            parse_settings({"log_level": "LOUD"})


class TestChecksum:

    def test_stable_and_order_independent(self):
        assert compute_checksum({"a": 1, "b": {"c": 2}}) == compute_checksum(
            {"b": {"c": 2}, "a": 1},
        )

    def test_changes_with_content(self):
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})


class TestBridges:

    def test_summary_policy(self):
        settings = parse_settings({
            "health": {
                "schedule_tolerance": "0.2",
                "behind_majority": "0.6",
                "weight_by_volume": False,
            },
        })
        assert build_summary_policy(settings) == SummaryPolicy(
            schedule_tolerance=Decimal("0.2"),
            behind_majority=Decimal("0.6"),
            weight_by_volume=False,
        )

    def test_majority_out_of_range_rejected_at_load(self):
        with pytest.raises(ValueError, match="behind_majority"):
            parse_settings({"health": {"behind_majority": "1.5"}})

    def test_negative_tolerance_rejected_at_load(self, tmp_path):
        path = _write(tmp_path, "health:\n  schedule_tolerance: -0.1\n")
        with pytest.raises(ValueError, match="schedule_tolerance"):
            get_active_settings(path)

    def test_invalid_policy_surfaces_on_bridge(self):
        settings = EngineSettings(health=HealthPolicyDef(behind_majority=Decimal("1.5")))
        with pytest.raises(ValueError, match="behind_majority"):
            build_summary_policy(settings)
