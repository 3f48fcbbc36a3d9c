"""
Tests for environment-driven configuration.
"""

import pytest

from eligify.config import DecisionConfig, RuleWeightConfig, ScoringConfig, get_config, reset_config


class TestDefaults:
    """Settings without any ELIGIFY_* variables."""

    def test_scoring_defaults(self):
        config = get_config()
        assert config.scoring.pass_threshold == 65.0
        assert config.scoring.method == "weighted"
        assert config.scoring.precision == 2

    def test_weight_defaults(self):
        weights = get_config().weights
        assert weights.as_dict() == {"critical": 100.0, "high": 75.0, "medium": 50.0, "low": 25.0, "info": 0.0}
        assert weights.weight_for("HIGH") == 75.0

    def test_evaluation_defaults(self):
        evaluation = get_config().evaluation
        assert evaluation.allow_empty_criteria is False
        assert evaluation.batch_size == 100
        assert evaluation.max_workers == 1

    def test_singleton(self):
        assert get_config() is get_config()

    def test_valid_by_default(self):
        ok, messages = get_config().validate()
        assert ok is True
        assert messages == []


class TestEnvironment:
    """Overrides from ELIGIFY_* variables."""

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("ELIGIFY_PASS_THRESHOLD", "80")
        monkeypatch.setenv("ELIGIFY_SCORING_METHOD", "Average")
        monkeypatch.setenv("ELIGIFY_WEIGHT_LOW", "10")
        monkeypatch.setenv("ELIGIFY_LOG_LEVEL", "debug")
        reset_config()
        config = get_config()
        assert config.scoring.pass_threshold == 80.0
        assert config.scoring.method == "average"
        assert config.weights.low == 10.0
        assert config.log.level == "DEBUG"

    def test_reload_picks_up_changes(self, monkeypatch):
        config = get_config()
        monkeypatch.setenv("ELIGIFY_BATCH_SIZE", "25")
        assert config.reload().evaluation.batch_size == 25

    def test_invalid_threshold(self, monkeypatch):
        monkeypatch.setenv("ELIGIFY_PASS_THRESHOLD", "120")
        reset_config()
        with pytest.raises(ValueError, match="pass_threshold"):
            get_config()

    def test_warnings(self, monkeypatch):
        monkeypatch.setenv("ELIGIFY_ALLOW_EMPTY_CRITERIA", "yes")
        monkeypatch.setenv("ELIGIFY_BATCH_SIZE", "2")
        monkeypatch.setenv("ELIGIFY_MAX_WORKERS", "4")
        reset_config()
        ok, messages = get_config().validate()
        assert ok is True
        assert len(messages) == 2
        assert all(m.startswith("WARNING") for m in messages)

    def test_log_dir_must_be_directory(self, monkeypatch, tmp_path):
        not_a_dir = tmp_path / "file.txt"
        not_a_dir.write_text("x")
        monkeypatch.setenv("ELIGIFY_LOG_DIR", str(not_a_dir))
        reset_config()
        ok, messages = get_config().validate()
        assert ok is False
        assert "not a directory" in messages[0]

    def test_summary(self):
        assert get_config().summary().startswith("threshold=65.0 | method=weighted")


class TestSections:
    """Dataclass validation and decision tiers."""

    def test_unknown_scoring_method(self):
        with pytest.raises(ValueError, match="Unknown scoring method"):
            ScoringConfig(method="median")

    def test_negative_weight(self):
        with pytest.raises(ValueError, match="critical"):
            RuleWeightConfig(critical=-1)

    @pytest.mark.parametrize("score,passed,label", [
        (95, True, "Excellent"),
        (85, True, "Very Good"),
        (70, True, "Good"),
        (66, True, "Approved"),
        (55, False, "Needs Improvement"),
        (30, False, "Poor"),
        (10, False, "Rejected"),
    ])
    def test_decision_tiers(self, score, passed, label):
        assert DecisionConfig().label_for(score, passed) == label
