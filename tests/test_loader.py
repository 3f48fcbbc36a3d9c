"""
Tests for YAML loading and packaged presets.
"""

import pytest

from eligify.loader import criteria_from_dict, list_presets, load_criteria, load_preset
from eligify.rules import ConfigurationError, GroupCombination, compile_criteria


LOAN_YAML = """
name: loan
pass_threshold: 70
scoring: weighted
rules:
  - {field: credit_score, operator: ">=", value: 650, weight: 8}
groups:
  - id: income
    combination: boolean
    expression: "income_ok AND dti_ok"
    weight: 5
    rules:
      - {field: income, operator: ">=", value: 30000, alias: income_ok}
      - {field: debt_to_income_ratio, operator: "<=", value: 0.4, alias: dti_ok}
"""


class TestLoadCriteria:
    """YAML files to Criteria."""

    def test_load_file(self, tmp_path, evaluator):
        path = tmp_path / "loan.yml"
        path.write_text(LOAN_YAML)
        criteria = load_criteria(path)
        assert criteria.pass_threshold == 70.0
        assert criteria.groups[0].group_id == "income"
        result = evaluator.evaluate(criteria, {"credit_score": 700, "income": 40000, "debt_to_income_ratio": 0.3})
        assert result.passed is True

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_criteria(tmp_path / "nope.yml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text("name: [unclosed")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_criteria(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        with pytest.raises(ConfigurationError, match="empty"):
            load_criteria(path)


class TestFromDict:
    """Mapping validation."""

    def test_unknown_keys_rejected(self):
        with pytest.raises(ConfigurationError, match="Unknown criteria keys: treshold"):
            criteria_from_dict({"name": "t", "treshold": 70})

    def test_unknown_rule_keys_rejected(self):
        with pytest.raises(ConfigurationError, match="Unknown rule keys: wieght"):
            criteria_from_dict({"name": "t", "rules": [{"field": "x", "operator": "==", "value": 1, "wieght": 2}]})

    def test_rule_requires_field_and_operator(self):
        with pytest.raises(ConfigurationError, match="'field' and 'operator'"):
            criteria_from_dict({"name": "t", "rules": [{"field": "x"}]})

    def test_name_required(self):
        with pytest.raises(ConfigurationError, match="name"):
            criteria_from_dict({"rules": []})

    def test_group_requires_id(self):
        with pytest.raises(ConfigurationError, match="'id'"):
            criteria_from_dict({"name": "t", "groups": [{"rules": []}]})

    def test_key_aliases(self):
        criteria = criteria_from_dict({
            "name": "t",
            "threshold": 50,
            "scoring_method": "sum",
            "groups": [{"id": "g", "logic": "any", "rules": [{"field": "x", "operator": "exists", "id": "has_x"}]}],
        })
        assert criteria.pass_threshold == 50.0
        assert criteria.scoring == "sum"
        assert criteria.groups[0].combination == "any"
        assert criteria.groups[0].rules[0].rule_id == "has_x"
        assert compile_criteria(criteria).groups[0].combination == GroupCombination.ANY

    def test_priority_sets_default_weight(self):
        criteria = criteria_from_dict({
            "name": "t",
            "rules": [
                {"field": "a", "operator": "exists", "priority": "high"},
                {"field": "b", "operator": "exists"},
            ],
        })
        assert [r.weight for r in criteria.rules] == [75.0, 1]


class TestPresets:
    """Packaged criteria."""

    def test_list_presets(self):
        assert list_presets() == ["job_application", "loan_approval", "scholarship_eligibility"]

    @pytest.mark.parametrize("name", ["job_application", "loan_approval", "scholarship_eligibility"])
    def test_presets_compile(self, name):
        assert compile_criteria(load_preset(name)).rule_count > 0

    def test_loan_preset(self, evaluator):
        applicant = {
            "credit_score": 720,
            "income": 55000,
            "debt_to_income_ratio": 0.3,
            "employment_years": 4,
            "active_bankruptcies": 1,
        }
        result = evaluator.evaluate(load_preset("loan_approval"), applicant)
        assert result.score == 72.22
        assert result.passed is True
        assert result.failed_rules[0].field == "active_bankruptcies"

    def test_job_preset_membership(self, evaluator):
        candidate = {
            "years_experience": 5,
            "education_level": "master",
            "skills_match_percentage": 80,
            "background_check": "passed",
        }
        result = evaluator.evaluate(load_preset("job_application"), candidate)
        assert result.score == 100.0

    def test_unknown_preset(self):
        with pytest.raises(ConfigurationError, match="Unknown preset 'mortgage'"):
            load_preset("mortgage")
