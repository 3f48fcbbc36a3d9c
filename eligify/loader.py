"""
Criteria definitions from YAML.

File shape:

    name: loan_approval
    pass_threshold: 70
    scoring: weighted
    rules:
      - {field: credit_score, operator: ">=", value: 650, weight: 8}
    groups:
      - id: income
        combination: boolean
        expression: "income_ok AND dti_ok"
        rules:
          - {field: income, operator: ">=", value: 30000, alias: income_ok}

Packaged presets live in eligify/presets/<name>.yml.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import yaml

from .config import get_config
from .rules.errors import ConfigurationError
from .rules.models import Criteria, Rule, RuleGroup
from .rules.types import RulePriority

PRESET_DIR = Path(__file__).parent / "presets"

_RULE_KEYS = {
    "field", "operator", "value", "weight", "priority", "order", "active",
    "field_type", "rule_id", "id", "alias", "case_sensitive", "description",
}
_GROUP_KEYS = {
    "group_id", "id", "name", "rules", "combination", "logic", "min_required",
    "expression", "weight", "order", "active", "description",
}
_CRITERIA_KEYS = {
    "name", "id", "criteria_id", "description", "pass_threshold", "threshold",
    "scoring", "scoring_method", "rules", "groups", "group_combination",
    "group_min_required", "group_expression", "group_partial_credit",
    "decision_thresholds",
}


def _check_keys(raw: Any, allowed: set[str], what: str) -> dict:
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"{what} must be a mapping, got {type(raw).__name__}")
    unknown = set(raw) - allowed
    if unknown:
        raise ConfigurationError(f"Unknown {what} keys: {', '.join(sorted(map(str, unknown)))}")
    return dict(raw)


def rule_from_dict(raw: Mapping[str, Any], order: int = 0) -> Rule:
    data = _check_keys(raw, _RULE_KEYS, "rule")
    if "field" not in data or "operator" not in data:
        raise ConfigurationError(f"Rule requires 'field' and 'operator': {dict(raw)}")

    priority = RulePriority.from_value(data.get("priority", RulePriority.MEDIUM))
    weight = data.get("weight")
    if weight is None:
        weight = get_config().weights.weight_for(priority.value) if "priority" in data else 1

    return Rule(
        field=data["field"],
        operator=data["operator"],
        value=data.get("value"),
        weight=weight,
        order=data.get("order", order),
        active=data.get("active", True),
        field_type=data.get("field_type"),
        rule_id=data.get("rule_id", data.get("id")),
        alias=data.get("alias"),
        case_sensitive=data.get("case_sensitive", True),
        priority=priority,
        description=data.get("description", ""),
    )


def group_from_dict(raw: Mapping[str, Any], order: int = 0) -> RuleGroup:
    data = _check_keys(raw, _GROUP_KEYS, "group")
    group_id = data.get("group_id", data.get("id"))
    if not group_id:
        raise ConfigurationError(f"Group requires an 'id': {dict(raw)}")

    return RuleGroup(
        group_id=str(group_id),
        rules=tuple(rule_from_dict(r, i) for i, r in enumerate(data.get("rules") or [])),
        combination=data.get("combination", data.get("logic", "all")),
        min_required=data.get("min_required"),
        expression=data.get("expression"),
        weight=data.get("weight", 1.0),
        name=data.get("name", ""),
        order=data.get("order", order),
        active=data.get("active", True),
        description=data.get("description", ""),
    )


def criteria_from_dict(raw: Mapping[str, Any]) -> Criteria:
    """
    Build Criteria from a plain mapping (e.g. parsed YAML or JSON).

    Raises:
        ConfigurationError: On unknown keys or missing required keys
    """
    data = _check_keys(raw, _CRITERIA_KEYS, "criteria")
    if not data.get("name"):
        raise ConfigurationError("Criteria requires a 'name'")

    threshold = data.get("pass_threshold", data.get("threshold"))
    return Criteria(
        name=str(data["name"]),
        rules=tuple(rule_from_dict(r, i) for i, r in enumerate(data.get("rules") or [])),
        groups=tuple(group_from_dict(g, i) for i, g in enumerate(data.get("groups") or [])),
        pass_threshold=float(threshold) if threshold is not None else None,
        scoring=data.get("scoring", data.get("scoring_method")),
        group_combination=data.get("group_combination", "all"),
        group_min_required=data.get("group_min_required"),
        group_expression=data.get("group_expression"),
        group_partial_credit=bool(data.get("group_partial_credit", False)),
        decision_thresholds=data.get("decision_thresholds"),
        description=data.get("description", ""),
        criteria_id=data.get("criteria_id", data.get("id")),
    )


def load_criteria(path: str | Path) -> Criteria:
    """Load Criteria from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Criteria file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    if raw is None:
        raise ConfigurationError(f"Criteria file is empty: {path}")
    return criteria_from_dict(raw)


def list_presets() -> list[str]:
    """Names of the packaged presets."""
    return sorted(p.stem for p in PRESET_DIR.glob("*.yml"))


def load_preset(name: str) -> Criteria:
    """
    Load a packaged preset by name.

    Raises:
        ConfigurationError: If no preset has that name
    """
    path = PRESET_DIR / f"{name}.yml"
    if not path.exists():
        raise ConfigurationError(
            f"Unknown preset '{name}'. Available: {', '.join(list_presets())}"
        )
    return load_criteria(path)
