"""
Pytest configuration for eligify tests.
"""

import pytest

from eligify.config import reset_config
from eligify.engine import CriteriaEvaluator
from eligify.rules import Criteria, Rule


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Every test starts from default settings, unaffected by the host environment."""
    import os

    for name in list(os.environ):
        if name.startswith("ELIGIFY_"):
            monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def evaluator() -> CriteriaEvaluator:
    """Evaluator with default operators, scorers and config."""
    return CriteriaEvaluator()


@pytest.fixture
def loan_rules() -> tuple:
    """income >= 3000 (w=40), credit_score >= 650 (w=60)."""
    return (
        Rule("income", ">=", 3000, weight=40, rule_id="income"),
        Rule("credit_score", ">=", 650, weight=60, rule_id="credit", order=1),
    )


@pytest.fixture
def loan_criteria(loan_rules) -> Criteria:
    """Weighted loan criteria with the default threshold (65)."""
    return Criteria(name="loan", rules=loan_rules, scoring="weighted")
