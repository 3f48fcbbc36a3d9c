"""
Tests for rich result display.
"""

from rich.console import Console

from eligify.rules import Criteria, Rule, RuleGroup
from eligify.utils.trace_display import build_group_table, build_trace_table, print_evaluation


def render(result, **kwargs) -> str:
    out = Console(record=True, width=160, color_system=None)
    print_evaluation(result, out=out, **kwargs)
    return out.export_text()


class TestTraceDisplay:
    """Tables and panel output."""

    def test_trace_table_rows(self, evaluator, loan_criteria):
        result = evaluator.evaluate(loan_criteria, {"income": 5000, "credit_score": 600})
        table = build_trace_table(result)
        assert table.row_count == len(result.trace)

    def test_group_table_rows(self, evaluator):
        criteria = Criteria(name="t", groups=(RuleGroup("g", (Rule("a", "exists"),), name="Identity"),))
        result = evaluator.evaluate(criteria, {"a": 1})
        assert build_group_table(result).row_count == 1
        assert "Identity" in render(result)

    def test_print_evaluation(self, evaluator, loan_criteria):
        text = render(evaluator.evaluate(loan_criteria, {"income": 5000, "credit_score": 600}))
        assert "FAIL" in text
        assert "Score: 40.0" in text
        assert "Failed Rules:" in text
        assert "credit" in text

    def test_without_trace(self, evaluator, loan_criteria):
        text = render(evaluator.evaluate(loan_criteria, {"income": 5000, "credit_score": 700}), show_trace=False)
        assert "PASS" in text
        assert "Trace:" not in text
        assert "Failed Rules:" not in text
