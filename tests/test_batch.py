"""
Tests for batch evaluation.
"""

import pandas as pd
import pytest

from eligify.engine import data_hash, evaluate_batch
from eligify.rules import ConfigurationError, Criteria, Rule


@pytest.fixture
def records() -> list:
    return [
        {"income": 5000, "credit_score": 700},
        {"income": 5000, "credit_score": 600},
        {"income": 1000},
        ["not", "a", "mapping"],
        {"income": 8000, "credit_score": 800},
    ]


class TestEvaluateBatch:
    """Ordering, counts and error items."""

    def test_counts(self, loan_criteria, records):
        batch = evaluate_batch(loan_criteria, records, batch_size=2)
        assert batch.total == 5
        assert batch.passed == 2
        assert batch.failed == 2
        assert batch.errors == 1

    def test_order_preserved_with_threads(self, loan_criteria):
        records = [{"income": 100 * i, "credit_score": 640 + i} for i in range(60)]
        sequential = evaluate_batch(loan_criteria, records, batch_size=7, max_workers=1)
        threaded = evaluate_batch(loan_criteria, records, batch_size=7, max_workers=4)
        assert [i.index for i in threaded.items] == list(range(60))
        assert [i.result.score for i in threaded.items] == [i.result.score for i in sequential.items]

    def test_non_mapping_record_is_error_item(self, loan_criteria, records):
        item = evaluate_batch(loan_criteria, records).items[3]
        assert item.result is None
        assert item.passed is False
        assert "mapping" in item.error

    def test_mixed_key_types_do_not_abort_batch(self, loan_criteria):
        batch = evaluate_batch(loan_criteria, [{"income": 5000, 2: "x"}, {"income": 5000, "credit_score": 700}])
        assert batch.total == 2
        assert batch.errors == 0
        assert batch.items[0].data_hash
        assert batch.items[1].passed is True

    def test_unhashable_record_becomes_error_item(self, loan_criteria, monkeypatch):
        from eligify.engine import batch as batch_module

        def broken_hash(record):
            raise ValueError("cannot fingerprint record")

        monkeypatch.setattr(batch_module, "data_hash", broken_hash)
        batch = evaluate_batch(loan_criteria, [{"income": 5000}])
        assert batch.items[0].result is None
        assert batch.items[0].error == "cannot fingerprint record"

    def test_configuration_error_aborts(self, records):
        bad = Criteria(name="bad", rules=(Rule("x", "between", [5, 1]),))
        with pytest.raises(ConfigurationError):
            evaluate_batch(bad, records)

    def test_invalid_sizes(self, loan_criteria, records):
        with pytest.raises(ValueError):
            evaluate_batch(loan_criteria, records, batch_size=-1)

    def test_batch_size_from_config(self, loan_criteria, records, monkeypatch):
        from eligify.config import reset_config

        monkeypatch.setenv("ELIGIFY_BATCH_SIZE", "1")
        monkeypatch.setenv("ELIGIFY_MAX_WORKERS", "2")
        reset_config()
        assert evaluate_batch(loan_criteria, records).total == 5


class TestBatchReporting:
    """pandas summaries."""

    def test_to_frame(self, loan_criteria, records):
        frame = evaluate_batch(loan_criteria, records).to_frame()
        assert isinstance(frame, pd.DataFrame)
        assert list(frame["index"]) == [0, 1, 2, 3, 4]
        assert frame.loc[1, "score"] == 40.0
        assert frame.loc[3, "error"] is not None

    def test_summary(self, loan_criteria, records):
        summary = evaluate_batch(loan_criteria, records).summary()
        assert summary["total_evaluated"] == 5
        assert summary["total_errors"] == 1
        assert summary["pass_rate"] == 50.0
        assert summary["max_score"] == 100.0
        assert summary["min_score"] == 0.0

    def test_failure_counts(self, loan_criteria, records):
        counts = evaluate_batch(loan_criteria, records).failure_counts()
        assert counts.name == "failures"
        assert counts["credit"] == 2
        assert counts["income"] == 1

    def test_failure_counts_empty(self, loan_criteria):
        counts = evaluate_batch(loan_criteria, [{"income": 5000, "credit_score": 700}]).failure_counts()
        assert counts.empty


class TestDataHash:
    """Record fingerprints."""

    def test_key_order_irrelevant(self):
        assert data_hash({"a": 1, "b": 2}) == data_hash({"b": 2, "a": 1})

    def test_mixed_key_types(self):
        assert data_hash({"a": 1, 2: "x"}) == data_hash({2: "x", "a": 1})

    def test_distinguishes_values(self):
        assert data_hash({"a": 1}) != data_hash({"a": 2})
