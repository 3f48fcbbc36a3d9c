"""
Tests for logging and datetime utilities.
"""

import logging
from datetime import date, datetime, timedelta, timezone

import pytest

from eligify.rules import Criteria, Rule
from eligify.utils import is_date_like, normalize_datetime, setup_logger


class TestNormalizeDatetime:
    """Date inputs normalize to aware UTC instants."""

    def test_date_string(self):
        dt, error = normalize_datetime("2024-03-01")
        assert error is None
        assert dt == datetime(2024, 3, 1, tzinfo=timezone.utc)

    def test_zulu_suffix(self):
        dt, error = normalize_datetime("2024-03-01T10:00:00Z")
        assert error is None
        assert dt.hour == 10

    def test_offset_converted_to_utc(self):
        dt, _ = normalize_datetime("2024-03-01T12:00:00+02:00")
        assert dt == datetime(2024, 3, 1, 10, tzinfo=timezone.utc)

    def test_naive_datetime_is_utc(self):
        dt, _ = normalize_datetime(datetime(2024, 1, 1, 8))
        assert dt.tzinfo == timezone.utc

    def test_aware_datetime(self):
        tz = timezone(timedelta(hours=-5))
        dt, _ = normalize_datetime(datetime(2024, 1, 1, 8, tzinfo=tz))
        assert dt.hour == 13

    def test_date_object(self):
        dt, _ = normalize_datetime(date(2024, 1, 2))
        assert dt == datetime(2024, 1, 2, tzinfo=timezone.utc)

    def test_epoch_seconds(self):
        dt, _ = normalize_datetime(0)
        assert dt == datetime(1970, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", ["yesterday", "", "2024-13-45", True, [2024]])
    def test_invalid(self, value):
        dt, error = normalize_datetime(value)
        assert dt is None
        assert error

    def test_none(self):
        assert normalize_datetime(None, "dob") == (None, "Missing dob")

    def test_is_date_like(self):
        assert is_date_like("2024-01-01")
        assert is_date_like(date.today())
        assert not is_date_like("01/02/2024")
        assert not is_date_like(20240101)


class TestLogger:
    """Structured log lines."""

    @pytest.fixture
    def engine_logger(self):
        logger = setup_logger(log_level="DEBUG")
        yield logger
        setup_logger()

    def test_evaluation_line(self, engine_logger, caplog):
        with caplog.at_level(logging.DEBUG, logger="eligify"):
            engine_logger.evaluation("loan", False, 40.0, 65.0, duration_ms=1.5, method="weighted")
        assert "[FAIL] | criteria=loan | score=40.00 | threshold=65.00 | duration=1.500ms | method=weighted" in caplog.text

    def test_rule_error_line(self, engine_logger, caplog):
        with caplog.at_level(logging.WARNING, logger="eligify"):
            engine_logger.rule_error("credit", "credit_score", "TYPE_MISMATCH", "not numeric")
        assert "[RULE:TYPE_MISMATCH] | rule=credit | field=credit_score | not numeric" in caplog.text

    def test_recovered_rule_error_is_logged(self, engine_logger, evaluator, caplog):
        criteria = Criteria(name="t", rules=(Rule("age", ">=", 18, rule_id="adult"),))
        with caplog.at_level(logging.WARNING, logger="eligify"):
            evaluator.evaluate(criteria, {})
        assert "[RULE:MISSING_FIELD] | rule=adult" in caplog.text

    def test_error_does_not_propagate_twice(self, engine_logger):
        assert logging.getLogger("eligify.errors").propagate is False

    def test_error_printed_to_console_once(self, engine_logger):
        def console_handlers(logger):
            return [
                h for h in logger.handlers
                if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
            ]

        assert len(console_handlers(engine_logger.main_logger)) == 1
        assert console_handlers(engine_logger.error_logger) == []
        assert any(isinstance(h, logging.NullHandler) for h in engine_logger.error_logger.handlers)

    def test_error_reaches_caplog_once(self, engine_logger, caplog):
        with caplog.at_level(logging.ERROR, logger="eligify"):
            engine_logger.error("[CONFIG] | criteria=t | bad")
        assert len([r for r in caplog.records if "criteria=t" in r.getMessage()]) == 1

    def test_log_files(self, tmp_path):
        logger = setup_logger(log_dir=str(tmp_path), log_level="INFO")
        try:
            logger.error("boom")
            for handler in logger.main_logger.handlers + logger.error_logger.handlers:
                handler.flush()
            names = sorted(p.name.split("_")[0] for p in tmp_path.iterdir())
            assert names == ["eligify", "errors"]
        finally:
            for handler in logger.main_logger.handlers + logger.error_logger.handlers:
                handler.close()
            setup_logger()
