"""
Batch evaluation.

Compiles the criteria once, then evaluates records in chunks of
batch_size. With max_workers > 1 each chunk fans out over a thread pool.
Input order is always preserved in the output.

A record that cannot be evaluated (for example, not a mapping) is kept
as an item with an error; configuration errors abort the whole batch.
"""

from __future__ import annotations

import hashlib
import json
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import pandas as pd

from ..rules.compile import CompiledCriteria
from ..rules.errors import ConfigurationError
from ..rules.models import Criteria, EvaluationResult
from .evaluator import CriteriaEvaluator


def _canonical(value: Any) -> Any:
    # Keys as strings so mixed key types still sort
    if isinstance(value, Mapping):
        return {str(k): _canonical(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    return value


def data_hash(record: Any) -> str:
    """Stable sha256 of a record (keys stringified and sorted, non-JSON values stringified)."""
    payload = json.dumps(_canonical(record), sort_keys=True, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class BatchItem:
    """Result for one record of a batch."""
    index: int
    data_hash: str
    result: EvaluationResult | None = None
    error: str | None = None

    @property
    def passed(self) -> bool:
        return self.result is not None and self.result.passed


@dataclass(frozen=True)
class BatchResult:
    """Ordered results of a batch evaluation."""
    criteria: str
    items: tuple[BatchItem, ...]
    duration_ms: float = 0.0

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def passed(self) -> int:
        return sum(1 for item in self.items if item.passed)

    @property
    def failed(self) -> int:
        return sum(1 for item in self.items if item.result is not None and not item.result.passed)

    @property
    def errors(self) -> int:
        return sum(1 for item in self.items if item.error is not None)

    def to_frame(self) -> pd.DataFrame:
        """One row per record."""
        rows = []
        for item in self.items:
            result = item.result
            rows.append({
                "index": item.index,
                "data_hash": item.data_hash,
                "passed": result.passed if result else None,
                "score": result.score if result else None,
                "decision": result.decision if result else None,
                "failed_rules": len(result.failed_rules) if result else None,
                "error": item.error,
            })
        columns = ["index", "data_hash", "passed", "score", "decision", "failed_rules", "error"]
        return pd.DataFrame(rows, columns=columns)

    def summary(self) -> dict:
        """Counts, pass rate and score statistics over evaluated records."""
        frame = self.to_frame()
        scores = frame["score"].dropna().astype(float)
        evaluated = self.total - self.errors
        return {
            "criteria": self.criteria,
            "total_evaluated": self.total,
            "total_passed": self.passed,
            "total_failed": self.failed,
            "total_errors": self.errors,
            "pass_rate": round(100.0 * self.passed / evaluated, 2) if evaluated else 0.0,
            "mean_score": round(float(scores.mean()), 2) if not scores.empty else None,
            "median_score": round(float(scores.median()), 2) if not scores.empty else None,
            "min_score": float(scores.min()) if not scores.empty else None,
            "max_score": float(scores.max()) if not scores.empty else None,
            "duration_ms": self.duration_ms,
        }

    def failure_counts(self) -> pd.Series:
        """How often each rule failed, most frequent first."""
        failures = [
            rule.rule_id
            for item in self.items if item.result is not None
            for rule in item.result.failed_rules
        ]
        if not failures:
            return pd.Series(dtype="int64", name="failures")
        counts = pd.Series(failures).value_counts()
        counts.name = "failures"
        return counts


def _evaluate_one(
    evaluator: CriteriaEvaluator,
    compiled: CompiledCriteria,
    index: int,
    record: Any,
) -> BatchItem:
    digest = ""
    try:
        digest = data_hash(record)
        if not isinstance(record, Mapping):
            raise TypeError(f"record must be a mapping, got {type(record).__name__}")
        return BatchItem(index=index, data_hash=digest, result=evaluator.evaluate(compiled, record))
    except ConfigurationError:
        raise
    except (TypeError, ValueError) as e:
        evaluator.logger.warning(f"[BATCH] | record={index} | {e}")
        return BatchItem(index=index, data_hash=digest, error=str(e))


def evaluate_batch(
    criteria: Criteria | CompiledCriteria,
    records: Iterable[Any],
    evaluator: CriteriaEvaluator | None = None,
    batch_size: int | None = None,
    max_workers: int | None = None,
) -> BatchResult:
    """
    Evaluate many records against the same criteria.

    Args:
        criteria: Criteria definition or CompiledCriteria
        records: Input maps
        evaluator: Evaluator to use (default: a new CriteriaEvaluator)
        batch_size: Records per chunk (default: configured batch size)
        max_workers: Threads per chunk (default: configured max workers)

    Raises:
        ConfigurationError: If the criteria are invalid
    """
    evaluator = evaluator or CriteriaEvaluator()
    settings = evaluator.config.evaluation
    batch_size = batch_size or settings.batch_size
    max_workers = max_workers or settings.max_workers
    if batch_size < 1 or max_workers < 1:
        raise ValueError("batch_size and max_workers must be >= 1")

    start = time.perf_counter()
    compiled = criteria if isinstance(criteria, CompiledCriteria) else evaluator.compile(criteria)
    records = list(records)
    items: list[BatchItem] = []

    executor = ThreadPoolExecutor(max_workers=max_workers) if max_workers > 1 else None
    try:
        for offset in range(0, len(records), batch_size):
            chunk = records[offset:offset + batch_size]
            indexes = range(offset, offset + len(chunk))
            if executor is None:
                items.extend(
                    _evaluate_one(evaluator, compiled, i, r) for i, r in zip(indexes, chunk)
                )
            else:
                items.extend(executor.map(
                    lambda pair: _evaluate_one(evaluator, compiled, *pair),
                    zip(indexes, chunk),
                ))
    finally:
        if executor is not None:
            executor.shutdown(wait=True)

    batch = BatchResult(
        criteria=compiled.identifier,
        items=tuple(items),
        duration_ms=(time.perf_counter() - start) * 1000,
    )
    evaluator.logger.info(
        f"[BATCH] | criteria={batch.criteria} | total={batch.total} | "
        f"passed={batch.passed} | failed={batch.failed} | errors={batch.errors} | "
        f"duration={batch.duration_ms:.1f}ms"
    )
    return batch
