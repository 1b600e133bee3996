"""Unit tests for aggregate stats and health derivation."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from quality_eval.evaluation.metrics import average_scores, compute_stats, health_status
from quality_eval.models.schemas import EvaluationScores, EvaluationStats


def test_average_scores_empty_batch():
    assert average_scores([]) == {
        "faithfulness": 0.0,
        "relevance": 0.0,
        "completeness": 0.0,
        "citation_accuracy": 0.0,
    }


def test_average_scores_per_dimension():
    batch = [
        EvaluationScores(faithfulness=5, relevance=4, completeness=3, citation_accuracy=2),
        EvaluationScores(faithfulness=3, relevance=4, completeness=5, citation_accuracy=4),
    ]
    assert average_scores(batch) == {
        "faithfulness": 4.0,
        "relevance": 4.0,
        "completeness": 4.0,
        "citation_accuracy": 3.0,
    }


def test_compute_stats_empty_log_is_all_zero():
    now = datetime(2026, 3, 1, tzinfo=timezone.utc)
    stats = compute_stats([], now=now)
    assert stats.total_evaluations == 0
    assert stats.total_flagged == 0
    assert stats.overall_average == 0.0
    assert stats.last_updated == now


def test_compute_stats_counts_and_averages(result_factory):
    evaluations = [
        result_factory("a", scores=(5, 5, 5, 5)),
        result_factory("b", scores=(2, 4, 4, 4)),
        result_factory("c", scores=(5, 3, 3, 3)),
    ]
    stats = compute_stats(evaluations)

    assert stats.total_evaluations == 3
    assert stats.total_flagged == 1
    assert stats.avg_faithfulness == pytest.approx(4.0)
    assert stats.avg_relevance == pytest.approx(4.0)
    assert stats.avg_citation_accuracy == pytest.approx(4.0)
    assert stats.overall_average == pytest.approx(4.0)


def _stats(total: int, overall: float) -> EvaluationStats:
    return EvaluationStats(
        total_evaluations=total,
        overall_average=overall,
        last_updated=datetime.now(timezone.utc),
    )


@pytest.mark.parametrize(
    ("total", "overall", "expected"),
    [
        (0, 0.0, "healthy"),
        (10, 2.4, "unhealthy"),
        (10, 2.5, "degraded"),
        (10, 3.49, "degraded"),
        (10, 3.5, "healthy"),
        (10, 4.8, "healthy"),
    ],
)
def test_health_status_thresholds(total, overall, expected):
    assert health_status(_stats(total, overall)) == expected
