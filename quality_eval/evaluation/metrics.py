"""Aggregate metrics over stored evaluations: averages, stats, health."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone

from quality_eval.models.schemas import (
    EvaluationResult,
    EvaluationScores,
    EvaluationStats,
    HealthStatus,
)

UNHEALTHY_BELOW = 2.5
DEGRADED_BELOW = 3.5


def average_scores(scores: Sequence[EvaluationScores]) -> dict[str, float]:
    """Per-dimension mean over a batch of score vectors; zeros for an empty batch."""
    if not scores:
        return {"faithfulness": 0.0, "relevance": 0.0, "completeness": 0.0, "citation_accuracy": 0.0}

    count = len(scores)
    return {
        "faithfulness": sum(s.faithfulness for s in scores) / count,
        "relevance": sum(s.relevance for s in scores) / count,
        "completeness": sum(s.completeness for s in scores) / count,
        "citation_accuracy": sum(s.citation_accuracy for s in scores) / count,
    }


def compute_stats(evaluations: Sequence[EvaluationResult], now: datetime | None = None) -> EvaluationStats:
    now = now or datetime.now(timezone.utc)
    if not evaluations:
        return EvaluationStats(last_updated=now)

    averages = average_scores([e.scores for e in evaluations])
    return EvaluationStats(
        total_evaluations=len(evaluations),
        total_flagged=sum(1 for e in evaluations if e.is_flagged),
        avg_faithfulness=averages["faithfulness"],
        avg_relevance=averages["relevance"],
        avg_completeness=averages["completeness"],
        avg_citation_accuracy=averages["citation_accuracy"],
        overall_average=sum(averages.values()) / 4,
        last_updated=now,
    )


def health_status(stats: EvaluationStats) -> HealthStatus:
    """Health derived from the overall average; healthy until something is scored."""
    if stats.total_evaluations == 0:
        return "healthy"
    if stats.overall_average < UNHEALTHY_BELOW:
        return "unhealthy"
    if stats.overall_average < DEGRADED_BELOW:
        return "degraded"
    return "healthy"
