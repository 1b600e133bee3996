"""Internal Pydantic models for data flowing through the evaluation pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

RESPONSE_MAX_CHARS = 2000
CONTEXT_MAX_CHARS = 3000

SCORE_MIN = 1
SCORE_MAX = 5

HealthStatus = Literal["healthy", "degraded", "unhealthy"]


# ── Queue item ───────────────────────────────────────────────────────


@dataclass
class EvaluationRequest:
    """A pending evaluation, owned by the scheduler while it sits in the queue."""

    query: str
    response: str
    context: str
    retry_count: int = 0
    last_error: str | None = None


# ── Scores ───────────────────────────────────────────────────────────


class EvaluationScores(BaseModel):
    model_config = ConfigDict(frozen=True)

    faithfulness: int = Field(ge=SCORE_MIN, le=SCORE_MAX, description="Grounded in the retrieved context")
    relevance: int = Field(ge=SCORE_MIN, le=SCORE_MAX, description="Addresses the question asked")
    completeness: int = Field(ge=SCORE_MIN, le=SCORE_MAX, description="Answers every part of the question")
    citation_accuracy: int = Field(ge=SCORE_MIN, le=SCORE_MAX, description="Citations match referenced content")

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.faithfulness, self.relevance, self.completeness, self.citation_accuracy)

    @property
    def average(self) -> float:
        return sum(self.as_tuple()) / 4

    def any_below(self, threshold: int) -> bool:
        return any(score < threshold for score in self.as_tuple())


class ScoreVector(EvaluationScores):
    """Judge output: the four bounded scores plus a short rationale."""

    reasoning: str = ""

    def scores(self) -> EvaluationScores:
        return EvaluationScores(**self.model_dump(exclude={"reasoning"}))


# ── Durable records ──────────────────────────────────────────────────


class EvaluationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime
    query: str
    response: str
    context: str
    scores: EvaluationScores
    reasoning: str
    average_score: float
    is_flagged: bool

    @classmethod
    def from_verdict(
        cls,
        request: EvaluationRequest,
        verdict: ScoreVector,
        *,
        flag_threshold: int,
        evaluation_id: str,
        timestamp: datetime,
    ) -> EvaluationResult:
        """Build the stored record; the flag is decided against the threshold in force now."""
        scores = verdict.scores()
        return cls(
            id=evaluation_id,
            timestamp=timestamp,
            query=request.query,
            response=request.response[:RESPONSE_MAX_CHARS],
            context=request.context[:CONTEXT_MAX_CHARS],
            scores=scores,
            reasoning=verdict.reasoning,
            average_score=scores.average,
            is_flagged=scores.any_below(flag_threshold),
        )


class EvaluationConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    sample_rate: float = Field(default=0.1, ge=0.0, le=1.0, description="Fraction of interactions evaluated")
    flag_threshold: int = Field(default=3, ge=SCORE_MIN, le=SCORE_MAX, description="Scores below this are flagged")
    max_stored: int = Field(default=1000, ge=1, description="Evaluation log capacity")


class EvaluationConfigUpdate(BaseModel):
    """Partial configuration update; every field is optional, unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid", strict=True)

    enabled: bool | None = None
    sample_rate: float | None = Field(default=None, ge=0.0, le=1.0)
    flag_threshold: int | None = Field(default=None, ge=SCORE_MIN, le=SCORE_MAX)
    max_stored: int | None = Field(default=None, ge=1, le=10000)

    @field_validator("enabled", "sample_rate", "flag_threshold", "max_stored", mode="before")
    @classmethod
    def reject_null(cls, value: object) -> object:
        # Omit a field to leave it unchanged; an explicit null is not a value.
        if value is None:
            raise ValueError("must not be null")
        return value

    def changes(self) -> dict[str, object]:
        return self.model_dump(exclude_none=True)


# ── Aggregates ───────────────────────────────────────────────────────


class EvaluationStats(BaseModel):
    total_evaluations: int = 0
    total_flagged: int = 0
    avg_faithfulness: float = 0.0
    avg_relevance: float = 0.0
    avg_completeness: float = 0.0
    avg_citation_accuracy: float = 0.0
    overall_average: float = 0.0
    last_updated: datetime


class QueueStatus(BaseModel):
    pending: int
    active: bool
    dropped: int
    capacity: int
    failed: int = 0
    processed: int = 0


def validation_field_errors(exc: ValidationError) -> dict[str, list[str]]:
    """Group pydantic error messages by top-level field name."""
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = error.get("loc") or ("__root__",)
        errors.setdefault(str(loc[0]), []).append(error.get("msg", "Invalid value"))
    return errors
