"""Request/response models for the evaluation API."""

from __future__ import annotations

from pydantic import BaseModel, Field

from quality_eval.models.schemas import (
    EvaluationConfig,
    EvaluationResult,
    EvaluationStats,
    HealthStatus,
    QueueStatus,
)


class EvaluationSubmission(BaseModel):
    query: str = Field(..., min_length=1, description="User question that produced the response")
    response: str = Field(..., description="Agent response to be judged")
    context: str = Field(default="", description="Retrieved context the response was generated from")
    force: bool = Field(default=False, description="Bypass sampling and always evaluate")


class SubmissionResponse(BaseModel):
    sampled: bool
    queued: bool


class EvaluationListResponse(BaseModel):
    evaluations: list[EvaluationResult]
    total: int


class AlertsResponse(BaseModel):
    alerts: list[EvaluationResult]
    count: int
    threshold: int


class ConfigUpdateResponse(BaseModel):
    success: bool = True
    config: EvaluationConfig


class JudgeUsage(BaseModel):
    calls: int = 0
    tokens: int = 0
    failures: int = 0


class PipelineStatusResponse(BaseModel):
    queue: QueueStatus
    stats: EvaluationStats
    health: HealthStatus
    judge: JudgeUsage
