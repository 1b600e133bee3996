"""Evaluation API endpoints.

GET   /evaluations          - recent evaluations, newest first
GET   /evaluations/stats    - aggregate statistics
GET   /evaluations/config   - current configuration
PATCH /evaluations/config   - partial configuration update
GET   /evaluations/alerts   - flagged evaluations
GET   /evaluations/status   - queue status, stats, derived health and judge usage
POST  /evaluations/submit   - sample and enqueue one interaction
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError

from quality_eval.api.dependencies import get_registry, get_sampling_gate, get_scheduler, get_store
from quality_eval.api.v1.schemas.evaluation import (
    AlertsResponse,
    ConfigUpdateResponse,
    EvaluationListResponse,
    EvaluationSubmission,
    JudgeUsage,
    PipelineStatusResponse,
    SubmissionResponse,
)
from quality_eval.evaluation.metrics import health_status
from quality_eval.models.llm_registry import JUDGE_TASK, LLMRegistry
from quality_eval.models.schemas import (
    EvaluationConfig,
    EvaluationConfigUpdate,
    EvaluationStats,
    validation_field_errors,
)
from quality_eval.services.evaluation_service import EvaluationScheduler
from quality_eval.services.evaluation_store import EvaluationStore
from quality_eval.services.sampling import SamplingGate
from quality_eval.utils.exceptions import ConfigValidationError
from quality_eval.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/evaluations", tags=["evaluations"])

DEFAULT_LIMIT = 50
MAX_LIMIT = 500


def parse_limit(raw: str | None) -> int:
    """Lenient ``limit`` parsing: missing, non-numeric or < 1 means the default."""
    if not raw:
        return DEFAULT_LIMIT
    try:
        parsed = int(raw)
    except ValueError:
        return DEFAULT_LIMIT
    if parsed < 1:
        return DEFAULT_LIMIT
    return min(parsed, MAX_LIMIT)


@router.get("", response_model=EvaluationListResponse)
async def list_evaluations(
    limit: str | None = None,
    store: EvaluationStore = Depends(get_store),
) -> EvaluationListResponse:
    try:
        evaluations = await store.get_evaluations()
    except Exception as exc:
        logger.error("evaluations_list_failed", error=str(exc))
        raise HTTPException(status_code=500, detail="Failed to retrieve evaluations")
    return EvaluationListResponse(evaluations=evaluations[: parse_limit(limit)], total=len(evaluations))


@router.get("/stats", response_model=EvaluationStats)
async def get_stats(store: EvaluationStore = Depends(get_store)) -> EvaluationStats:
    try:
        return await store.get_stats()
    except Exception as exc:
        logger.error("evaluations_stats_failed", error=str(exc))
        raise HTTPException(status_code=500, detail="Failed to retrieve evaluations")


@router.get("/config", response_model=EvaluationConfig)
async def get_config(store: EvaluationStore = Depends(get_store)) -> EvaluationConfig:
    try:
        return await store.get_config()
    except Exception as exc:
        logger.error("evaluations_config_failed", error=str(exc))
        raise HTTPException(status_code=500, detail="Failed to retrieve evaluations")


@router.patch("/config", response_model=ConfigUpdateResponse)
async def update_config(
    payload: dict[str, Any] = Body(...),
    store: EvaluationStore = Depends(get_store),
) -> ConfigUpdateResponse:
    """Apply a partial update; an invalid payload changes nothing."""
    try:
        update = EvaluationConfigUpdate.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=400,
            detail={"error": "Invalid configuration values", "details": validation_field_errors(exc)},
        )

    if not update.changes():
        raise HTTPException(status_code=400, detail={"error": "No valid fields to update"})

    try:
        config = await store.save_config(update)
    except ConfigValidationError as exc:
        raise HTTPException(
            status_code=400,
            detail={"error": str(exc), "details": exc.field_errors},
        )
    except Exception as exc:
        logger.error("evaluations_config_update_failed", error=str(exc))
        raise HTTPException(status_code=500, detail="Failed to update configuration")

    return ConfigUpdateResponse(config=config)


@router.get("/alerts", response_model=AlertsResponse)
async def get_alerts(
    limit: str | None = None,
    store: EvaluationStore = Depends(get_store),
) -> AlertsResponse:
    try:
        config = await store.get_config()
        flagged = await store.get_flagged(parse_limit(limit))
    except Exception as exc:
        logger.error("evaluations_alerts_failed", error=str(exc))
        raise HTTPException(status_code=500, detail="Failed to retrieve alerts")
    return AlertsResponse(alerts=flagged, count=len(flagged), threshold=config.flag_threshold)


@router.get("/status", response_model=PipelineStatusResponse)
async def get_status(
    store: EvaluationStore = Depends(get_store),
    scheduler: EvaluationScheduler = Depends(get_scheduler),
    registry: LLMRegistry = Depends(get_registry),
) -> PipelineStatusResponse:
    try:
        stats = await store.get_stats()
    except Exception as exc:
        logger.error("evaluations_status_failed", error=str(exc))
        raise HTTPException(status_code=500, detail="Failed to retrieve status")
    return PipelineStatusResponse(
        queue=scheduler.status(),
        stats=stats,
        health=health_status(stats),
        judge=JudgeUsage(**registry.stats.get(JUDGE_TASK, {})),
    )


@router.post("/submit", response_model=SubmissionResponse, status_code=202)
async def submit_evaluation(
    submission: EvaluationSubmission,
    gate: SamplingGate = Depends(get_sampling_gate),
    scheduler: EvaluationScheduler = Depends(get_scheduler),
) -> SubmissionResponse:
    """Sample and enqueue an interaction; returns before any judging happens."""
    sampled = await gate.should_evaluate(submission.force)
    if not sampled:
        return SubmissionResponse(sampled=False, queued=False)

    queued = scheduler.enqueue(submission.query, submission.response, submission.context)
    return SubmissionResponse(sampled=True, queued=queued)
