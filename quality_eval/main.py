"""FastAPI application factory with lifespan events."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quality_eval.api.dependencies import set_registry, set_sampling_gate, set_scheduler, set_store
from quality_eval.api.router import api_router
from quality_eval.config import get_settings
from quality_eval.evaluation.judge import LLMJudge
from quality_eval.models.llm_registry import LLMRegistry
from quality_eval.models.model_router import ModelRouter
from quality_eval.services.evaluation_service import EvaluationScheduler
from quality_eval.services.evaluation_store import EvaluationStore
from quality_eval.services.sampling import SamplingGate
from quality_eval.utils.backoff import PacingPolicy
from quality_eval.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the evaluation pipeline on startup, stop its worker on shutdown."""
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    store = EvaluationStore(settings.EVAL_DATA_DIR)
    set_store(store)

    registry = LLMRegistry(settings)
    set_registry(registry)
    judge = LLMJudge(ModelRouter(registry), timeout=settings.JUDGE_TIMEOUT_SECONDS)

    scheduler = EvaluationScheduler(
        judge,
        store,
        max_queue_size=settings.EVAL_QUEUE_MAX_SIZE,
        max_retries=settings.EVAL_MAX_RETRIES,
        pacing=PacingPolicy(
            base_delay=settings.EVAL_BASE_DELAY_SECONDS,
            growth_factor=settings.EVAL_DELAY_GROWTH_FACTOR,
            pressure_divisor=settings.EVAL_PRESSURE_DIVISOR,
            max_exponent=settings.EVAL_MAX_DELAY_EXPONENT,
        ),
    )
    set_scheduler(scheduler)
    set_sampling_gate(SamplingGate(store))

    logger.info(
        "app_started",
        data_dir=str(store.data_dir),
        judge_model=settings.JUDGE_MODEL,
        queue_capacity=settings.EVAL_QUEUE_MAX_SIZE,
    )
    yield

    await scheduler.close()
    logger.info("app_stopped", **scheduler.status().model_dump())


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    application = FastAPI(
        title="Quality Eval",
        description="Sampled LLM-as-judge quality monitoring for chat responses",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(api_router)

    @application.middleware("http")
    async def request_id_middleware(request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_exception", error=str(exc), path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "type": type(exc).__name__},
        )

    return application


app = create_app()
