"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from quality_eval.models.schemas import EvaluationRequest, EvaluationResult, ScoreVector


@pytest.fixture(autouse=True)
def _env_setup(monkeypatch, tmp_path):
    """Set required environment variables for tests."""
    monkeypatch.setenv("OPENROUTER_API_KEY", "test-key")
    monkeypatch.setenv("EVAL_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("LANGSMITH_API_KEY", "")
    monkeypatch.setenv("LANGCHAIN_TRACING_V2", "false")
    monkeypatch.setenv("LOG_FORMAT", "console")


@pytest.fixture
def settings(tmp_path):
    from quality_eval.config import Settings

    return Settings(
        OPENROUTER_API_KEY="test-key",
        EVAL_DATA_DIR=str(tmp_path / "data"),
        LANGSMITH_API_KEY="",
        LANGCHAIN_TRACING_V2=False,
    )


@pytest.fixture
def store(tmp_path):
    from quality_eval.services.evaluation_store import EvaluationStore

    return EvaluationStore(tmp_path / "data")


@pytest.fixture
def mock_registry(settings):
    """LLM registry with a mocked judge model and no fallbacks."""
    from quality_eval.models.llm_registry import JUDGE_TASK, LLMRegistry

    with patch.object(LLMRegistry, "__init__", lambda self, s: None):
        registry = LLMRegistry.__new__(LLMRegistry)
        registry._settings = settings
        registry._specs = {}
        registry._fallback_slugs = {}
        registry._models = {}
        registry._slug_cache = {}
        registry._call_stats = {}

        mock_model = MagicMock()
        mock_model.ainvoke = AsyncMock(return_value=MagicMock(content="test response", usage_metadata=None))
        mock_model.model_name = "test-model"

        registry._models[JUDGE_TASK] = mock_model
        registry._call_stats[JUDGE_TASK] = {"calls": 0, "tokens": 0, "failures": 0}

        return registry


def make_verdict(
    faithfulness: int = 4,
    relevance: int = 4,
    completeness: int = 4,
    citation_accuracy: int = 4,
    reasoning: str = "Grounded and cited.",
) -> ScoreVector:
    return ScoreVector(
        faithfulness=faithfulness,
        relevance=relevance,
        completeness=completeness,
        citation_accuracy=citation_accuracy,
        reasoning=reasoning,
    )


def make_result(
    evaluation_id: str,
    *,
    scores: tuple[int, int, int, int] = (4, 4, 4, 4),
    flag_threshold: int = 3,
    query: str = "What is the termination notice period?",
) -> EvaluationResult:
    return EvaluationResult.from_verdict(
        EvaluationRequest(query=query, response="Thirty days.", context="Section 9: Termination"),
        make_verdict(*scores),
        flag_threshold=flag_threshold,
        evaluation_id=evaluation_id,
        timestamp=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def mock_judge():
    """Judge whose ``judge`` coroutine returns a passing verdict by default."""
    judge = MagicMock()
    judge.judge = AsyncMock(return_value=make_verdict())
    return judge


@pytest.fixture
def verdict_factory():
    return make_verdict


@pytest.fixture
def result_factory():
    return make_result
