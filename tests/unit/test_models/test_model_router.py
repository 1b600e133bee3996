"""Unit tests for the model router with fallback logic."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from quality_eval.models.llm_registry import JUDGE_TASK
from quality_eval.models.model_router import ModelRouter
from quality_eval.utils.exceptions import JudgeError


@pytest.mark.asyncio
async def test_router_invokes_primary_model(mock_registry):
    from langchain_core.messages import HumanMessage

    mock_result = MagicMock()
    mock_result.content = "test"
    mock_result.usage_metadata = {"total_tokens": 42}
    mock_registry.get_model(JUDGE_TASK).ainvoke = AsyncMock(return_value=mock_result)

    router = ModelRouter(mock_registry)
    result = await router.invoke(JUDGE_TASK, [HumanMessage(content="test")])

    assert result is mock_result
    assert mock_registry.stats[JUDGE_TASK] == {"calls": 1, "tokens": 42, "failures": 0}


@pytest.mark.asyncio
async def test_router_falls_back_on_failure(mock_registry):
    from langchain_core.messages import HumanMessage

    mock_registry.get_model(JUDGE_TASK).ainvoke = AsyncMock(side_effect=RuntimeError("timeout"))

    fallback_result = MagicMock()
    fallback_result.content = "fallback response"
    fallback_result.usage_metadata = None

    fallback_model = MagicMock()
    fallback_model.ainvoke = AsyncMock(return_value=fallback_result)
    fallback_model.model_name = "fallback"
    mock_registry.get_fallback_chain = MagicMock(return_value=[fallback_model])

    router = ModelRouter(mock_registry)
    result = await router.invoke(JUDGE_TASK, [HumanMessage(content="test")])

    assert result is fallback_result
    assert mock_registry.stats[JUDGE_TASK]["failures"] == 1


@pytest.mark.asyncio
async def test_router_raises_judge_error_when_all_fail(mock_registry):
    from langchain_core.messages import HumanMessage

    mock_registry.get_model(JUDGE_TASK).ainvoke = AsyncMock(side_effect=RuntimeError("502 bad gateway"))

    router = ModelRouter(mock_registry)
    with pytest.raises(JudgeError, match="502 bad gateway"):
        await router.invoke(JUDGE_TASK, [HumanMessage(content="test")])
