"""Unit tests for the judge model registry."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from quality_eval.models.llm_registry import JUDGE_TASK


def test_registry_builds_judge_model(settings):
    with patch("quality_eval.models.llm_registry.ChatOpenAI") as MockChat:
        from quality_eval.models.llm_registry import LLMRegistry

        registry = LLMRegistry(settings)

        assert registry.get_model(JUDGE_TASK) is not None
        kwargs = MockChat.call_args.kwargs
        assert kwargs["model"] == settings.JUDGE_MODEL
        assert kwargs["temperature"] == 0.0
        assert kwargs["max_tokens"] == 256
        assert kwargs["max_retries"] == 0


def test_registry_raises_for_unknown_task(settings):
    with patch("quality_eval.models.llm_registry.ChatOpenAI"):
        from quality_eval.models.llm_registry import LLMRegistry

        registry = LLMRegistry(settings)

        with pytest.raises(KeyError, match="nonexistent"):
            registry.get_model("nonexistent")


def test_registry_returns_fallback_chain(settings):
    settings.JUDGE_FALLBACK_MODELS = ["anthropic/claude-sonnet-4.6", settings.JUDGE_MODEL]
    with patch("quality_eval.models.llm_registry.ChatOpenAI") as MockChat:
        MockChat.side_effect = lambda **kw: kw["model"]
        from quality_eval.models.llm_registry import LLMRegistry

        registry = LLMRegistry(settings)

        assert registry.get_fallback_chain(JUDGE_TASK) == ["anthropic/claude-sonnet-4.6"]
        assert registry.get_fallback_chain("nonexistent") == []


def test_registry_tracks_usage_and_failures(settings):
    with patch("quality_eval.models.llm_registry.ChatOpenAI"):
        from quality_eval.models.llm_registry import LLMRegistry

        registry = LLMRegistry(settings)
        registry.record_usage(JUDGE_TASK, 120)
        registry.record_failure(JUDGE_TASK)

        stats = registry.stats
        assert stats[JUDGE_TASK] == {"calls": 1, "tokens": 120, "failures": 1}


def test_registry_splits_judge_deadline_across_chain(settings):
    settings.JUDGE_TIMEOUT_SECONDS = 30.0
    settings.JUDGE_FALLBACK_MODELS = ["anthropic/claude-sonnet-4.6", "google/gemini-2.5-pro"]
    with patch("quality_eval.models.llm_registry.ChatOpenAI") as MockChat:
        from quality_eval.models.llm_registry import LLMRegistry

        registry = LLMRegistry(settings)
        registry.get_fallback_chain(JUDGE_TASK)

        assert registry.model_timeout == pytest.approx(10.0)
        timeouts = [call.kwargs["timeout"] for call in MockChat.call_args_list]
        assert len(timeouts) == 3
        assert all(t == pytest.approx(10.0) for t in timeouts)


def test_registry_without_fallbacks_uses_full_deadline(settings):
    settings.JUDGE_TIMEOUT_SECONDS = 20.0
    settings.JUDGE_FALLBACK_MODELS = []
    with patch("quality_eval.models.llm_registry.ChatOpenAI") as MockChat:
        from quality_eval.models.llm_registry import LLMRegistry

        registry = LLMRegistry(settings)

        assert registry.model_timeout == pytest.approx(20.0)
        assert MockChat.call_args.kwargs["timeout"] == pytest.approx(20.0)
