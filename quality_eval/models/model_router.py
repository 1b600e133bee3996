"""Model router with fallback chains and LangSmith tracing on judge calls."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from langsmith import traceable

from quality_eval.models.llm_registry import LLMRegistry
from quality_eval.utils.exceptions import JudgeError
from quality_eval.utils.logging import get_logger

if TYPE_CHECKING:
    from langchain_core.messages import BaseMessage

logger = get_logger(__name__)


class ModelRouter:
    """Wraps model calls with automatic fallback and usage tracking."""

    def __init__(self, registry: LLMRegistry) -> None:
        self._registry = registry

    @traceable(run_type="llm", name="judge_router_invoke")
    async def invoke(self, task: str, messages: list[BaseMessage]) -> object:
        """Invoke the model for a task, falling back on failure.

        Raises:
            JudgeError: when the primary model and every fallback failed.
        """
        primary = self._registry.get_model(task)
        fallbacks = self._registry.get_fallback_chain(task)
        all_models = [("primary", primary), *((f"fallback-{i}", fb) for i, fb in enumerate(fallbacks))]

        last_error: Exception | None = None
        for label, model in all_models:
            try:
                start = time.monotonic()
                result = await model.ainvoke(messages)
                elapsed_ms = int((time.monotonic() - start) * 1000)

                tokens = 0
                usage_meta = getattr(result, "usage_metadata", None)
                if usage_meta:
                    tokens = usage_meta.get("total_tokens", 0) if isinstance(usage_meta, dict) else 0

                self._registry.record_usage(task, tokens)

                if label != "primary":
                    logger.warning(
                        "model_fallback_used",
                        task=task,
                        label=label,
                        model=model.model_name,
                        elapsed_ms=elapsed_ms,
                    )
                else:
                    logger.debug(
                        "model_invoked",
                        task=task,
                        model=model.model_name,
                        tokens=tokens,
                        elapsed_ms=elapsed_ms,
                    )

                return result

            except Exception as exc:
                last_error = exc
                self._registry.record_failure(task)
                logger.error(
                    "model_invoke_failed",
                    task=task,
                    label=label,
                    model=model.model_name,
                    error=str(exc),
                )
                continue

        raise JudgeError(f"All models failed for task '{task}': {last_error}") from last_error
