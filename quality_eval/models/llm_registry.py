"""Judge model registry via OpenRouter.

The judge is accessed through OpenRouter's OpenAI-compatible API. Each task
maps to a primary model plus an ordered fallback chain taken from settings.
"""

from __future__ import annotations

from dataclasses import dataclass

from langchain_openai import ChatOpenAI

from quality_eval.config import Settings
from quality_eval.utils.logging import get_logger

logger = get_logger(__name__)

JUDGE_TASK = "judge"


@dataclass(frozen=True)
class ModelSpec:
    slug: str
    temperature: float
    purpose: str
    max_tokens: int | None = None


class LLMRegistry:
    """Builds and caches judge models, with fallback support."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._specs: dict[str, ModelSpec] = {
            JUDGE_TASK: ModelSpec(
                slug=settings.JUDGE_MODEL,
                temperature=settings.JUDGE_TEMPERATURE,
                max_tokens=settings.JUDGE_MAX_TOKENS,
                purpose="LLM-as-judge scoring of sampled chat responses",
            ),
        }
        self._fallback_slugs: dict[str, list[str]] = {
            JUDGE_TASK: [s for s in settings.JUDGE_FALLBACK_MODELS if s != settings.JUDGE_MODEL],
        }
        # Each model in the chain gets an equal share of the judge deadline.
        self._model_timeout = settings.JUDGE_TIMEOUT_SECONDS / (1 + len(self._fallback_slugs[JUDGE_TASK]))
        self._models: dict[str, ChatOpenAI] = {}
        self._slug_cache: dict[str, ChatOpenAI] = {}
        self._call_stats: dict[str, dict] = {}

        for task_name, spec in self._specs.items():
            self._models[task_name] = self._build_model(spec)
            self._call_stats[task_name] = {"calls": 0, "tokens": 0, "failures": 0}

    def _build_model(self, spec: ModelSpec) -> ChatOpenAI:
        cache_key = f"{spec.slug}:{spec.temperature}:{spec.max_tokens}"
        if cache_key in self._slug_cache:
            return self._slug_cache[cache_key]

        kwargs: dict = {
            "model": spec.slug,
            "openai_api_key": self._settings.OPENROUTER_API_KEY,
            "openai_api_base": self._settings.OPENROUTER_BASE_URL,
            "temperature": spec.temperature,
            "timeout": self._model_timeout,
            # Retries belong to the scheduler.
            "max_retries": 0,
            "model_kwargs": {
                "extra_headers": {
                    "HTTP-Referer": "https://quality-eval.local",
                    "X-Title": "Quality Eval",
                }
            },
        }
        if spec.max_tokens is not None:
            kwargs["max_tokens"] = spec.max_tokens

        model = ChatOpenAI(**kwargs)
        self._slug_cache[cache_key] = model
        logger.debug("judge_model_built", slug=spec.slug, purpose=spec.purpose)
        return model

    @property
    def model_timeout(self) -> float:
        """Per-model request timeout, in seconds."""
        return self._model_timeout

    def get_model(self, task: str) -> ChatOpenAI:
        """Get the primary model assigned to a task."""
        if task not in self._models:
            raise KeyError(f"No model registered for task '{task}'")
        return self._models[task]

    def get_fallback_chain(self, task: str) -> list[ChatOpenAI]:
        """Return all fallback models for a task, in order."""
        spec = self._specs.get(task)
        if spec is None:
            return []
        result: list[ChatOpenAI] = []
        for slug in self._fallback_slugs.get(task, []):
            fb_spec = ModelSpec(
                slug=slug,
                temperature=spec.temperature,
                max_tokens=spec.max_tokens,
                purpose=f"Fallback for {task}",
            )
            result.append(self._build_model(fb_spec))
        return result

    def record_usage(self, task: str, tokens: int) -> None:
        if task in self._call_stats:
            self._call_stats[task]["calls"] += 1
            self._call_stats[task]["tokens"] += tokens

    def record_failure(self, task: str) -> None:
        if task in self._call_stats:
            self._call_stats[task]["failures"] += 1

    @property
    def stats(self) -> dict[str, dict]:
        return {task: dict(values) for task, values in self._call_stats.items()}
