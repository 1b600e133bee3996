"""LLM-as-judge adapter: scores one response against its retrieved context."""

from __future__ import annotations

import asyncio
import json
import math
from typing import Any

from langchain_core.messages import HumanMessage, SystemMessage

from quality_eval.evaluation.prompts import (
    JUDGE_SYSTEM_PROMPT,
    JUDGE_USER_TEMPLATE,
    NO_CONTEXT_PLACEHOLDER,
)
from quality_eval.models.llm_registry import JUDGE_TASK
from quality_eval.models.model_router import ModelRouter
from quality_eval.models.schemas import SCORE_MAX, SCORE_MIN, ScoreVector
from quality_eval.utils.exceptions import JudgeError, JudgeTimeoutError
from quality_eval.utils.logging import get_logger

logger = get_logger(__name__)

INVALID_JSON_REASON = "Invalid JSON response"
MISSING_REASONING = "No reasoning provided"
NEUTRAL_SCORE = 3

# Judge JSON key -> ScoreVector field
SCORE_FIELDS = {
    "faithfulness": "faithfulness",
    "relevance": "relevance",
    "completeness": "completeness",
    "citationAccuracy": "citation_accuracy",
}

_decoder = json.JSONDecoder()


def sanitize_for_prompt(text: str) -> str:
    """Escape angle brackets so embedded text cannot open or close payload tags."""
    return text.replace("<", "&lt;").replace(">", "&gt;")


def clamp_score(value: float) -> int:
    """Round half up to the nearest integer, then clamp into the 1-5 scale."""
    return min(SCORE_MAX, max(SCORE_MIN, math.floor(value + 0.5)))


def default_verdict(reason: str) -> ScoreVector:
    return ScoreVector(
        faithfulness=NEUTRAL_SCORE,
        relevance=NEUTRAL_SCORE,
        completeness=NEUTRAL_SCORE,
        citation_accuracy=NEUTRAL_SCORE,
        reasoning=reason,
    )


def build_judge_messages(query: str, response: str, context: str) -> list:
    prompt = JUDGE_USER_TEMPLATE.format(
        query=sanitize_for_prompt(query),
        context=sanitize_for_prompt(context or NO_CONTEXT_PLACEHOLDER),
        response=sanitize_for_prompt(response),
    )
    return [SystemMessage(content=JUDGE_SYSTEM_PROMPT), HumanMessage(content=prompt)]


def _is_score(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _verdict_from_payload(payload: Any) -> ScoreVector | None:
    if not isinstance(payload, dict):
        return None
    raw = {key: payload.get(key) for key in SCORE_FIELDS}
    if not all(_is_score(v) for v in raw.values()):
        return None
    reasoning = payload.get("reasoning")
    if not isinstance(reasoning, str) or not reasoning.strip():
        reasoning = MISSING_REASONING
    return ScoreVector(
        **{field: clamp_score(raw[key]) for key, field in SCORE_FIELDS.items()},
        reasoning=reasoning,
    )


def parse_verdict(text: str) -> ScoreVector | None:
    """Return the first well-formed score object found in the judge reply.

    Scans each ``{`` in turn and decodes from there, so prose or code fences
    around the JSON are tolerated. Returns None when no object carries all
    four numeric scores.
    """
    index = text.find("{")
    while index != -1:
        try:
            payload, _ = _decoder.raw_decode(text, index)
        except ValueError:
            payload = None
        verdict = _verdict_from_payload(payload)
        if verdict is not None:
            return verdict
        index = text.find("{", index + 1)
    return None


class LLMJudge:
    """Scores a (query, response, context) triple with the judge model.

    Provider failures and timeouts raise ``JudgeError`` so the scheduler can
    retry; unparseable judge output is not an error and yields a neutral
    verdict instead.
    """

    def __init__(self, router: ModelRouter, timeout: float | None = 30.0) -> None:
        self._router = router
        self._timeout = timeout

    async def judge(self, query: str, response: str, context: str) -> ScoreVector:
        messages = build_judge_messages(query, response, context)

        try:
            result = await asyncio.wait_for(self._router.invoke(JUDGE_TASK, messages), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("judge_timeout", timeout=self._timeout)
            raise JudgeTimeoutError(f"Judge call exceeded {self._timeout}s") from exc
        except JudgeError:
            raise
        except Exception as exc:
            logger.warning("judge_error", error=str(exc))
            raise JudgeError(str(exc)) from exc

        text = result.content if hasattr(result, "content") else str(result)
        if not isinstance(text, str):
            text = str(text)

        verdict = parse_verdict(text)
        if verdict is None:
            logger.warning("judge_invalid_json", reply_preview=text[:200])
            return default_verdict(INVALID_JSON_REASON)
        return verdict
