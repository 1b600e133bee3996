"""Shared FastAPI dependency injection."""

from __future__ import annotations

from quality_eval.models.llm_registry import LLMRegistry
from quality_eval.services.evaluation_service import EvaluationScheduler
from quality_eval.services.evaluation_store import EvaluationStore
from quality_eval.services.sampling import SamplingGate

_store: EvaluationStore | None = None
_scheduler: EvaluationScheduler | None = None
_sampling_gate: SamplingGate | None = None
_registry: LLMRegistry | None = None


def set_store(store: EvaluationStore) -> None:
    global _store
    _store = store


def set_scheduler(scheduler: EvaluationScheduler) -> None:
    global _scheduler
    _scheduler = scheduler


def set_sampling_gate(gate: SamplingGate) -> None:
    global _sampling_gate
    _sampling_gate = gate


def set_registry(registry: LLMRegistry) -> None:
    global _registry
    _registry = registry


def get_store() -> EvaluationStore:
    if _store is None:
        raise RuntimeError("Evaluation store not initialized")
    return _store


def get_scheduler() -> EvaluationScheduler:
    if _scheduler is None:
        raise RuntimeError("Evaluation scheduler not initialized")
    return _scheduler


def get_sampling_gate() -> SamplingGate:
    if _sampling_gate is None:
        raise RuntimeError("Sampling gate not initialized")
    return _sampling_gate


def get_registry() -> LLMRegistry:
    if _registry is None:
        raise RuntimeError("LLM registry not initialized")
    return _registry
