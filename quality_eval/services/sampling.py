"""Sampling gate: decides whether an interaction is evaluated at all."""

from __future__ import annotations

import random

from quality_eval.services.evaluation_store import EvaluationStore


class SamplingGate:
    """Feature-flagged Bernoulli sampling, one independent draw per call."""

    def __init__(self, store: EvaluationStore, rng: random.Random | None = None) -> None:
        self._store = store
        self._rng = rng or random.Random()

    async def should_evaluate(self, force: bool = False) -> bool:
        if force:
            return True

        config = await self._store.get_config()
        if not config.enabled:
            return False

        return self._rng.random() < config.sample_rate
