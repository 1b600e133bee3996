"""JSON file store for evaluation results and the evaluation configuration.

Two whole-file artifacts live under the data directory: the evaluation log
(newest first, capped at ``max_stored``) and the configuration record. Both
are cached in memory. Every mutation runs under one write lock, and the
cache is only touched after the file write succeeded, so cache and disk
never diverge on a failed write. Reads never raise: a missing or corrupt
file reads as "no data".
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from quality_eval.evaluation.metrics import compute_stats
from quality_eval.models.schemas import (
    EvaluationConfig,
    EvaluationConfigUpdate,
    EvaluationResult,
    EvaluationStats,
    validation_field_errors,
)
from quality_eval.utils.exceptions import ConfigValidationError, StoreWriteError
from quality_eval.utils.logging import get_logger

logger = get_logger(__name__)

EVALUATIONS_FILE = "evaluations.json"
CONFIG_FILE = "eval-config.json"

DEFAULT_FLAGGED_LIMIT = 50
MAX_FLAGGED_LIMIT = 500

DEFAULT_EVAL_CONFIG = EvaluationConfig()


def _read_json(path: Path) -> Any | None:
    """Best-effort JSON read; returns None on a missing file or parse/read failure."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        logger.warning("store_read_failed", path=str(path), error=str(exc))
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("store_read_corrupt", path=str(path), error=str(exc))
        return None


def _atomic_write_json(path: Path, payload: object) -> None:
    """Replace ``path`` with the serialized payload in one rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)


class EvaluationStore:
    """Single-writer durable store with an in-memory read cache."""

    def __init__(self, data_dir: str | Path) -> None:
        self._data_dir = Path(data_dir).resolve()
        self._evaluations_path = self._data_dir / EVALUATIONS_FILE
        self._config_path = self._data_dir / CONFIG_FILE

        self._evaluations_cache: list[EvaluationResult] | None = None
        self._config_cache: EvaluationConfig | None = None
        self._write_lock = asyncio.Lock()

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    # ── Configuration ────────────────────────────────────────────────

    async def get_config(self) -> EvaluationConfig:
        """Cached config; defaults (uncached) while no valid durable record exists."""
        if self._config_cache is not None:
            return self._config_cache

        raw = await asyncio.to_thread(_read_json, self._config_path)
        if raw is None:
            return DEFAULT_EVAL_CONFIG
        if not isinstance(raw, dict):
            logger.warning("store_config_invalid", reason="not an object")
            return DEFAULT_EVAL_CONFIG

        try:
            config = EvaluationConfig.model_validate({**DEFAULT_EVAL_CONFIG.model_dump(), **raw})
        except ValidationError as exc:
            logger.warning("store_config_invalid", errors=validation_field_errors(exc))
            return DEFAULT_EVAL_CONFIG

        self._config_cache = config
        return config

    async def save_config(self, update: EvaluationConfigUpdate | Mapping[str, Any]) -> EvaluationConfig:
        """Merge ``update`` into the current config and write it durably.

        Raises:
            ConfigValidationError: unknown fields or out-of-range values; nothing is written.
            StoreWriteError: the config file could not be written; the cache is unchanged.
        """
        if not isinstance(update, EvaluationConfigUpdate):
            try:
                update = EvaluationConfigUpdate.model_validate(dict(update))
            except ValidationError as exc:
                raise ConfigValidationError(
                    "Invalid configuration values", validation_field_errors(exc)
                ) from exc

        async with self._write_lock:
            current = await self.get_config()
            try:
                updated = EvaluationConfig.model_validate({**current.model_dump(), **update.changes()})
            except ValidationError as exc:
                raise ConfigValidationError(
                    "Invalid configuration values", validation_field_errors(exc)
                ) from exc

            await self._write(self._config_path, updated.model_dump(mode="json"))
            self._config_cache = updated

        logger.info("eval_config_updated", changes=update.changes())
        return updated

    # ── Evaluation log ───────────────────────────────────────────────

    async def _read_evaluations_from_disk(self) -> list[EvaluationResult]:
        raw = await asyncio.to_thread(_read_json, self._evaluations_path)
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning("store_evaluations_invalid", reason="not a list")
            return []

        evaluations: list[EvaluationResult] = []
        skipped = 0
        for entry in raw:
            try:
                evaluations.append(EvaluationResult.model_validate(entry))
            except ValidationError:
                skipped += 1
        if skipped:
            logger.warning("store_evaluations_skipped", skipped=skipped, kept=len(evaluations))
        return evaluations

    async def get_evaluations(self) -> list[EvaluationResult]:
        """All stored evaluations, newest first. The returned list is a copy."""
        if self._evaluations_cache is None:
            self._evaluations_cache = await self._read_evaluations_from_disk()
        return list(self._evaluations_cache)

    async def save_evaluation(self, evaluation: EvaluationResult) -> None:
        """Prepend ``evaluation`` to the log and trim it to ``max_stored``.

        The log is re-read from disk inside the lock rather than taken from the
        cache, so a write never builds on a stale snapshot.

        Raises:
            StoreWriteError: the log file could not be written; the cache is unchanged.
        """
        async with self._write_lock:
            config = await self.get_config()
            current = await self._read_evaluations_from_disk()

            updated = [evaluation, *current][: config.max_stored]

            await self._write(self._evaluations_path, [e.model_dump(mode="json") for e in updated])
            self._evaluations_cache = updated

        if len(current) + 1 > config.max_stored:
            logger.debug("store_evaluations_trimmed", max_stored=config.max_stored)

    async def get_flagged(self, limit: int = DEFAULT_FLAGGED_LIMIT) -> list[EvaluationResult]:
        """Flagged evaluations, newest first; ``limit`` is clamped to 1..500."""
        safe_limit = min(max(1, limit), MAX_FLAGGED_LIMIT)
        evaluations = await self.get_evaluations()
        return [e for e in evaluations if e.is_flagged][:safe_limit]

    async def get_stats(self) -> EvaluationStats:
        return compute_stats(await self.get_evaluations())

    def clear_cache(self) -> None:
        self._evaluations_cache = None
        self._config_cache = None

    async def _write(self, path: Path, payload: object) -> None:
        try:
            await asyncio.to_thread(_atomic_write_json, path, payload)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("store_write_failed", path=str(path), error=str(exc))
            raise StoreWriteError(f"Failed to write {path.name}: {exc}") from exc
