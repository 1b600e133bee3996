"""Background evaluation scheduler.

Callers enqueue sampled interactions and return immediately. One worker
task, started lazily on the first enqueue into an idle scheduler and
finished once the queue is empty, drains the queue: it judges each item,
persists the result and paces itself by current queue depth. Failed items
go to the tail of the queue until the retry ceiling, then are dropped.
Delivery is best effort; nothing reports the final outcome to the caller.
"""

from __future__ import annotations

import asyncio
import uuid
from collections import deque
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

import structlog

from quality_eval.evaluation.judge import LLMJudge
from quality_eval.models.schemas import EvaluationRequest, EvaluationResult, QueueStatus
from quality_eval.services.evaluation_store import EvaluationStore
from quality_eval.utils.backoff import PacingPolicy
from quality_eval.utils.logging import get_logger

logger = get_logger(__name__)

MAX_QUEUE_SIZE = 100
MAX_RETRIES = 3


def _new_evaluation_id() -> str:
    return f"eval_{uuid.uuid4()}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EvaluationScheduler:
    """Bounded FIFO of pending evaluations with a single consumer."""

    def __init__(
        self,
        judge: LLMJudge,
        store: EvaluationStore,
        *,
        max_queue_size: int = MAX_QUEUE_SIZE,
        max_retries: int = MAX_RETRIES,
        pacing: PacingPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_evaluation_id,
    ) -> None:
        if max_queue_size < 1:
            raise ValueError("max_queue_size must be positive")
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")

        self._judge = judge
        self._store = store
        self._max_queue_size = max_queue_size
        self._max_retries = max_retries
        self._pacing = pacing or PacingPolicy()
        self._sleep = sleep
        self._clock = clock
        self._id_factory = id_factory

        self._queue: deque[EvaluationRequest] = deque()
        self._worker: asyncio.Task | None = None
        self._active = False
        self._dropped = 0
        self._failed = 0
        self._processed = 0

    # ── Producer side ────────────────────────────────────────────────

    def enqueue(self, query: str, response: str, context: str = "") -> bool:
        """Queue one interaction for evaluation. Never blocks.

        Returns False when the queue is full (the item is dropped and counted)
        or when called outside a running event loop.
        """
        if len(self._queue) >= self._max_queue_size:
            self._dropped += 1
            logger.warning(
                "evaluation_dropped_queue_full",
                capacity=self._max_queue_size,
                total_dropped=self._dropped,
            )
            return False

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("evaluation_rejected_no_event_loop")
            return False

        self._queue.append(EvaluationRequest(query=query, response=response, context=context))
        if not self._active:
            self._start_worker(loop)
        return True

    def status(self) -> QueueStatus:
        return QueueStatus(
            pending=len(self._queue),
            active=self._active,
            dropped=self._dropped,
            capacity=self._max_queue_size,
            failed=self._failed,
            processed=self._processed,
        )

    # ── Worker lifecycle ─────────────────────────────────────────────

    def _start_worker(self, loop: asyncio.AbstractEventLoop) -> None:
        # Set before the task first runs so back-to-back enqueues see one worker.
        self._active = True
        self._worker = loop.create_task(self._drain(), name="evaluation-scheduler")

    async def wait_idle(self) -> None:
        """Wait until the queue has been drained and the worker has exited."""
        while self._active and self._worker is not None and not self._worker.done():
            await asyncio.wait({self._worker})

    async def close(self) -> None:
        """Cancel the worker at shutdown; pending items are abandoned."""
        worker = self._worker
        if worker is None or worker.done():
            return
        if self._queue:
            logger.warning("evaluation_scheduler_closing", abandoned=len(self._queue))
        worker.cancel()
        try:
            await worker
        except asyncio.CancelledError:
            pass
        finally:
            self._active = False

    async def _drain(self) -> None:
        # The task inherits the enqueuing request's context; drop its request_id.
        structlog.contextvars.clear_contextvars()
        logger.debug("evaluation_worker_started", pending=len(self._queue))
        try:
            while self._queue:
                item = self._queue.popleft()

                try:
                    await self._process(item)
                except Exception as exc:
                    self._handle_failure(item, exc)

                await self._sleep(self._pacing.delay_for(len(self._queue)))
        finally:
            # No await between the empty check above and this reset.
            self._active = False
            logger.debug("evaluation_worker_idle", processed=self._processed, failed=self._failed)

    def _handle_failure(self, item: EvaluationRequest, exc: Exception) -> None:
        error = str(exc) or type(exc).__name__
        if item.retry_count < self._max_retries:
            item.retry_count += 1
            item.last_error = error
            self._queue.append(item)
            logger.warning(
                "evaluation_requeued",
                retry=item.retry_count,
                max_retries=self._max_retries,
                error=error,
                error_type=type(exc).__name__,
            )
            return

        self._failed += 1
        logger.warning(
            "evaluation_dropped_max_retries",
            max_retries=self._max_retries,
            error=error,
            error_type=type(exc).__name__,
            query=item.query[:100],
        )

    # ── Processing ───────────────────────────────────────────────────

    async def _process(self, item: EvaluationRequest) -> EvaluationResult:
        config = await self._store.get_config()
        verdict = await self._judge.judge(item.query, item.response, item.context)

        evaluation = EvaluationResult.from_verdict(
            item,
            verdict,
            flag_threshold=config.flag_threshold,
            evaluation_id=self._id_factory(),
            timestamp=self._clock(),
        )
        await self._store.save_evaluation(evaluation)
        self._processed += 1

        if evaluation.is_flagged:
            logger.warning(
                "evaluation_flagged",
                evaluation_id=evaluation.id,
                scores=evaluation.scores.model_dump(),
                query=evaluation.query[:100],
                retries=item.retry_count,
            )
        else:
            logger.info(
                "evaluation_completed",
                evaluation_id=evaluation.id,
                avg_score=round(evaluation.average_score, 2),
                retries=item.retry_count,
            )
        return evaluation
