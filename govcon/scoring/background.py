"""Detached background execution of tenant batch scoring."""

import contextvars
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict

from govcon.config.models import AppConfig
from govcon.logging import get_logger

from .engine import MatchScorer
from .models import BatchScoreResult

logger = get_logger(__name__, component="scoring")


class ScoringQueue:
    """
    Runs ``calculate_all_matches`` off the caller's thread.

    ``submit`` returns immediately with a Future. A second submit for a
    tenant whose batch has not finished returns the pending Future instead
    of queueing duplicate work.
    """

    def __init__(self, scorer: MatchScorer, max_workers: int = 2):
        self.scorer = scorer
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="scoring-batch"
        )
        self._pending: Dict[str, Future] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, app_config: AppConfig) -> "ScoringQueue":
        scoring = app_config.scoring
        return cls(MatchScorer(page_size=scoring.page_size), max_workers=scoring.max_background_workers)

    def submit(self, tenant_id: str) -> "Future[BatchScoreResult]":
        """
        Queue batch scoring for a tenant.

        Raises:
            RuntimeError: If the queue has been shut down
        """
        with self._lock:
            pending = self._pending.get(tenant_id)
            if pending is not None and not pending.done():
                logger.debug(
                    f"Batch scoring already queued for tenant {tenant_id}",
                    extra={"event": "scoring.queue.deduplicated", "tenant_id": tenant_id},
                )
                return pending

            ctx = contextvars.copy_context()
            future = self._executor.submit(ctx.run, self._run, tenant_id)
            self._pending[tenant_id] = future

        # Registered outside the lock: a finished Future runs it inline
        future.add_done_callback(lambda done: self._forget(tenant_id, done))

        logger.info(
            f"Batch scoring queued for tenant {tenant_id}",
            extra={"event": "scoring.queue.submitted", "tenant_id": tenant_id},
        )
        return future

    def _forget(self, tenant_id: str, future: Future) -> None:
        with self._lock:
            if self._pending.get(tenant_id) is future:
                del self._pending[tenant_id]

    def _run(self, tenant_id: str) -> BatchScoreResult:
        try:
            return self.scorer.calculate_all_matches(tenant_id)
        except Exception as e:
            # Nobody may be waiting on the Future; make the failure visible
            logger.error(
                f"Background scoring failed for tenant {tenant_id}: {e}",
                exc_info=True,
                extra={"event": "scoring.queue.failed", "tenant_id": tenant_id},
            )
            raise

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
