"""Run controller: enumerate, then process, then report done."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .conditions import ConditionRegistry
from .config import BulkEditConfig, load_config
from .contracts import RunRequest
from .enumerator import RecordEnumerator
from .operations import OperationDispatcher
from .progress import ProgressTracker
from .queues import RateLimitedQueue, RateLimiter
from .scheduler import ExecutionScheduler
from .stores import BaseRecordStore, get_store

logger = logging.getLogger(__name__)


class BulkEditRunner:
    """Drive one bulk edit from record enumeration to completion.

    ``tracker`` is replaced at the start of every run, so a caller polling
    it sees fresh counters and an empty log for each new run.
    """

    def __init__(
        self,
        store: BaseRecordStore,
        config: Optional[BulkEditConfig] = None,
        registry: Optional[ConditionRegistry] = None,
    ) -> None:
        self._store = store
        self._config = config or load_config()
        self._registry = registry
        self.tracker = ProgressTracker()

    async def run(self, request: RunRequest) -> ProgressTracker:
        """Execute ``request`` and return the tracker holding its outcome.

        Raises:
            EnumerationError: If the matching records could not all be listed.
                Nothing is processed in that case.
        """
        execution = self._config.execution
        tracker = self.tracker = ProgressTracker()

        enumeration_queue = RateLimitedQueue(
            "enumeration", RateLimiter.from_config(execution.enumeration, name="enumeration")
        )
        enumerator = RecordEnumerator(
            self._store, enumeration_queue, page_size=execution.page_size
        )
        try:
            record_ids = await enumerator.collect(request.filter)
        finally:
            await enumeration_queue.close()

        tracker.set_totals(len(record_ids), len(request.operations))
        tracker.set_phase("processing")

        if not record_ids or not request.operations:
            tracker.set_phase("done")
            logger.info("Nothing to process")
            return tracker

        processing_queue = RateLimitedQueue(
            "processing",
            RateLimiter.from_config(execution.processing, name="processing"),
            autostart=False,
        )
        scheduler = ExecutionScheduler(
            self._store,
            OperationDispatcher(self._store),
            tracker,
            processing_queue,
            registry=self._registry,
            step_timeout=execution.step_timeout,
        )
        chains = scheduler.schedule(record_ids, request.operations, request.dry_run)
        processing_queue.start()
        try:
            await asyncio.gather(*chains)
            await processing_queue.on_idle()
        finally:
            await processing_queue.close()

        tracker.set_phase("done")
        state = tracker.state
        logger.info(
            f"Bulk edit {'dry run ' if request.dry_run else ''}finished: "
            f"{state.records_processed} entries, {state.steps_succeeded} succeeded, "
            f"{state.steps_skipped} skipped, {state.steps_errored} errored"
        )
        return tracker


async def run_bulk_edit(
    request: RunRequest,
    store: Optional[BaseRecordStore] = None,
    config: Optional[BulkEditConfig] = None,
    registry: Optional[ConditionRegistry] = None,
) -> ProgressTracker:
    """Run ``request`` against ``store`` (or the configured store)."""
    config = config or load_config()
    store = store or get_store(config=config)
    runner = BulkEditRunner(store, config=config, registry=registry)
    return await runner.run(request)
