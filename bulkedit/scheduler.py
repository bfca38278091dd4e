"""Per-record operation chains fed into the shared processing queue."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from .conditions import ConditionRegistry, evaluate_conditions
from .contracts import Operation
from .operations import OperationDispatcher
from .progress import ProgressTracker
from .queues import RateLimitedQueue
from .stores.base import BaseRecordStore

logger = logging.getLogger(__name__)


class ExecutionScheduler:
    """Runs every operation against every record.

    Each record gets its own chain: operation ``n + 1`` is only queued once
    operation ``n`` for that record has finished, while chains of different
    records share the processing queue freely. Earlier records get a higher
    queue priority so progress roughly follows enumeration order.

    Once a step fails for a record, the remaining steps of that record are
    skipped without evaluating their conditions.
    """

    def __init__(
        self,
        store: BaseRecordStore,
        dispatcher: OperationDispatcher,
        tracker: ProgressTracker,
        queue: RateLimitedQueue,
        registry: Optional[ConditionRegistry] = None,
        step_timeout: Optional[float] = None,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._tracker = tracker
        self._queue = queue
        self._registry = registry
        self._step_timeout = step_timeout

    def schedule(
        self,
        record_ids: Sequence[str],
        operations: Sequence[Operation],
        dry_run: bool,
    ) -> List[asyncio.Task]:
        """Create one chain task per record and return them."""
        total = len(record_ids)
        return [
            asyncio.create_task(
                self._run_chain(record_id, total - index, operations, dry_run),
                name=f"chain:{record_id}",
            )
            for index, record_id in enumerate(record_ids)
        ]

    async def _run_chain(
        self,
        record_id: str,
        priority: int,
        operations: Sequence[Operation],
        dry_run: bool,
    ) -> None:
        last = len(operations) - 1
        for position, operation in enumerate(operations):
            await self._queue.add(
                lambda operation=operation, position=position: self._run_step(
                    record_id, operation, dry_run, position == last
                ),
                priority=priority,
            )

    async def _run_step(
        self,
        record_id: str,
        operation: Operation,
        dry_run: bool,
        is_last: bool,
    ) -> None:
        try:
            await self._process(record_id, operation, dry_run)
        except Exception as e:
            logger.exception(f"Operation {operation.label} crashed for entry {record_id}")
            self._tracker.record_errored(record_id)
            self._tracker.add_log(
                record_id, f'Operation "{operation.label}" failed: {e}', "negative"
            )
        finally:
            if is_last:
                self._tracker.record_finished(record_id)

    async def _process(self, record_id: str, operation: Operation, dry_run: bool) -> None:
        tracker = self._tracker
        label = operation.label

        try:
            record = await self._with_timeout(self._store.get_record(record_id))
        except Exception as e:
            logger.warning(f"Could not fetch entry {record_id}: {e}")
            if tracker.has_failed(record_id):
                self._skip_after_failure(record_id, label)
                return
            tracker.record_errored(record_id)
            tracker.add_log(
                record_id, f'Operation "{label}" failed, could not fetch entry', "negative"
            )
            return

        if tracker.has_failed(record_id):
            self._skip_after_failure(record_id, label)
            return

        evaluation = evaluate_conditions(operation.conditions, record, self._registry)
        if not evaluation.passed:
            tracker.record_skipped()
            tracker.add_log(
                record_id,
                f'Skipping operation "{label}" for this entry, '
                f"conditions do not match ({evaluation.reason})",
                "neutral",
            )
            return

        try:
            result = await self._with_timeout(
                self._dispatcher.apply(operation, record, dry_run)
            )
        except asyncio.TimeoutError:
            logger.warning(f"Operation {label} timed out for entry {record_id}")
            tracker.record_errored(record_id)
            tracker.add_log(record_id, f'Operation "{label}" timed out', "negative")
            return

        if result.success:
            tracker.record_succeeded()
            tracker.add_log(record_id, f'Operation "{label}" succeeded', "positive")
        else:
            tracker.record_errored(record_id)
            message = f'Operation "{label}" failed'
            if result.message:
                message = f"{message}: {result.message}"
            tracker.add_log(record_id, message, "negative")
        logger.debug(f"Entry {record_id} operation {label}: success={result.success}")

    def _skip_after_failure(self, record_id: str, label: str) -> None:
        self._tracker.record_skipped()
        self._tracker.add_log(
            record_id,
            f'Skipping operation "{label}" for this entry, '
            "previous operation for this entry failed",
            "negative",
        )

    async def _with_timeout(self, awaitable):
        if self._step_timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, self._step_timeout)
