"""Run progress counters and per-record audit log."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Literal

from pydantic import BaseModel, Field

from .errors import PhaseTransitionError

logger = logging.getLogger(__name__)

RunPhase = Literal["enumerating", "processing", "done"]
LogTone = Literal["positive", "negative", "neutral"]

_PHASE_ORDER: Dict[str, int] = {"enumerating": 0, "processing": 1, "done": 2}


class RunState(BaseModel):
    """Live counters for one run. Counters only ever grow."""

    phase: RunPhase = "enumerating"
    records_total: int = 0
    records_processed: int = 0
    steps_total: int = 0
    steps_processed: int = 0
    steps_succeeded: int = 0
    steps_skipped: int = 0
    steps_errored: int = 0


class LogLine(BaseModel):
    message: str
    tone: LogTone = "neutral"


class ProgressTracker:
    """Process-wide view of a run, shared by every in-flight step.

    All mutators are synchronous and only called from the event loop, so a
    read-modify-write of a counter or of the failure markers can never be
    interleaved with another step.
    """

    def __init__(self) -> None:
        self.state = RunState()
        self.logs: Dict[str, List[LogLine]] = defaultdict(list)
        self._failed: set[str] = set()

    # ------------------------------------------------------------------
    def set_phase(self, phase: RunPhase) -> None:
        current = _PHASE_ORDER[self.state.phase]
        target = _PHASE_ORDER[phase]
        if target < current:
            raise PhaseTransitionError(
                f"Cannot move run from {self.state.phase} back to {phase}"
            )
        if target != current:
            logger.info(f"Run phase {self.state.phase} -> {phase}")
        self.state.phase = phase

    def set_totals(self, records: int, operations: int) -> None:
        self.state.records_total = records
        self.state.steps_total = records * operations

    # ------------------------------------------------------------------
    def record_succeeded(self) -> None:
        self.state.steps_succeeded += 1
        self.state.steps_processed += 1

    def record_skipped(self) -> None:
        self.state.steps_skipped += 1
        self.state.steps_processed += 1

    def record_errored(self, record_id: str) -> None:
        self._failed.add(record_id)
        self.state.steps_errored += 1
        self.state.steps_processed += 1

    def record_finished(self, record_id: str) -> None:
        self.state.records_processed += 1
        self.add_log(record_id, "Entry processed", "neutral")

    def has_failed(self, record_id: str) -> bool:
        return record_id in self._failed

    @property
    def failed_records(self) -> frozenset[str]:
        return frozenset(self._failed)

    # ------------------------------------------------------------------
    def add_log(self, record_id: str, message: str, tone: LogTone = "neutral") -> None:
        self.logs[record_id].append(LogLine(message=message, tone=tone))

    def snapshot(self) -> RunState:
        """Return a detached copy of the current counters."""
        return self.state.model_copy()

    def logs_for(self, record_id: str) -> List[LogLine]:
        return list(self.logs.get(record_id, []))
