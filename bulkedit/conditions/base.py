"""Evaluator protocol for operation conditions."""

from __future__ import annotations

from typing import Protocol

from ..contracts import Condition, ConditionResult, Record


class ConditionEvaluator(Protocol):
    """Decides a single condition against a record."""

    def can_evaluate(self, condition: Condition) -> bool:
        """Return ``True`` when this evaluator understands ``condition``."""

    def evaluate(self, condition: Condition, record: Record) -> ConditionResult:
        """Return whether ``record`` satisfies ``condition`` and why."""
