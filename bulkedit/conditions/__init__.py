"""Condition evaluation for gated operations."""

from __future__ import annotations

import logging
from typing import List, Optional

from ..contracts import (
    Condition,
    ConditionResult,
    ConditionSet,
    ConditionSetResult,
    Record,
)
from .base import ConditionEvaluator
from .entry_status import EntryStatusEvaluator

logger = logging.getLogger(__name__)

UNEVALUATED_REASON = "Condition could not be evaluated"


class ConditionRegistry:
    """Ordered collection of evaluators; the first one that claims a condition wins."""

    def __init__(self, evaluators: Optional[List[ConditionEvaluator]] = None) -> None:
        self._evaluators: List[ConditionEvaluator] = list(evaluators or [])

    def register(self, evaluator: ConditionEvaluator) -> None:
        self._evaluators.append(evaluator)

    def find(self, condition: Condition) -> Optional[ConditionEvaluator]:
        return next(
            (e for e in self._evaluators if e.can_evaluate(condition)), None
        )

    def evaluate(self, condition: Condition, record: Record) -> ConditionResult:
        """Evaluate one condition, failing closed when nothing can decide it."""
        evaluator = None
        try:
            evaluator = self.find(condition)
            if evaluator is None:
                return ConditionResult(passed=False, reason=UNEVALUATED_REASON)
            return evaluator.evaluate(condition, record)
        except Exception as e:
            source = type(evaluator).__name__ if evaluator is not None else "registry"
            logger.warning(
                f"Condition {condition.id} for entry {record.id} "
                f"could not be evaluated ({source}): {e}"
            )
            return ConditionResult(passed=False, reason=UNEVALUATED_REASON)


# Registry used when callers do not bring their own.
DEFAULT_REGISTRY = ConditionRegistry([EntryStatusEvaluator()])


def register_evaluator(evaluator: ConditionEvaluator) -> None:
    """Add ``evaluator`` to ``DEFAULT_REGISTRY``."""
    DEFAULT_REGISTRY.register(evaluator)


def evaluate_conditions(
    condition_set: Optional[ConditionSet],
    record: Record,
    registry: Optional[ConditionRegistry] = None,
) -> ConditionSetResult:
    """Evaluate every condition of ``condition_set`` against ``record``.

    ``and`` requires every condition to pass, ``or`` requires at least one.
    A missing or empty set always passes.
    """
    if condition_set is None or not condition_set.conditions:
        return ConditionSetResult(passed=True, reason="No conditions defined")

    registry = registry or DEFAULT_REGISTRY
    results = [registry.evaluate(c, record) for c in condition_set.conditions]

    if condition_set.operator == "and":
        passed = all(r.passed for r in results)
        reason = "All conditions passed" if passed else "Not all conditions passed"
    else:
        passed = any(r.passed for r in results)
        reason = (
            "At least one condition passed"
            if passed
            else "None of the conditions passed"
        )

    return ConditionSetResult(passed=passed, reason=reason, conditions=results)


__all__ = [
    "ConditionEvaluator",
    "ConditionRegistry",
    "DEFAULT_REGISTRY",
    "EntryStatusEvaluator",
    "UNEVALUATED_REASON",
    "evaluate_conditions",
    "register_evaluator",
]
