"""Condition on the lifecycle status of an entry."""

from __future__ import annotations

from ..contracts import Condition, ConditionResult, EntryStatusCondition, Record


class EntryStatusEvaluator:
    """Matches ``entity: entry`` conditions with a ``status.*`` type."""

    def can_evaluate(self, condition: Condition) -> bool:
        return condition.entity == "entry" and condition.type.startswith("status.")

    def evaluate(self, condition: EntryStatusCondition, record: Record) -> ConditionResult:
        target = condition.target_status
        passed = record.status == target
        return ConditionResult(
            passed=passed,
            reason=f'Entry status {"is" if passed else "is not"} "{target}"',
        )
