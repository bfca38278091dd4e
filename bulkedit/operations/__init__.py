"""Operation dispatch: turn an operation descriptor into store calls."""

from __future__ import annotations

import logging
from typing import Optional

from ..contracts import FieldOperation, Operation, OperationResult, Record, RecordOperation
from ..stores.base import BaseRecordStore
from .field_ops import FIELD_HANDLERS, normalize_date, to_number
from .record_ops import RECORD_HANDLERS

logger = logging.getLogger(__name__)


def validate_operation(operation: Operation) -> Optional[str]:
    """Return a description of what is wrong with ``operation``, if anything.

    These checks also run on dry runs so that a misconfigured operation
    fails before anything is written.
    """
    if isinstance(operation, RecordOperation):
        return None

    if operation.operation in ("set", "replace") and operation.new_value is None:
        return f"Operation {operation.label} requires a new value"
    if operation.operation == "replace" and not operation.replaced_value:
        return f"Operation {operation.label} requires a value to replace"

    if operation.operation == "set":
        try:
            if operation.field_type == "Date":
                normalize_date(operation.new_value)
            elif operation.field_type in ("Integer", "Number"):
                to_number(operation.new_value)
        except ValueError:
            return f"{operation.new_value!r} is not a valid {operation.field_type} value"
    return None


class OperationDispatcher:
    """Applies operations to records through a record store.

    :meth:`apply` never raises: any fault is reported as an unsuccessful
    :class:`OperationResult`.
    """

    def __init__(
        self, store: BaseRecordStore, default_locale: Optional[str] = None
    ) -> None:
        self._store = store
        self._default_locale = default_locale

    async def default_locale(self) -> str:
        """Locale used by field operations that do not name one."""
        if self._default_locale is None:
            self._default_locale = await self._store.get_default_locale()
        return self._default_locale

    async def apply(
        self, operation: Operation, record: Record, dry_run: bool
    ) -> OperationResult:
        problem = validate_operation(operation)
        if problem is not None:
            logger.warning(f"Invalid operation {operation.id} on entry {record.id}: {problem}")
            return OperationResult(success=False, message=problem)

        if dry_run:
            return OperationResult(success=True, message="Dry run, nothing persisted")

        try:
            if isinstance(operation, FieldOperation):
                locale = operation.locale or await self.default_locale()
                note = await FIELD_HANDLERS[operation.operation](
                    self._store, record, operation, locale
                )
            else:
                note = await RECORD_HANDLERS[operation.operation](self._store, record)
        except Exception as e:
            logger.warning(
                f"Operation {operation.label} failed for entry {record.id}: {e}"
            )
            return OperationResult(success=False, message=str(e))

        return OperationResult(success=True, message=note)


__all__ = ["OperationDispatcher", "validate_operation"]
