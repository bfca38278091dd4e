"""bulkedit: Rate-limited bulk operations on content entries."""

from .conditions import ConditionRegistry, evaluate_conditions, register_evaluator
from .contracts import (
    ConditionSet,
    EntryStatusCondition,
    FieldOperation,
    FieldValueCondition,
    Record,
    RecordOperation,
    RecordSys,
    RunRequest,
)
from .operations import OperationDispatcher
from .progress import ProgressTracker, RunState
from .runner import BulkEditRunner, run_bulk_edit
from .stores import InMemoryRecordStore, get_store

__version__ = "0.1.0"
__all__ = [
    "BulkEditRunner",
    "ConditionRegistry",
    "ConditionSet",
    "EntryStatusCondition",
    "FieldOperation",
    "FieldValueCondition",
    "InMemoryRecordStore",
    "OperationDispatcher",
    "ProgressTracker",
    "Record",
    "RecordOperation",
    "RecordSys",
    "RunRequest",
    "RunState",
    "evaluate_conditions",
    "get_store",
    "register_evaluator",
    "run_bulk_edit",
]
