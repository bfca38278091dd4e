"""Core data contracts for bulkedit runs."""

from __future__ import annotations

import uuid
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

EntryStatus = Literal["draft", "published", "archived"]

FieldType = Literal[
    "Symbol",
    "Text",
    "Integer",
    "Number",
    "Boolean",
    "Date",
    "LinkEntry",
    "LinkAsset",
    "ArrayEntry",
    "ArrayAsset",
]


def _new_id() -> str:
    return str(uuid.uuid4())


# Records ---------------------------------------------------------------------


class RecordSys(BaseModel):
    """Store-managed metadata of a record."""

    id: str
    version: int = 1
    published_version: Optional[int] = None
    archived_version: Optional[int] = None
    content_type: Optional[str] = None


class Record(BaseModel):
    """A content entry owned by the record store.

    ``fields`` maps field name to a ``{locale: value}`` mapping, exactly as
    the store returns it.
    """

    sys: RecordSys
    fields: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.sys.id

    @property
    def status(self) -> EntryStatus:
        """Lifecycle status derived from the store timestamps."""
        if self.sys.archived_version is not None:
            return "archived"
        if self.sys.published_version is not None:
            return "published"
        return "draft"


class RecordRef(BaseModel):
    """Identifier-only projection of a record."""

    id: str


class RecordPage(BaseModel):
    """One page of a record listing."""

    total: int
    skip: int = 0
    limit: int = 0
    items: List[RecordRef] = Field(default_factory=list)


# Conditions ------------------------------------------------------------------


class EntryStatusCondition(BaseModel):
    """Passes when the record is in the target lifecycle status."""

    id: str = Field(default_factory=_new_id)
    entity: Literal["entry"] = "entry"
    type: Literal[
        "status.published", "status.draft", "status.unpublished", "status.archived"
    ]

    @property
    def target_status(self) -> EntryStatus:
        status = self.type.replace("status.", "", 1)
        return "draft" if status == "unpublished" else status


class FieldValueCondition(BaseModel):
    """Compares a field value. No evaluator ships for this condition."""

    id: str = Field(default_factory=_new_id)
    entity: Literal["field"] = "field"
    type: Literal["value.is"] = "value.is"
    field: str
    value: str


Condition = Annotated[
    Union[EntryStatusCondition, FieldValueCondition], Field(discriminator="entity")
]


class ConditionSet(BaseModel):
    operator: Literal["and", "or"] = "and"
    conditions: List[Condition] = Field(default_factory=list)


class ConditionResult(BaseModel):
    passed: bool
    reason: str


class ConditionSetResult(BaseModel):
    passed: bool
    reason: str
    conditions: List[ConditionResult] = Field(default_factory=list)


# Operations ------------------------------------------------------------------


class RecordOperation(BaseModel):
    """Lifecycle transition applied to a whole record."""

    id: str = Field(default_factory=_new_id)
    type: Literal["entry"] = "entry"
    operation: Literal["publish", "unpublish", "archive", "delete"]
    conditions: Optional[ConditionSet] = None

    @property
    def label(self) -> str:
        return self.operation


class FieldOperation(BaseModel):
    """Mutation of a single localized field value."""

    id: str = Field(default_factory=_new_id)
    type: Literal["field"] = "field"
    operation: Literal["set", "clear", "replace"]
    content_type: Optional[str] = None
    field: str
    field_type: FieldType = "Symbol"
    locale: Optional[str] = None
    new_value: Optional[str] = None
    replaced_value: Optional[str] = None
    conditions: Optional[ConditionSet] = None

    @field_validator("operation", mode="before")
    @classmethod
    def _strip_field_prefix(cls, value: Any) -> Any:
        if isinstance(value, str) and value.startswith("field_"):
            return value[len("field_") :]
        return value

    @field_validator("new_value", "replaced_value", mode="before")
    @classmethod
    def _scalar_to_str(cls, value: Any) -> Any:
        # YAML turns 1, true and 2024-01-01 into non-string scalars.
        if isinstance(value, bool):
            return "1" if value else "0"
        if value is not None and not isinstance(value, str):
            return str(value)
        return value

    @property
    def label(self) -> str:
        return f"field_{self.operation}"


Operation = Annotated[
    Union[RecordOperation, FieldOperation], Field(discriminator="type")
]


class OperationResult(BaseModel):
    success: bool
    message: Optional[str] = None


# Run request -----------------------------------------------------------------


class RunRequest(BaseModel):
    """Immutable description of one bulk edit."""

    model_config = ConfigDict(frozen=True)

    filter: Dict[str, Any] = Field(default_factory=dict)
    operations: Tuple[Operation, ...] = ()
    dry_run: bool = False

    @property
    def steps_per_record(self) -> int:
        return len(self.operations)
