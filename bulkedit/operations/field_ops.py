"""Mutations of a single localized field value."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..contracts import FieldOperation, FieldType, Record
from ..stores.base import BaseRecordStore

FieldHandler = Callable[
    [BaseRecordStore, Record, FieldOperation, str], Awaitable[Optional[str]]
]

LINK_TYPES: Dict[str, str] = {
    "LinkEntry": "Entry",
    "LinkAsset": "Asset",
    "ArrayEntry": "Entry",
    "ArrayAsset": "Asset",
}


def normalize_date(value: str) -> str:
    """Parse an ISO-8601 date or datetime and render it as a UTC instant.

    Naive values are taken to be UTC. The result has millisecond precision
    and a ``Z`` suffix, e.g. ``2024-01-31T00:00:00.000Z``.
    """
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    rendered = parsed.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return rendered.replace("+00:00", "Z")


def to_number(value: str) -> int | float:
    try:
        return int(value)
    except ValueError:
        return float(value)


def link(link_type: str, record_id: str) -> Dict[str, Any]:
    return {"sys": {"type": "Link", "linkType": link_type, "id": record_id}}


def split_ids(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def coerce_value(field_type: FieldType, raw: str) -> Any:
    """Build the stored value for ``field_type`` from its string form."""
    if field_type == "Boolean":
        return raw == "1"
    if field_type == "Date":
        return normalize_date(raw)
    if field_type in ("Integer", "Number"):
        return to_number(raw)
    if field_type in ("LinkEntry", "LinkAsset"):
        return link(LINK_TYPES[field_type], raw.strip())
    if field_type in ("ArrayEntry", "ArrayAsset"):
        return [link(LINK_TYPES[field_type], i) for i in split_ids(raw)]
    return raw


def as_text(field_type: FieldType, value: Any) -> str:
    """Textual form of a stored value used for find-and-replace."""
    if field_type in ("LinkEntry", "LinkAsset"):
        return value["sys"]["id"]
    if field_type in ("ArrayEntry", "ArrayAsset"):
        return ",".join(item["sys"]["id"] for item in value)
    return str(value)


def from_text(field_type: FieldType, text: str) -> Any:
    """Rebuild a stored value from its textual form."""
    if field_type in ("Symbol", "Text"):
        return text
    return coerce_value(field_type, text)


# Handlers --------------------------------------------------------------------


async def field_set(
    store: BaseRecordStore, record: Record, operation: FieldOperation, locale: str
) -> Optional[str]:
    updated = record.model_copy(deep=True)
    value = coerce_value(operation.field_type, operation.new_value)
    updated.fields.setdefault(operation.field, {})[locale] = value
    await store.update_record(updated)
    return None


async def field_clear(
    store: BaseRecordStore, record: Record, operation: FieldOperation, locale: str
) -> Optional[str]:
    updated = record.model_copy(deep=True)
    updated.fields.get(operation.field, {}).pop(locale, None)
    await store.update_record(updated)
    return None


async def field_replace(
    store: BaseRecordStore, record: Record, operation: FieldOperation, locale: str
) -> Optional[str]:
    current = record.fields.get(operation.field, {}).get(locale)
    if current is None:
        return "Field has no value for this locale"

    if operation.field_type == "Boolean":
        value = operation.new_value == "1"
    else:
        text = as_text(operation.field_type, current)
        value = from_text(
            operation.field_type,
            text.replace(operation.replaced_value, operation.new_value),
        )

    updated = record.model_copy(deep=True)
    updated.fields[operation.field][locale] = value
    if updated.model_dump() == record.model_dump():
        return "Value unchanged"

    await store.update_record(updated)
    return None


FIELD_HANDLERS: Dict[str, FieldHandler] = {
    "set": field_set,
    "clear": field_clear,
    "replace": field_replace,
}
