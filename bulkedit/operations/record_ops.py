"""Lifecycle transitions applied to whole entries.

Each handler inspects the status of the freshly fetched ``record`` and only
issues the store calls needed to reach the target status. Handlers return an
optional note for the audit log and raise on store faults.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Dict, Optional

from ..contracts import Record
from ..stores.base import BaseRecordStore

RecordHandler = Callable[[BaseRecordStore, Record], Awaitable[Optional[str]]]


async def publish_entry(store: BaseRecordStore, record: Record) -> Optional[str]:
    if record.status == "published":
        return "Entry already published"
    if record.status == "archived":
        record = await store.unarchive(record)
    await store.publish(record)
    return None


async def unpublish_entry(store: BaseRecordStore, record: Record) -> Optional[str]:
    if record.status == "archived":
        # Archived entries are never published, unarchiving leaves a draft.
        await store.unarchive(record)
        return None
    if record.status == "draft":
        return "Entry already unpublished"
    await store.unpublish(record)
    return None


async def archive_entry(store: BaseRecordStore, record: Record) -> Optional[str]:
    if record.status == "archived":
        return "Entry already archived"
    if record.status != "draft":
        record = await store.unpublish(record)
    await store.archive(record)
    return None


async def delete_entry(store: BaseRecordStore, record: Record) -> Optional[str]:
    if record.status not in ("archived", "draft"):
        record = await store.unpublish(record)
    await store.delete(record)
    return None


RECORD_HANDLERS: Dict[str, RecordHandler] = {
    "publish": publish_entry,
    "unpublish": unpublish_entry,
    "archive": archive_entry,
    "delete": delete_entry,
}
