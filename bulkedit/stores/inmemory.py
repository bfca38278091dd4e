"""In-memory record store for testing and local dry runs."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..constants import DEFAULT_LOCALE
from ..contracts import Record, RecordPage, RecordRef
from ..errors import StoreError
from .base import BaseRecordStore

MUTATING_METHODS = frozenset(
    {"update_record", "publish", "unpublish", "archive", "unarchive", "delete"}
)


class InMemoryRecordStore(BaseRecordStore):
    """Keep records in a dict and mimic the store's versioning rules.

    Every call is appended to ``calls`` as ``(method, record_id)`` so tests
    can assert exactly which store traffic an operation produced. Failures
    can be injected per method and record with :meth:`fail_on`.
    """

    def __init__(
        self,
        records: Iterable[Record] = (),
        default_locale: str = DEFAULT_LOCALE,
    ) -> None:
        self._records: Dict[str, Record] = {
            record.id: record.model_copy(deep=True) for record in records
        }
        self.default_locale = default_locale
        self.calls: List[Tuple[str, Optional[str]]] = []
        self._failures: Dict[Tuple[str, Optional[str]], Exception] = {}

    # ------------------------------------------------------------------
    def add(self, record: Record) -> None:
        self._records[record.id] = record.model_copy(deep=True)

    def peek(self, record_id: str) -> Optional[Record]:
        """Return the stored record without recording a call."""
        record = self._records.get(record_id)
        return record.model_copy(deep=True) if record else None

    def fail_on(
        self,
        method: str,
        record_id: Optional[str] = None,
        error: Optional[Exception] = None,
    ) -> None:
        """Make ``method`` raise for ``record_id`` (or for every record)."""
        self._failures[(method, record_id)] = error or StoreError(
            f"Injected failure for {method}", status_code=500
        )

    def calls_to(self, method: str) -> List[Optional[str]]:
        return [record_id for name, record_id in self.calls if name == method]

    @property
    def mutating_calls(self) -> List[Tuple[str, Optional[str]]]:
        return [call for call in self.calls if call[0] in MUTATING_METHODS]

    # ------------------------------------------------------------------
    def _call(self, method: str, record_id: Optional[str] = None) -> None:
        self.calls.append((method, record_id))
        error = self._failures.get((method, record_id)) or self._failures.get(
            (method, None)
        )
        if error is not None:
            raise error

    def _current(self, record: Record) -> Record:
        stored = self._records.get(record.id)
        if stored is None:
            raise StoreError(f"Entry {record.id} not found", status_code=404)
        if stored.sys.version != record.sys.version:
            raise StoreError(
                f"Version mismatch for entry {record.id}: "
                f"{record.sys.version} != {stored.sys.version}",
                status_code=409,
            )
        return stored

    def _matches(self, record: Record, filter: Dict[str, Any]) -> bool:
        for key, expected in filter.items():
            if key in ("content_type", "sys.contentType.sys.id"):
                if record.sys.content_type != expected:
                    return False
            elif key == "sys.id":
                if record.id != expected:
                    return False
            elif key == "sys.id[in]":
                ids = expected if isinstance(expected, list) else str(expected).split(",")
                if record.id not in [i.strip() for i in ids]:
                    return False
            elif key.startswith("fields."):
                value = record.fields.get(key[len("fields.") :], {}).get(
                    self.default_locale
                )
                if value is None or str(value) != str(expected):
                    return False
            else:
                raise StoreError(f"Unsupported filter: {key}", status_code=400)
        return True

    # ------------------------------------------------------------------
    async def list_records(
        self,
        filter: Dict[str, Any],
        limit: int,
        skip: int,
        select: Optional[str] = None,
    ) -> RecordPage:
        self._call("list_records")
        matches = [r for r in self._records.values() if self._matches(r, filter)]
        return RecordPage(
            total=len(matches),
            skip=skip,
            limit=limit,
            items=[RecordRef(id=r.id) for r in matches[skip : skip + limit]],
        )

    async def get_record(self, record_id: str) -> Record:
        self._call("get_record", record_id)
        record = self._records.get(record_id)
        if record is None:
            raise StoreError(f"Entry {record_id} not found", status_code=404)
        return record.model_copy(deep=True)

    async def update_record(self, record: Record) -> Record:
        self._call("update_record", record.id)
        stored = self._current(record)
        stored.fields = record.model_copy(deep=True).fields
        stored.sys.version += 1
        return stored.model_copy(deep=True)

    async def publish(self, record: Record) -> Record:
        self._call("publish", record.id)
        stored = self._current(record)
        if stored.status == "archived":
            raise StoreError(f"Cannot publish archived entry {record.id}", 422)
        stored.sys.published_version = stored.sys.version
        stored.sys.version += 1
        return stored.model_copy(deep=True)

    async def unpublish(self, record: Record) -> Record:
        self._call("unpublish", record.id)
        stored = self._current(record)
        if stored.status != "published":
            raise StoreError(f"Entry {record.id} is not published", 400)
        stored.sys.published_version = None
        stored.sys.version += 1
        return stored.model_copy(deep=True)

    async def archive(self, record: Record) -> Record:
        self._call("archive", record.id)
        stored = self._current(record)
        if stored.status == "published":
            raise StoreError(f"Cannot archive published entry {record.id}", 400)
        stored.sys.archived_version = stored.sys.version
        stored.sys.version += 1
        return stored.model_copy(deep=True)

    async def unarchive(self, record: Record) -> Record:
        self._call("unarchive", record.id)
        stored = self._current(record)
        if stored.status != "archived":
            raise StoreError(f"Entry {record.id} is not archived", 400)
        stored.sys.archived_version = None
        stored.sys.version += 1
        return stored.model_copy(deep=True)

    async def delete(self, record: Record) -> None:
        self._call("delete", record.id)
        stored = self._current(record)
        if stored.status == "published":
            raise StoreError(f"Cannot delete published entry {record.id}", 400)
        del self._records[record.id]

    async def get_default_locale(self) -> str:
        return self.default_locale
