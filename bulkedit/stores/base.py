"""Base record store interface for bulkedit."""

from __future__ import annotations

import abc
from typing import Any, Dict, Optional

from ..contracts import Record, RecordPage


class BaseRecordStore(metaclass=abc.ABCMeta):
    """Abstract client for the remote store that owns the records.

    Every method talks to the store directly; implementations must not cache
    records, since each operation relies on seeing the latest version.
    """

    async def connect(self) -> None:
        """Open connection to the store (no-op by default)."""
        pass

    async def disconnect(self) -> None:
        """Close connection to the store (no-op by default)."""
        pass

    @abc.abstractmethod
    async def list_records(
        self,
        filter: Dict[str, Any],
        limit: int,
        skip: int,
        select: Optional[str] = None,
    ) -> RecordPage:
        """Return one page of records matching ``filter``."""
        raise NotImplementedError

    @abc.abstractmethod
    async def get_record(self, record_id: str) -> Record:
        """Fetch the current version of a record."""
        raise NotImplementedError

    @abc.abstractmethod
    async def update_record(self, record: Record) -> Record:
        """Persist ``record.fields`` and return the new version."""
        raise NotImplementedError

    @abc.abstractmethod
    async def publish(self, record: Record) -> Record:
        raise NotImplementedError

    @abc.abstractmethod
    async def unpublish(self, record: Record) -> Record:
        raise NotImplementedError

    @abc.abstractmethod
    async def archive(self, record: Record) -> Record:
        raise NotImplementedError

    @abc.abstractmethod
    async def unarchive(self, record: Record) -> Record:
        raise NotImplementedError

    @abc.abstractmethod
    async def delete(self, record: Record) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def get_default_locale(self) -> str:
        """Return the locale used when an operation does not name one."""
        raise NotImplementedError
