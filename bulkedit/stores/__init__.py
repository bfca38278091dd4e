"""Record store factory and initialization."""

from __future__ import annotations

import os
from typing import Optional

from ..config import BulkEditConfig, load_config
from .base import BaseRecordStore
from .inmemory import InMemoryRecordStore


def get_store(
    backend: Optional[str] = None, config: Optional[BulkEditConfig] = None
) -> BaseRecordStore:
    """Factory function to get the configured record store."""

    config = config or load_config()
    backend = (
        backend
        or os.getenv("BULKEDIT_STORE")
        or config.store.backend
    ).lower()

    if backend == "inmemory":
        return InMemoryRecordStore()
    elif backend == "contentful":
        from .contentful import ContentfulRecordStore

        contentful_conf = config.store.contentful
        return ContentfulRecordStore(
            space_id=contentful_conf.space_id,
            access_token=contentful_conf.access_token,
            environment=contentful_conf.environment,
            base_url=contentful_conf.base_url,
            timeout=contentful_conf.timeout,
        )
    else:
        raise ValueError(f"Unsupported store backend: {backend}")


__all__ = ["BaseRecordStore", "InMemoryRecordStore", "get_store"]
