"""Shared fixtures for bulkedit tests."""

from __future__ import annotations

from typing import Any, Dict, Optional

import pytest

from bulkedit.config import BulkEditConfig, ExecutionConfig, RateLimitConfig
from bulkedit.contracts import Record, RecordSys


def make_record(
    record_id: str,
    status: str = "draft",
    fields: Optional[Dict[str, Dict[str, Any]]] = None,
    content_type: str = "article",
    version: int = 3,
) -> Record:
    """Build a record whose sys versions produce ``status``."""
    sys = RecordSys(id=record_id, version=version, content_type=content_type)
    if status == "published":
        sys.published_version = version - 1
    elif status == "archived":
        sys.archived_version = version - 1
    return Record(sys=sys, fields=fields or {})


def fast_config(page_size: int = 1000, step_timeout: Optional[float] = None) -> BulkEditConfig:
    """Configuration with throttling loose enough for unit tests."""
    return BulkEditConfig(
        execution=ExecutionConfig(
            page_size=page_size,
            step_timeout=step_timeout,
            enumeration=RateLimitConfig(interval_cap=1000, interval=0.01),
            processing=RateLimitConfig(interval_cap=1000, interval=0.01),
        )
    )


@pytest.fixture
def config() -> BulkEditConfig:
    return fast_config()


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def config_factory():
    return fast_config
