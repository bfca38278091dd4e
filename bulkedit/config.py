from __future__ import annotations

import os
from typing import Optional, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from .contracts import RunRequest
from .constants import DEFAULT_INTERVAL, DEFAULT_INTERVAL_CAP, DEFAULT_PAGE_SIZE
from .errors import ConfigurationError


class RateLimitConfig(BaseModel):
    """Admission rate for one queue: ``interval_cap`` jobs per ``interval`` seconds."""

    interval_cap: int = DEFAULT_INTERVAL_CAP
    interval: float = DEFAULT_INTERVAL
    burst: Optional[int] = None

    @property
    def effective_burst(self) -> int:
        return self.burst if self.burst is not None else self.interval_cap * 2


class ContentfulConfig(BaseModel):
    """Connection settings for the Contentful management API."""

    space_id: Optional[str] = None
    environment: str = "master"
    access_token: Optional[str] = None
    base_url: str = "https://api.contentful.com"
    timeout: float = 30.0


class StoreConfig(BaseModel):
    """Record store selection."""

    backend: Literal["inmemory", "contentful"] = "inmemory"
    contentful: ContentfulConfig = Field(default_factory=ContentfulConfig)


class ExecutionConfig(BaseModel):
    """Paging, throttling and timeout settings for a run."""

    page_size: int = DEFAULT_PAGE_SIZE
    step_timeout: Optional[float] = None
    enumeration: RateLimitConfig = Field(default_factory=RateLimitConfig)
    processing: RateLimitConfig = Field(default_factory=RateLimitConfig)


class BulkEditConfig(BaseModel):
    """Top-level configuration model."""

    store: StoreConfig = Field(default_factory=StoreConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)


def load_config(path: Optional[str] = None) -> BulkEditConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to BULKEDIT_CONFIG env
            variable or 'bulkedit.yaml' in the current directory.
    """

    config_path = path or os.getenv("BULKEDIT_CONFIG", "bulkedit.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            try:
                data = yaml.safe_load(f) or {}
                config = BulkEditConfig(**data)
            except (yaml.YAMLError, ValidationError, TypeError) as e:
                raise ConfigurationError(
                    f"Invalid configuration in {config_path}: {e}"
                ) from e
    else:
        config = BulkEditConfig()

    env_backend = os.getenv("BULKEDIT_STORE")
    if env_backend:
        config.store.backend = env_backend
    env_token = os.getenv("CONTENTFUL_MANAGEMENT_TOKEN")
    if env_token:
        config.store.contentful.access_token = env_token
    env_space = os.getenv("CONTENTFUL_SPACE_ID")
    if env_space:
        config.store.contentful.space_id = env_space
    return config


def load_run_request(path: str) -> RunRequest:
    """Load a bulk edit request (filter, operations, dry run flag) from YAML."""

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return RunRequest(**data)
    except OSError as e:
        raise ConfigurationError(f"Cannot read run request {path}: {e}") from e
    except (yaml.YAMLError, ValidationError, TypeError) as e:
        raise ConfigurationError(f"Invalid run request in {path}: {e}") from e
