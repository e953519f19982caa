"""Pydantic models used across cygnus configuration flow."""

from __future__ import annotations

import tempfile
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from ..infra.storage import CachePolicy

CACHE_FILENAME = "cygnus.db"


def default_cache_path() -> Path:
    return Path(tempfile.gettempdir()) / CACHE_FILENAME


class OutputFormat(str, Enum):
    """Report renderings offered by the CLI."""

    TSV = "tsv"
    TABLE = "table"


class ReportOptions(BaseModel):
    """Switches that decide which rows and columns the report carries."""

    print_headers: bool = True
    print_active: bool = True
    print_pending: bool = False
    include_inactive: bool = False
    include_status: bool = False
    include_docker_image: bool = False
    env: list[str] = Field(default_factory=list)
    output_format: OutputFormat = OutputFormat.TSV

    @field_validator("env", mode="before")
    @classmethod
    def _coerce_env(cls, value: Any) -> list[str]:
        if value in (None, ""):
            return []
        if isinstance(value, str):
            value = value.split(",")
        return [str(name).strip() for name in value if str(name).strip()]


class CollectorConfig(BaseModel):
    """Concurrency and retry knobs for a collection run."""

    max_workers: int = 16
    retry_attempts: int = 3
    inactive_page_size: int = 10
    queue_capacity: int = 16

    @model_validator(mode="after")
    def _validate_bounds(self) -> "CollectorConfig":
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        if self.retry_attempts < 1:
            raise ValueError("retry_attempts must be >= 1")
        if self.inactive_page_size < 1:
            raise ValueError("inactive_page_size must be >= 1")
        if self.queue_capacity < 1:
            raise ValueError("queue_capacity must be >= 1")
        return self


class CacheConfig(BaseModel):
    """Where and how collected records are cached."""

    enabled: bool = True
    path: Path = Field(default_factory=default_cache_path)
    policy: CachePolicy = CachePolicy.MIGRATE
    freshness_seconds: float = 1.0

    @field_validator("path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        if value in (None, ""):
            return default_cache_path()
        return Path(value).expanduser()

    @field_validator("freshness_seconds")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("freshness_seconds must be >= 0")
        return value

    @property
    def freshness(self) -> timedelta:
        return timedelta(seconds=self.freshness_seconds)


class UpstreamConfig(BaseModel):
    """HTTP settings for the scheduler client."""

    timeout: float = 15.0
    headers: dict[str, str] = Field(default_factory=dict)


class GlobalConfig(BaseModel):
    """Settings shared by every command."""

    collector: CollectorConfig = Field(default_factory=CollectorConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    # Environment defaults are sets of useful variables collected over time by users.
    env_presets: dict[int, list[str]] = Field(
        default_factory=lambda: {1: ["TASK_HOST", "PORT0"]}
    )
    log_file: Path | None = None

    @field_validator("log_file", mode="before")
    @classmethod
    def _coerce_log_file(cls, value: Any) -> Path | None:
        if value in (None, ""):
            return None
        return Path(value).expanduser()

    def preset(self, number: int) -> list[str]:
        if number not in self.env_presets:
            known = ", ".join(str(key) for key in sorted(self.env_presets)) or "none"
            raise ValueError(f"Unknown environment preset {number} (known: {known})")
        return list(self.env_presets[number])


__all__ = [
    "CACHE_FILENAME",
    "CacheConfig",
    "CollectorConfig",
    "GlobalConfig",
    "OutputFormat",
    "ReportOptions",
    "UpstreamConfig",
    "default_cache_path",
]
