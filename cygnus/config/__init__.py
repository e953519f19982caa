"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    CacheConfig,
    CollectorConfig,
    GlobalConfig,
    OutputFormat,
    ReportOptions,
    UpstreamConfig,
    default_cache_path,
)

__all__ = [
    "CacheConfig",
    "CollectorConfig",
    "ConfigLocator",
    "ConfigRepository",
    "GlobalConfig",
    "OutputFormat",
    "ReportOptions",
    "UpstreamConfig",
    "default_cache_path",
]
