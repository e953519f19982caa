"""Engine components orchestrating fetch → correlate → render → cache."""

from .cache import TaskCache
from .correlator import correlate, find_request
from .fetcher import IncompleteTaskError, TaskFetchError, TaskFetcher, call_with_retries, latest_update
from .models import (
    DeployRecord,
    RequestContext,
    ResolvedTask,
    TaskIdentifier,
    TaskRecord,
    env_values,
    resolve_environment,
    resolve_image,
)
from .sink import ReportSink, is_printable
from .thread_pool import ThreadPoolManager

__all__ = [
    "DeployRecord",
    "IncompleteTaskError",
    "ReportSink",
    "RequestContext",
    "ResolvedTask",
    "TaskCache",
    "TaskFetchError",
    "TaskFetcher",
    "TaskIdentifier",
    "TaskRecord",
    "ThreadPoolManager",
    "call_with_retries",
    "correlate",
    "env_values",
    "find_request",
    "is_printable",
    "latest_update",
    "resolve_environment",
    "resolve_image",
]
