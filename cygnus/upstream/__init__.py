"""Scheduler capability, payload models and the HTTP client."""

from .base import SchedulerClient, UpstreamError
from .client import SingularityClient
from .models import (
    RequestParent,
    Task,
    TaskHistory,
    TaskHistoryUpdate,
    TaskId,
    TaskIdHistory,
    TaskState,
)

__all__ = [
    "RequestParent",
    "SchedulerClient",
    "SingularityClient",
    "Task",
    "TaskHistory",
    "TaskHistoryUpdate",
    "TaskId",
    "TaskIdHistory",
    "TaskState",
    "UpstreamError",
]
