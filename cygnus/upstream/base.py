"""Capability contract for talking to a cluster scheduler."""

from __future__ import annotations

from typing import Protocol

from .models import RequestParent, TaskHistory, TaskIdHistory


class UpstreamError(RuntimeError):
    """Raised when the scheduler cannot be reached or answers unusably."""


class SchedulerClient(Protocol):
    """Operations the collector needs from a scheduler."""

    base_url: str

    def list_requests(self) -> list[RequestParent]:
        """Return every request known to the scheduler."""

    def get_request(self, request_id: str) -> RequestParent:
        """Return one request including its active/pending deploys."""

    def list_active_task_history(self, request_id: str) -> list[TaskIdHistory]:
        """Return the currently active tasks of a request."""

    def list_recent_task_history(self, request_id: str, count: int, page: int) -> list[TaskIdHistory]:
        """Return one page of the request's historical (inactive) tasks."""

    def get_task_history(self, task_id: str) -> TaskHistory:
        """Return a task with its ordered list of status updates."""


__all__ = ["SchedulerClient", "UpstreamError"]
