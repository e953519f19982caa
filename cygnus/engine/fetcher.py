"""Bounded-retry task fetching with latest-update selection."""

from __future__ import annotations

from typing import Any, Callable, Iterable, TypeVar

import structlog

from ..upstream import SchedulerClient, TaskHistoryUpdate
from .models import ResolvedTask, TaskIdentifier

T = TypeVar("T")

DEFAULT_ATTEMPTS = 3


class TaskFetchError(RuntimeError):
    """A task could not be resolved; the task is dropped from the run."""


class IncompleteTaskError(TaskFetchError):
    """The scheduler returned a task without usable execution metadata."""


def call_with_retries(
    call: Callable[[], T],
    attempts: int,
    logger: structlog.BoundLogger,
    event: str,
    **context: Any,
) -> T:
    """Run ``call`` up to ``attempts`` times, stopping at the first success.

    Attempts are strictly sequential with no delay between them. Every failed
    attempt is logged; the last error is re-raised once attempts run out.
    """

    last_error: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            return call()
        except Exception as exc:  # noqa: BLE001
            logger.warning(event, attempt=attempt, max_attempts=attempts, error=str(exc), **context)
            last_error = exc
    if last_error is None:
        raise ValueError("attempts must be >= 1")
    raise last_error


def latest_update(updates: Iterable[TaskHistoryUpdate]) -> TaskHistoryUpdate | None:
    """Return the update with the highest timestamp; ties keep the earliest seen."""

    latest: TaskHistoryUpdate | None = None
    for update in updates:
        if latest is None or update.timestamp > latest.timestamp:
            latest = update
    return latest


class TaskFetcher:
    """Resolve a task identifier into a task with its newest status."""

    def __init__(
        self,
        client: SchedulerClient,
        attempts: int = DEFAULT_ATTEMPTS,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.client = client
        self.attempts = attempts
        self.logger = logger or structlog.get_logger("cygnus.fetcher")

    def fetch(self, identifier: TaskIdentifier) -> ResolvedTask:
        try:
            history = call_with_retries(
                lambda: self.client.get_task_history(identifier.task_id),
                self.attempts,
                self.logger,
                "task_history_error",
                task_id=identifier.task_id,
            )
        except Exception as exc:  # noqa: BLE001
            raise TaskFetchError(
                f"Task history unavailable after {self.attempts} attempts: {identifier.task_id}"
            ) from exc

        task = history.task
        if task is None:
            raise IncompleteTaskError(f"No task attached to history of {identifier.task_id}")
        if task.mesos_task is None:
            raise IncompleteTaskError(f"Missing execution metadata for {identifier.task_id}")
        if task.mesos_task.command is None:
            raise IncompleteTaskError(f"No command for {identifier.task_id}")
        if task.mesos_task.command.environment is None:
            raise IncompleteTaskError(f"No environment for {identifier.task_id}")

        return ResolvedTask(
            identifier=identifier,
            task=task,
            latest_update=latest_update(history.task_updates),
        )


__all__ = [
    "DEFAULT_ATTEMPTS",
    "IncompleteTaskError",
    "TaskFetchError",
    "TaskFetcher",
    "call_with_retries",
    "latest_update",
]
