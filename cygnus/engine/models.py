"""Run-scoped records built while collecting tasks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from ..upstream.models import RequestParent, Task, TaskHistoryUpdate, TaskId, TaskState

EnvPairs = tuple[tuple[str, str], ...]


@dataclass(frozen=True, slots=True)
class TaskIdentifier:
    request_id: str
    deploy_id: str
    task_id: str

    @classmethod
    def from_upstream(cls, task_id: TaskId) -> "TaskIdentifier":
        return cls(request_id=task_id.request_id, deploy_id=task_id.deploy_id, task_id=task_id.id)


@dataclass(frozen=True, slots=True)
class RequestContext:
    """The owning request of a task, as listed by the scheduler."""

    UNKNOWN = "UNKNOWN"

    request_id: str
    instances: int
    request_type: str
    state: str

    @classmethod
    def from_upstream(cls, parent: RequestParent) -> "RequestContext | None":
        if parent.request is None:
            return None
        return cls(
            request_id=parent.request.id,
            instances=parent.request.instances or 0,
            request_type=parent.request.request_type or cls.UNKNOWN,
            state=parent.state or cls.UNKNOWN,
        )


@dataclass(frozen=True, slots=True)
class ResolvedTask:
    """A task whose execution metadata was fetched and checked."""

    identifier: TaskIdentifier
    task: Task
    latest_update: TaskHistoryUpdate | None


@dataclass(frozen=True, slots=True)
class TaskRecord:
    identifier: TaskIdentifier
    status: TaskState | None
    environment: EnvPairs
    request: RequestContext | None
    image: str | None


@dataclass(frozen=True, slots=True)
class DeployRecord:
    """An active or pending deploy of a request."""

    request_id: str
    deploy_id: str
    marker: str
    env: tuple[tuple[str, str], ...]


def resolve_environment(task: Task) -> EnvPairs:
    """Return the task's environment variables in declaration order."""

    mesos = task.mesos_task
    if mesos is None or mesos.command is None or mesos.command.environment is None:
        return ()
    return tuple((var.name, var.value) for var in mesos.command.environment.variables)


def resolve_image(task: Task) -> str | None:
    mesos = task.mesos_task
    if mesos is None or mesos.container is None or mesos.container.docker is None:
        return None
    return mesos.container.docker.image


def env_values(environment: Iterable[tuple[str, str]], names: Sequence[str]) -> list[str]:
    """Pick requested variables in the requested order; absent ones become ``""``."""

    lookup = dict(environment)
    return [lookup.get(name, "") for name in names]


__all__ = [
    "DeployRecord",
    "EnvPairs",
    "RequestContext",
    "ResolvedTask",
    "TaskIdentifier",
    "TaskRecord",
    "env_values",
    "resolve_environment",
    "resolve_image",
]
