"""Pydantic models mirroring the scheduler's JSON payloads."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class TaskState(str, Enum):
    """Extended task states reported by the scheduler."""

    LAUNCHED = "TASK_LAUNCHED"
    STAGING = "TASK_STAGING"
    STARTING = "TASK_STARTING"
    RUNNING = "TASK_RUNNING"
    CLEANING = "TASK_CLEANING"
    KILLING = "TASK_KILLING"
    FINISHED = "TASK_FINISHED"
    FAILED = "TASK_FAILED"
    KILLED = "TASK_KILLED"
    LOST = "TASK_LOST"
    LOST_WHILE_DOWN = "TASK_LOST_WHILE_DOWN"
    ERROR = "TASK_ERROR"
    DROPPED = "TASK_DROPPED"
    GONE = "TASK_GONE"
    UNREACHABLE = "TASK_UNREACHABLE"
    GONE_BY_OPERATOR = "TASK_GONE_BY_OPERATOR"
    UNKNOWN = "TASK_UNKNOWN"


class UpstreamModel(BaseModel):
    """Base for payload models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class TaskId(UpstreamModel):
    id: str
    request_id: str
    deploy_id: str


class TaskIdHistory(UpstreamModel):
    """One entry of a request's task history listing."""

    task_id: TaskId | None = None
    updated_at: int | None = None
    last_task_state: TaskState | None = None


class EnvironmentVariable(UpstreamModel):
    name: str
    value: str = ""


class Environment(UpstreamModel):
    variables: list[EnvironmentVariable] = Field(default_factory=list)


class Command(UpstreamModel):
    value: str | None = None
    environment: Environment | None = None


class DockerInfo(UpstreamModel):
    image: str


class ContainerInfo(UpstreamModel):
    docker: DockerInfo | None = None


class MesosTask(UpstreamModel):
    """Execution metadata attached to a launched task."""

    command: Command | None = None
    container: ContainerInfo | None = None


class Task(UpstreamModel):
    task_id: TaskId | None = None
    mesos_task: MesosTask | None = None


class TaskHistoryUpdate(UpstreamModel):
    task_state: TaskState | None = None
    timestamp: int = 0
    status_message: str | None = None


class TaskHistory(UpstreamModel):
    task: Task | None = None
    task_updates: list[TaskHistoryUpdate] = Field(default_factory=list)


class Request(UpstreamModel):
    id: str
    instances: int | None = None
    request_type: str | None = None


class Deploy(UpstreamModel):
    id: str
    request_id: str | None = None
    env: dict[str, str] = Field(default_factory=dict)


class RequestParent(UpstreamModel):
    """A request together with its state and deploy markers."""

    request: Request | None = None
    state: str | None = None
    active_deploy: Deploy | None = None
    pending_deploy: Deploy | None = None


__all__ = [
    "Command",
    "ContainerInfo",
    "Deploy",
    "DockerInfo",
    "Environment",
    "EnvironmentVariable",
    "MesosTask",
    "Request",
    "RequestParent",
    "Task",
    "TaskHistory",
    "TaskHistoryUpdate",
    "TaskId",
    "TaskIdHistory",
    "TaskState",
    "UpstreamModel",
]
