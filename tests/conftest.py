"""Pytest configuration providing a fake scheduler and shared fixtures."""

from __future__ import annotations

from pathlib import Path
from threading import Lock
from typing import Any, Callable, Iterable

import pytest

from cygnus.config import (
    CacheConfig,
    ConfigLocator,
    ConfigRepository,
    GlobalConfig,
    ReportOptions,
)
from cygnus.upstream import UpstreamError
from cygnus.upstream.models import (
    Command,
    ContainerInfo,
    Deploy,
    DockerInfo,
    Environment,
    EnvironmentVariable,
    MesosTask,
    Request,
    RequestParent,
    Task,
    TaskHistory,
    TaskHistoryUpdate,
    TaskId,
    TaskIdHistory,
    TaskState,
)


class RecordingLogger:
    """Structlog-compatible logger that keeps every event in memory."""

    def __init__(self, events: list[tuple[str, str, dict[str, Any]]] | None = None, **context: Any) -> None:
        self.events = events if events is not None else []
        self.context = context
        self._lock = Lock()

    def bind(self, **context: Any) -> "RecordingLogger":
        child = RecordingLogger(self.events, **{**self.context, **context})
        child._lock = self._lock
        return child

    def _log(self, level: str, event: str, **kwargs: Any) -> None:
        with self._lock:
            self.events.append((level, event, {**self.context, **kwargs}))

    def debug(self, event: str, **kwargs: Any) -> None:
        self._log("debug", event, **kwargs)

    def info(self, event: str, **kwargs: Any) -> None:
        self._log("info", event, **kwargs)

    def warning(self, event: str, **kwargs: Any) -> None:
        self._log("warning", event, **kwargs)

    def error(self, event: str, **kwargs: Any) -> None:
        self._log("error", event, **kwargs)

    def named(self, event: str) -> list[dict[str, Any]]:
        return [fields for _, name, fields in self.events if name == event]


def make_task_id(task_id: str, request_id: str = "req-a", deploy_id: str = "d1") -> TaskId:
    return TaskId(id=task_id, request_id=request_id, deploy_id=deploy_id)


def make_history(
    task_id: TaskId,
    updates: Iterable[tuple[TaskState | None, int]] = ((TaskState.RUNNING, 100),),
    env: dict[str, str] | None = None,
    image: str | None = None,
    with_environment: bool = True,
    with_command: bool = True,
    with_mesos: bool = True,
) -> TaskHistory:
    mesos = None
    if with_mesos:
        command = None
        if with_command:
            environment = None
            if with_environment:
                environment = Environment(
                    variables=[EnvironmentVariable(name=k, value=v) for k, v in (env or {}).items()]
                )
            command = Command(value="run.sh", environment=environment)
        container = ContainerInfo(docker=DockerInfo(image=image)) if image else None
        mesos = MesosTask(command=command, container=container)
    return TaskHistory(
        task=Task(task_id=task_id, mesos_task=mesos),
        task_updates=[TaskHistoryUpdate(task_state=state, timestamp=ts) for state, ts in updates],
    )


def make_parent(
    request_id: str,
    instances: int = 1,
    request_type: str = "SERVICE",
    state: str = "ACTIVE",
    active_deploy: Deploy | None = None,
    pending_deploy: Deploy | None = None,
) -> RequestParent:
    return RequestParent(
        request=Request(id=request_id, instances=instances, request_type=request_type),
        state=state,
        active_deploy=active_deploy,
        pending_deploy=pending_deploy,
    )


class FakeSchedulerClient:
    """In-memory scheduler with per-call failure injection and call tracking."""

    def __init__(self, base_url: str = "http://scheduler.test") -> None:
        self.base_url = base_url
        self.parents: list[RequestParent] = []
        self.active: dict[str, list[TaskIdHistory]] = {}
        self.recent: dict[str, list[TaskIdHistory]] = {}
        self.histories: dict[str, TaskHistory] = {}
        self.failures: dict[str, int] = {}
        self.history_calls: list[str] = []
        self.recent_calls: list[tuple[str, int, int]] = []
        self.closed = False
        self._lock = Lock()

    # -- scenario builders ------------------------------------------------
    def add_request(self, parent: RequestParent) -> None:
        self.parents.append(parent)

    def add_task(
        self,
        history: TaskHistory,
        active: bool = True,
        recent: bool = False,
    ) -> None:
        task_id = history.task.task_id
        if active:
            self.active.setdefault(task_id.request_id, []).append(TaskIdHistory(task_id=task_id))
        if recent:
            self.recent.setdefault(task_id.request_id, []).append(TaskIdHistory(task_id=task_id))
        self.histories[task_id.id] = history

    def fail(self, key: str, times: int = 1_000) -> None:
        self.failures[key] = times

    def _maybe_fail(self, key: str) -> None:
        with self._lock:
            remaining = self.failures.get(key, 0)
            if remaining:
                self.failures[key] = remaining - 1
                raise UpstreamError(f"injected failure for {key}")

    # -- capability -------------------------------------------------------
    def list_requests(self) -> list[RequestParent]:
        self._maybe_fail("requests")
        return list(self.parents)

    def get_request(self, request_id: str) -> RequestParent:
        self._maybe_fail(f"request:{request_id}")
        for parent in self.parents:
            if parent.request and parent.request.id == request_id:
                return parent
        raise UpstreamError(f"unknown request {request_id}")

    def list_active_task_history(self, request_id: str) -> list[TaskIdHistory]:
        self._maybe_fail(f"active:{request_id}")
        return list(self.active.get(request_id, []))

    def list_recent_task_history(self, request_id: str, count: int, page: int) -> list[TaskIdHistory]:
        self._maybe_fail(f"recent:{request_id}")
        with self._lock:
            self.recent_calls.append((request_id, count, page))
        return list(self.recent.get(request_id, []))[:count]

    def get_task_history(self, task_id: str) -> TaskHistory:
        with self._lock:
            self.history_calls.append(task_id)
        self._maybe_fail(f"task:{task_id}")
        return self.histories[task_id]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def fake_client() -> FakeSchedulerClient:
    return FakeSchedulerClient()


@pytest.fixture
def report_options() -> Callable[..., ReportOptions]:
    def _builder(**overrides: Any) -> ReportOptions:
        return ReportOptions(**overrides)

    return _builder


@pytest.fixture
def sample_global_config(tmp_path: Path) -> GlobalConfig:
    return GlobalConfig(cache=CacheConfig(path=tmp_path / "cache" / "cygnus.db"))


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("CYGNUS_HOME", str(tmp_path))
    locator = ConfigLocator()
    repository = ConfigRepository(locator)
    yield repository


@pytest.fixture
def task_id_factory() -> Callable[..., TaskId]:
    return make_task_id


@pytest.fixture
def history_factory() -> Callable[..., TaskHistory]:
    return make_history


@pytest.fixture
def parent_factory() -> Callable[..., RequestParent]:
    return make_parent
