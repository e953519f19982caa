from __future__ import annotations

from cygnus.engine import DeployRecord, RequestContext, TaskIdentifier, TaskRecord
from cygnus.engine.report import deploy_row, header_names, shows_state, task_row
from cygnus.upstream import TaskState


def _record(**overrides) -> TaskRecord:
    fields = dict(
        identifier=TaskIdentifier("req-a", "d1", "t1"),
        status=TaskState.RUNNING,
        environment=(("PORT0", "31000"), ("TASK_HOST", "node-1")),
        request=RequestContext("req-a", 1, "SERVICE", "ACTIVE"),
        image="app:1",
    )
    fields.update(overrides)
    return TaskRecord(**fields)


def test_header_names_default(report_options) -> None:
    assert header_names(report_options()) == ["Request ID", "Deploy ID"]


def test_header_names_full_task_layout(report_options) -> None:
    options = report_options(
        print_pending=True, env=["TASK_HOST", "PORT0"], include_status=True, include_docker_image=True
    )
    assert shows_state(options)
    assert header_names(options) == [
        "Request ID",
        "Deploy ID",
        "State",
        "TASK_HOST",
        "PORT0",
        "Status",
        "Docker Image",
    ]


def test_header_names_for_deploys_skip_task_columns(report_options) -> None:
    options = report_options(env="PORT0", include_status=True, include_docker_image=True)
    assert header_names(options, deploys=True) == ["Request ID", "Deploy ID", "PORT0"]


def test_state_column_needs_active_and_pending(report_options) -> None:
    assert not shows_state(report_options(print_pending=True, print_active=False))
    assert not shows_state(report_options())


def test_task_row_columns(report_options) -> None:
    options = report_options(
        print_pending=True, env=["TASK_HOST", "MISSING"], include_status=True, include_docker_image=True
    )
    assert task_row(_record(), options) == ["req-a", "d1", "ACTIVE", "node-1", "", "TASK_RUNNING", "app:1"]


def test_task_row_unknown_placeholders(report_options) -> None:
    options = report_options(print_pending=True, include_status=True, include_docker_image=True)
    row = task_row(_record(status=None, request=None, image=None), options)
    assert row == ["req-a", "d1", "UNKNOWN", "UNKNOWN", ""]


def test_deploy_row_uses_marker_as_state(report_options) -> None:
    record = DeployRecord("req-a", "d2", "pending", (("PORT0", "8080"),))
    assert deploy_row(record, report_options(print_pending=True, env=["PORT0"])) == [
        "req-a",
        "d2",
        "pending",
        "8080",
    ]
    assert deploy_row(record, report_options(env=["PORT0"])) == ["req-a", "d2", "8080"]
