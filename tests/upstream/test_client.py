from __future__ import annotations

import httpx
import pytest

from cygnus.upstream import SingularityClient, TaskState, UpstreamError

REQUESTS_PAYLOAD = [
    {
        "request": {"id": "req-a", "instances": 2, "requestType": "SERVICE"},
        "state": "ACTIVE",
        "activeDeploy": {"id": "d1", "requestId": "req-a", "env": {"PORT0": "80"}},
        "extraField": True,
    },
    {"request": {"id": "req-b"}, "state": "PAUSED"},
]

TASK_PAYLOAD = {
    "task": {
        "taskId": {"id": "t1", "requestId": "req-a", "deployId": "d1"},
        "mesosTask": {
            "command": {
                "value": "run.sh",
                "environment": {"variables": [{"name": "PORT0", "value": "31000"}]},
            },
            "container": {"docker": {"image": "app:1"}},
        },
    },
    "taskUpdates": [
        {"taskState": "TASK_STARTING", "timestamp": 10},
        {"taskState": "TASK_RUNNING", "timestamp": 20, "statusMessage": "ok"},
    ],
}


def _client(handler, seen: list[httpx.Request] | None = None) -> SingularityClient:
    def _record(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return handler(request)

    return SingularityClient("http://scheduler.test/", transport=httpx.MockTransport(_record))


def test_list_requests_parses_camel_case_payload() -> None:
    seen: list[httpx.Request] = []
    with _client(lambda request: httpx.Response(200, json=REQUESTS_PAYLOAD), seen) as client:
        parents = client.list_requests()

    assert client.base_url == "http://scheduler.test"
    assert seen[0].url.path == "/api/requests"
    assert parents[0].request.request_type == "SERVICE"
    assert parents[0].active_deploy.env == {"PORT0": "80"}
    assert parents[1].request.instances is None
    assert parents[1].active_deploy is None


def test_task_history_endpoints() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.startswith("/api/history/task/"):
            return httpx.Response(200, json=TASK_PAYLOAD)
        return httpx.Response(200, json=[{"taskId": {"id": "t1", "requestId": "req a", "deployId": "d1"}}])

    with _client(handler, seen) as client:
        active = client.list_active_task_history("req a")
        recent = client.list_recent_task_history("req a", 10, 1)
        history = client.get_task_history("t1")

    assert seen[0].url.raw_path == b"/api/history/request/req%20a/tasks/active"
    assert seen[1].url.path == "/api/history/request/req a/tasks"
    assert dict(seen[1].url.params) == {"count": "10", "page": "1"}
    assert seen[2].url.path == "/api/history/task/t1"
    assert active[0].task_id.request_id == "req a"
    assert recent == active
    assert history.task.mesos_task.container.docker.image == "app:1"
    assert history.task_updates[1].task_state is TaskState.RUNNING


def test_get_request_path() -> None:
    seen: list[httpx.Request] = []
    with _client(lambda request: httpx.Response(200, json=REQUESTS_PAYLOAD[0]), seen) as client:
        parent = client.get_request("req-a")
    assert seen[0].url.path == "/api/requests/request/req-a"
    assert parent.state == "ACTIVE"


def test_http_error_status_is_wrapped() -> None:
    with _client(lambda request: httpx.Response(503, text="unavailable")) as client:
        with pytest.raises(UpstreamError, match="503"):
            client.list_requests()


def test_transport_error_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with _client(handler) as client:
        with pytest.raises(UpstreamError, match="connection refused"):
            client.get_task_history("t1")


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json={"unexpected": "mapping"}),
    ],
)
def test_bad_payload_is_wrapped(response: httpx.Response) -> None:
    with _client(lambda request: response) as client:
        with pytest.raises(UpstreamError, match="Unexpected payload"):
            client.list_requests()
