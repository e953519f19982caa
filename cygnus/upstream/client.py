"""httpx implementation of the scheduler capability."""

from __future__ import annotations

from typing import Any, TypeVar
from urllib.parse import quote

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError

from .base import UpstreamError
from .models import RequestParent, TaskHistory, TaskIdHistory

T = TypeVar("T")

_REQUEST_LIST = TypeAdapter(list[RequestParent])
_TASK_ID_HISTORY_LIST = TypeAdapter(list[TaskIdHistory])
_REQUEST_PARENT = TypeAdapter(RequestParent)
_TASK_HISTORY = TypeAdapter(TaskHistory)


class SingularityClient:
    """Read-only client for a Singularity scheduler's REST API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        headers: dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.logger = logger or structlog.get_logger("cygnus.upstream")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers=headers,
            follow_redirects=True,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "SingularityClient":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def list_requests(self) -> list[RequestParent]:
        return self._get("/api/requests", _REQUEST_LIST)

    def get_request(self, request_id: str) -> RequestParent:
        return self._get(f"/api/requests/request/{_segment(request_id)}", _REQUEST_PARENT)

    def list_active_task_history(self, request_id: str) -> list[TaskIdHistory]:
        return self._get(
            f"/api/history/request/{_segment(request_id)}/tasks/active", _TASK_ID_HISTORY_LIST
        )

    def list_recent_task_history(self, request_id: str, count: int, page: int) -> list[TaskIdHistory]:
        return self._get(
            f"/api/history/request/{_segment(request_id)}/tasks",
            _TASK_ID_HISTORY_LIST,
            params={"count": count, "page": page},
        )

    def get_task_history(self, task_id: str) -> TaskHistory:
        return self._get(f"/api/history/task/{_segment(task_id)}", _TASK_HISTORY)

    # ------------------------------------------------------------------
    def _get(self, path: str, adapter: TypeAdapter[T], params: dict[str, Any] | None = None) -> T:
        self.logger.debug("upstream_get", path=path, params=params)
        try:
            response = self._client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise UpstreamError(
                f"{exc.response.status_code} from {exc.request.url}"
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Request to {path} failed: {exc}") from exc
        try:
            return adapter.validate_python(response.json())
        except (ValueError, ValidationError) as exc:
            raise UpstreamError(f"Unexpected payload from {path}: {exc}") from exc


def _segment(value: str) -> str:
    return quote(value, safe="")


__all__ = ["SingularityClient"]
