"""Join fetched tasks with their owning request."""

from __future__ import annotations

from typing import Sequence

from .models import RequestContext, ResolvedTask, TaskRecord, resolve_environment, resolve_image


def find_request(contexts: Sequence[RequestContext], request_id: str) -> RequestContext | None:
    for context in contexts:
        if context.request_id == request_id:
            return context
    return None


def correlate(resolved: ResolvedTask, contexts: Sequence[RequestContext]) -> TaskRecord:
    update = resolved.latest_update
    return TaskRecord(
        identifier=resolved.identifier,
        status=update.task_state if update is not None else None,
        environment=resolve_environment(resolved.task),
        request=find_request(contexts, resolved.identifier.request_id),
        image=resolve_image(resolved.task),
    )


__all__ = ["correlate", "find_request"]
