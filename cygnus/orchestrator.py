"""Collection run wiring together listing, dedup, fetching, rendering and caching."""

from __future__ import annotations

from concurrent.futures import Future, wait
from dataclasses import asdict, dataclass
from typing import Iterable, Sequence

import structlog

from .config import CollectorConfig, ReportOptions
from .engine import (
    DeployRecord,
    ReportSink,
    RequestContext,
    TaskFetcher,
    TaskFetchError,
    TaskIdentifier,
    ThreadPoolManager,
    call_with_retries,
    correlate,
)
from .upstream import SchedulerClient, TaskIdHistory
from .upstream.models import Deploy, RequestParent

RECENT_HISTORY_PAGE = 1


@dataclass(slots=True)
class CollectionSummary:
    requests: int = 0
    dispatched: int = 0
    duplicates: int = 0
    collected: int = 0
    failed: int = 0
    printed: int = 0
    suppressed: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(slots=True)
class UnitResult:
    status: str
    key: str
    reason: str | None = None


class Collector:
    """Turn the scheduler's request list into one report row per unique task.

    Task ids are checked against, and added to, the seen set on the calling
    thread before the fetch for that id is submitted, so no id is fetched
    twice however many listings return it. Each submitted unit covers the
    fetch, the correlation and the sink hand-off (render enqueue plus cache
    write); ``collect_tasks`` returns only after every unit and every queued
    row has finished.
    """

    def __init__(
        self,
        client: SchedulerClient,
        sink: ReportSink,
        options: ReportOptions,
        config: CollectorConfig | None = None,
        thread_pool: ThreadPoolManager | None = None,
        fetcher: TaskFetcher | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.client = client
        self.sink = sink
        self.options = options
        self.config = config or CollectorConfig()
        self.thread_pool = thread_pool or ThreadPoolManager(self.config.max_workers)
        self.logger = logger or structlog.get_logger("cygnus.collector")
        self.fetcher = fetcher or TaskFetcher(
            client, attempts=self.config.retry_attempts, logger=self.logger.bind(component="fetcher")
        )
        self.seen: set[str] = set()

    # ------------------------------------------------------------------
    def collect_tasks(self) -> CollectionSummary:
        summary = CollectionSummary()
        parents = self._list_requests()
        contexts = [RequestContext.from_upstream(p) for p in self._with_request(parents)]
        summary.requests = len(contexts)

        executor = self.thread_pool.get("tasks", max_workers=self.config.max_workers)
        futures: list[Future[UnitResult]] = []
        self.sink.start()
        for context in contexts:
            for entry in self._task_listings(context.request_id):
                if entry.task_id is None:
                    self.logger.warning("task_id_missing", request=context.request_id)
                    continue
                identifier = TaskIdentifier.from_upstream(entry.task_id)
                if identifier.task_id in self.seen:
                    summary.duplicates += 1
                    continue
                self.seen.add(identifier.task_id)
                futures.append(executor.submit(self._collect_task, identifier, contexts))
                summary.dispatched += 1

        self._tally(futures, summary)
        self.sink.join()
        summary.printed = self.sink.printed
        summary.suppressed = self.sink.suppressed
        self.logger.info("collection_finished", **summary.as_dict())
        return summary

    def collect_deploys(self) -> CollectionSummary:
        """Report the active and/or pending deploy of every request."""

        summary = CollectionSummary()
        parents = self._list_requests()
        request_ids = [p.request.id for p in self._with_request(parents)]
        summary.requests = len(request_ids)

        executor = self.thread_pool.get("deploys", max_workers=self.config.max_workers)
        self.sink.start()
        futures = [executor.submit(self._collect_deploys, request_id) for request_id in request_ids]
        summary.dispatched = len(futures)
        self._tally(futures, summary)
        self.sink.join()
        summary.printed = self.sink.printed
        self.logger.info("deploy_collection_finished", **summary.as_dict())
        return summary

    # ------------------------------------------------------------------
    def _list_requests(self) -> list[RequestParent]:
        return call_with_retries(
            self.client.list_requests,
            self.config.retry_attempts,
            self.logger,
            "request_listing_error",
        )

    def _with_request(self, parents: Sequence[RequestParent]) -> list[RequestParent]:
        kept = []
        for index, parent in enumerate(parents):
            if parent.request is None:
                self.logger.warning("request_missing", position=index, state=parent.state)
                continue
            kept.append(parent)
        return kept

    def _task_listings(self, request_id: str) -> Iterable[TaskIdHistory]:
        try:
            yield from call_with_retries(
                lambda: self.client.list_active_task_history(request_id),
                self.config.retry_attempts,
                self.logger,
                "active_listing_error",
                request=request_id,
            )
        except Exception as exc:  # noqa: BLE001
            self.logger.error("active_listing_failed", request=request_id, error=str(exc))
        if not self.options.include_inactive:
            return
        try:
            yield from call_with_retries(
                lambda: self.client.list_recent_task_history(
                    request_id, self.config.inactive_page_size, RECENT_HISTORY_PAGE
                ),
                self.config.retry_attempts,
                self.logger,
                "recent_listing_error",
                request=request_id,
            )
        except Exception as exc:  # noqa: BLE001
            self.logger.error("recent_listing_failed", request=request_id, error=str(exc))

    def _collect_task(
        self, identifier: TaskIdentifier, contexts: Sequence[RequestContext]
    ) -> UnitResult:
        try:
            resolved = self.fetcher.fetch(identifier)
            record = correlate(resolved, contexts)
            self.sink.submit(record)
        except TaskFetchError as exc:
            self.logger.warning("task_dropped", task_id=identifier.task_id, reason=str(exc))
            return UnitResult(status="failed", key=identifier.task_id, reason=str(exc))
        except Exception as exc:  # noqa: BLE001
            self.logger.error("task_error", task_id=identifier.task_id, error=str(exc))
            return UnitResult(status="failed", key=identifier.task_id, reason=str(exc))
        return UnitResult(status="success", key=identifier.task_id)

    def _collect_deploys(self, request_id: str) -> UnitResult:
        try:
            parent = call_with_retries(
                lambda: self.client.get_request(request_id),
                self.config.retry_attempts,
                self.logger,
                "request_detail_error",
                request=request_id,
            )
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("deploy_lookup_failed", request=request_id, error=str(exc))
            return UnitResult(status="failed", key=request_id, reason=str(exc))
        if self.options.print_active and parent.active_deploy is not None:
            self.sink.submit(_deploy_record(request_id, "active", parent.active_deploy))
        if self.options.print_pending and parent.pending_deploy is not None:
            self.sink.submit(_deploy_record(request_id, "pending", parent.pending_deploy))
        return UnitResult(status="success", key=request_id)

    @staticmethod
    def _tally(futures: Sequence[Future[UnitResult]], summary: CollectionSummary) -> None:
        done, _ = wait(futures)
        for future in done:
            result = future.result()
            if result.status == "success":
                summary.collected += 1
            else:
                summary.failed += 1


def _deploy_record(request_id: str, marker: str, deploy: Deploy) -> DeployRecord:
    return DeployRecord(
        request_id=request_id,
        deploy_id=deploy.id,
        marker=marker,
        env=tuple(deploy.env.items()),
    )


__all__ = ["CollectionSummary", "Collector", "UnitResult"]
