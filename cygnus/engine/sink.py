"""Report sink: render rows on one consumer thread, persist on the producer's."""

from __future__ import annotations

import queue
from threading import Lock, Thread
from typing import Sequence, Union

import structlog

from ..config import ReportOptions
from ..upstream import TaskState
from .cache import TaskCache
from .exporter import BaseExporter
from .models import DeployRecord, TaskRecord
from .report import deploy_row, task_row

DEFAULT_CAPACITY = 16

SinkItem = Union[TaskRecord, DeployRecord]

_STOP = object()


def is_printable(record: TaskRecord, include_inactive: bool) -> bool:
    """Only running tasks (or tasks with no status yet) are printed by default."""

    if include_inactive:
        return True
    return record.status is None or record.status is TaskState.RUNNING


class ReportSink:
    """Drain completed records from a bounded queue into an exporter.

    ``submit`` blocks while the queue is full. Rows reach the exporter in
    arrival order, which is the order units finished, not input order. Task
    records are also written to the cache from the submitting thread, so a
    unit is only done once its cache write has landed.

    A ``header`` is written when the sink starts, which the collector only
    does once the request listing succeeded.
    """

    def __init__(
        self,
        exporter: BaseExporter,
        options: ReportOptions,
        cache: TaskCache | None = None,
        host: str = "",
        capacity: int = DEFAULT_CAPACITY,
        logger: structlog.BoundLogger | None = None,
        header: Sequence[str] | None = None,
    ) -> None:
        self.exporter = exporter
        self.header = list(header) if header is not None else None
        self.options = options
        self.cache = cache
        self.host = host
        self.logger = logger or structlog.get_logger("cygnus.sink")
        self._queue: queue.Queue[object] = queue.Queue(maxsize=capacity)
        self._thread: Thread | None = None
        self._counter_lock = Lock()
        self.printed = 0
        self.suppressed = 0
        self.cached = 0

    def start(self) -> None:
        if self.header is not None:
            self.exporter.write_header(self.header)
            self.header = None
        if self._thread is None:
            self._thread = Thread(target=self._consume, name="cygnus-sink", daemon=True)
            self._thread.start()

    def submit(self, item: SinkItem) -> None:
        self._queue.put(item)
        if isinstance(item, TaskRecord) and self.cache is not None:
            if self.cache.add_task(item, self.host) is not None:
                with self._counter_lock:
                    self.cached += 1

    def join(self) -> None:
        """Wait until every submitted item has been rendered, then flush."""

        self._queue.join()
        self.exporter.flush()

    def close(self) -> None:
        if self._thread is None:
            return
        self._queue.put(_STOP)
        self._thread.join()
        self._thread = None

    # ------------------------------------------------------------------
    def _consume(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._render(item)
            except Exception as exc:  # noqa: BLE001
                self.logger.error("render_error", error=str(exc))
            finally:
                self._queue.task_done()

    def _render(self, item: object) -> None:
        if isinstance(item, DeployRecord):
            self.exporter.export(deploy_row(item, self.options))
            self.printed += 1
            return
        if not isinstance(item, TaskRecord):
            raise TypeError(f"Unsupported sink item: {type(item).__name__}")
        if not is_printable(item, self.options.include_inactive):
            self.suppressed += 1
            self.logger.debug(
                "row_suppressed",
                task_id=item.identifier.task_id,
                status=item.status.value if item.status is not None else None,
            )
            return
        self.exporter.export(task_row(item, self.options))
        self.printed += 1


__all__ = ["DEFAULT_CAPACITY", "ReportSink", "SinkItem", "is_printable"]
