"""Bounded thread pools shared by collection runs."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from threading import Lock
from typing import Dict


class ThreadPoolManager:
    """Hand out one bounded executor per purpose (task fetches, deploy lookups).

    Executors are created on first request, so a run only starts the threads
    of the purposes it actually uses.
    """

    def __init__(self, default_workers: int = 16) -> None:
        self.default_workers = default_workers
        self._executors: Dict[str, ThreadPoolExecutor] = {}
        self._lock = Lock()

    def get(self, purpose: str, max_workers: int | None = None) -> ThreadPoolExecutor:
        with self._lock:
            if purpose not in self._executors:
                self._executors[purpose] = ThreadPoolExecutor(
                    max_workers=max_workers or self.default_workers,
                    thread_name_prefix=f"cygnus-{purpose}",
                )
            return self._executors[purpose]

    def purposes(self) -> list[str]:
        with self._lock:
            return sorted(self._executors)

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            executors = list(self._executors.values())
            self._executors.clear()
        for executor in executors:
            executor.shutdown(wait=wait)


__all__ = ["ThreadPoolManager"]
