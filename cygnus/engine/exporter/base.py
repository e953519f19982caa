"""Exporter Service Provider Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Sequence


class BaseExporter(ABC):
    """Uniform row-writer contract so report formats are interchangeable."""

    @abstractmethod
    def write_header(self, names: Sequence[str]) -> None:
        """Emit the column names."""

    @abstractmethod
    def export(self, row: Sequence[str]) -> None:
        """Emit a single report row."""

    def export_many(self, rows: Iterable[Sequence[str]]) -> None:
        for row in rows:
            self.export(row)

    @abstractmethod
    def flush(self) -> None:
        """Flush buffered data to destination."""

    @abstractmethod
    def close(self) -> None:
        """Release underlying resources."""


__all__ = ["BaseExporter"]
