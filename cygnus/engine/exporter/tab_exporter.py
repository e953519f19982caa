"""Streaming tab-separated report output."""

from __future__ import annotations

import sys
from typing import Sequence, TextIO

from .base import BaseExporter


class TabExporter(BaseExporter):
    """Write each row as soon as it arrives, one tab-separated line per row."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stdout
        self.rows_written = 0

    def write_header(self, names: Sequence[str]) -> None:
        self._write(names)

    def export(self, row: Sequence[str]) -> None:
        self._write(row)
        self.rows_written += 1

    def flush(self) -> None:
        self.stream.flush()

    def close(self) -> None:
        self.flush()

    def _write(self, cells: Sequence[str]) -> None:
        self.stream.write("\t".join(_clean(cell) for cell in cells))
        self.stream.write("\n")


def _clean(cell: str) -> str:
    return str(cell).replace("\t", " ").replace("\n", " ")


__all__ = ["TabExporter"]
