"""Aligned report output rendered with Rich once all rows are in."""

from __future__ import annotations

from typing import Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .base import BaseExporter


class TableExporter(BaseExporter):
    """Buffer rows and print them as one aligned table on flush."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(soft_wrap=True)
        self._header: list[str] = []
        self._rows: list[list[str]] = []
        self.rows_written = 0

    def write_header(self, names: Sequence[str]) -> None:
        self._header = list(names)

    def export(self, row: Sequence[str]) -> None:
        self._rows.append([str(cell) for cell in row])
        self.rows_written += 1

    def flush(self) -> None:
        if not self._rows and not self._header:
            return
        width = max([len(self._header)] + [len(row) for row in self._rows])
        table = Table(
            box=None,
            show_header=bool(self._header),
            pad_edge=False,
            padding=(0, 1, 0, 0),
        )
        for index in range(width):
            name = self._header[index] if index < len(self._header) else ""
            table.add_column(Text(name), no_wrap=True, overflow="fold")
        for row in self._rows:
            table.add_row(*(Text(cell) for cell in row))
        self.console.print(table)
        self._header = []
        self._rows = []

    def close(self) -> None:
        self.flush()


__all__ = ["TableExporter"]
