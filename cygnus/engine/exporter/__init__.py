"""Exporter SPI and implementations."""

from .base import BaseExporter
from .tab_exporter import TabExporter
from .table_exporter import TableExporter

__all__ = ["BaseExporter", "TabExporter", "TableExporter"]
