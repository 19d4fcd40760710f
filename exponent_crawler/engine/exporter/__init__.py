"""Record sinks."""

from .base import RECORD_FIELDS, BaseExporter
from .file_exporter import FileExporter
from .sqlite_exporter import SQLiteExporter

__all__ = ["BaseExporter", "FileExporter", "RECORD_FIELDS", "SQLiteExporter"]
