"""File based exporter writing JSON lines or CSV."""

from __future__ import annotations

import csv
import json
from datetime import datetime, timezone
from pathlib import Path

from .base import RECORD_FIELDS, BaseExporter


class FileExporter(BaseExporter):
    """Append records to ``<name>-<run_tag>.jsonl`` or ``.csv``."""

    def __init__(self, output_dir: Path, name: str, fmt: str, run_tag: str | None = None) -> None:
        if fmt not in {"json", "csv"}:
            raise ValueError(f"Unsupported file format: {fmt}")
        self.output_dir = output_dir
        self.format = fmt
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.run_tag = run_tag or datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        self.path = self.output_dir / f"{name}-{self.run_tag}.{self._extension}"
        self._file = self.path.open("a", encoding="utf-8", newline="")
        self._csv_writer: csv.DictWriter | None = None
        if self.format == "csv":
            self._csv_writer = csv.DictWriter(self._file, fieldnames=list(RECORD_FIELDS))
            if self.path.stat().st_size == 0:
                self._csv_writer.writeheader()

    @property
    def _extension(self) -> str:
        return "jsonl" if self.format == "json" else "csv"

    def export(self, record: dict) -> bool:
        if self._csv_writer is not None:
            row = {key: record.get(key, "") for key in RECORD_FIELDS}
            for key in ("companies", "tags"):
                if isinstance(row[key], (list, tuple)):
                    row[key] = ", ".join(row[key])
            self._csv_writer.writerow(row)
        else:
            json.dump(record, self._file, ensure_ascii=False)
            self._file.write("\n")
        return True

    def flush(self) -> None:
        self._file.flush()

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()


__all__ = ["FileExporter"]
