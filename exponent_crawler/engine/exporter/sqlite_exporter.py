"""Export records to a SQLite table keyed by link."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path

from .base import BaseExporter


class SQLiteExporter(BaseExporter):
    """Persist records with ``link`` as primary key; duplicates are rejected."""

    def __init__(self, path: Path, table: str = "questions") -> None:
        self.path = path
        self.table = table
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        self.conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                link TEXT PRIMARY KEY,
                question TEXT NOT NULL,
                companies TEXT NOT NULL,
                tags TEXT NOT NULL,
                answer_count INTEGER NOT NULL,
                asked_when TEXT NOT NULL
            )
            """
        )
        self.conn.commit()

    def export(self, record: dict) -> bool:
        cur = self.conn.execute(
            f"INSERT OR IGNORE INTO {self.table}"
            "(link, question, companies, tags, answer_count, asked_when) VALUES (?, ?, ?, ?, ?, ?)",
            (
                record["link"],
                record["question"],
                json.dumps(list(record.get("companies") or []), ensure_ascii=False),
                json.dumps(list(record.get("tags") or []), ensure_ascii=False),
                int(record.get("answerCount") or 0),
                record.get("askedWhen") or "",
            ),
        )
        return cur.rowcount == 1

    def count(self) -> int:
        return self.conn.execute(f"SELECT count(*) FROM {self.table}").fetchone()[0]

    def flush(self) -> None:
        self.conn.commit()

    def close(self) -> None:
        self.conn.commit()
        self.conn.close()


__all__ = ["SQLiteExporter"]
