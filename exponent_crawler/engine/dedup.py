"""Cross-run history of exported question links."""

from __future__ import annotations

from pathlib import Path
from threading import Lock

from ..infra.storage import SQLiteManager

HISTORY_SCHEMA = """
CREATE TABLE IF NOT EXISTS crawl_history (
    link TEXT PRIMARY KEY,
    page_number INTEGER,
    question TEXT,
    first_seen TEXT
);
"""


class HistoryStore:
    """Remember every link written so far so re-runs skip known questions."""

    def __init__(self, manager: SQLiteManager, db_path: Path) -> None:
        self.manager = manager
        self.db_path = db_path
        self._lock = Lock()
        self._conn = self.manager.connect(db_path, HISTORY_SCHEMA)

    def remember(self, link: str, page_number: int, question: str = "") -> None:
        """Record ``link``; the first sighting keeps its page and timestamp."""

        with self._lock:
            self._conn.execute(
                "INSERT OR IGNORE INTO crawl_history(link, page_number, question, first_seen) "
                "VALUES (?, ?, ?, datetime('now'))",
                (link, page_number, question),
            )
            self._conn.commit()

    def has_link(self, link: str) -> bool:
        with self._lock:
            cur = self._conn.execute("SELECT 1 FROM crawl_history WHERE link = ?", (link,))
            return cur.fetchone() is not None

    def recent(self, limit: int = 20) -> list[tuple[str, int, str]]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT link, page_number, first_seen FROM crawl_history "
                "ORDER BY first_seen DESC, page_number ASC LIMIT ?",
                (limit,),
            ).fetchall()
        return [(row["link"], row["page_number"], row["first_seen"]) for row in rows]

    def reset(self) -> None:
        with self._lock:
            self.manager.reset(self.db_path)
            self._conn = self.manager.connect(self.db_path, HISTORY_SCHEMA)


__all__ = ["HISTORY_SCHEMA", "HistoryStore"]
