"""Work frontier enumerating listing pages and tracking their state."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum
from threading import Condition
from typing import Deque, Dict


class InvalidRange(ValueError):
    """Raised when a page range is empty or starts below page 1."""


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class PageTask:
    """One listing page to fetch; ``attempt`` counts retries already made."""

    page_number: int
    url: str
    attempt: int = 0


def build_page_url(base_url: str, page_number: int) -> str:
    """Return the listing URL for ``page_number`` (page 1 is the bare base)."""

    if page_number == 1:
        return base_url
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}page={page_number}"


class Frontier:
    """FIFO queue of page tasks with retry re-insertion.

    A page number is tracked by exactly one task for its whole lifetime, so a
    page can never be pending twice or be pending while in flight.
    """

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url
        self._pending: Deque[PageTask] = deque()
        self._tasks: Dict[int, PageTask] = {}
        self._status: Dict[int, TaskStatus] = {}
        self._cond = Condition()
        self._closed = False

    def enumerate(self, start_page: int, end_page: int) -> list[PageTask]:
        if start_page < 1:
            raise InvalidRange(f"start_page must be >= 1, got {start_page}")
        if end_page < start_page:
            raise InvalidRange(f"end_page ({end_page}) must be >= start_page ({start_page})")
        created: list[PageTask] = []
        with self._cond:
            for page_number in range(start_page, end_page + 1):
                if page_number in self._tasks:
                    continue
                task = PageTask(page_number=page_number, url=build_page_url(self.base_url, page_number))
                self._tasks[page_number] = task
                self._status[page_number] = TaskStatus.PENDING
                self._pending.append(task)
                created.append(task)
            self._cond.notify_all()
        return created

    # ------------------------------------------------------------------
    def next_task(self, timeout: float | None = None) -> PageTask | None:
        """Pop the next pending task and mark it in flight.

        Blocks while other tasks are in flight (they may be requeued) and
        returns ``None`` once the frontier is drained or closed, or when
        ``timeout`` elapses without a task becoming available.
        """

        with self._cond:
            while True:
                if self._closed:
                    return None
                if self._pending:
                    task = self._pending.popleft()
                    self._status[task.page_number] = TaskStatus.IN_FLIGHT
                    return task
                if not self._has_in_flight():
                    return None
                if not self._cond.wait(timeout):
                    return None

    def requeue(self, task: PageTask) -> PageTask:
        with self._cond:
            current = self._tasks.get(task.page_number)
            if current is None:
                raise KeyError(f"Unknown page task: {task.page_number}")
            if self._status[task.page_number] is TaskStatus.PENDING:
                self._pending = deque(t for t in self._pending if t.page_number != task.page_number)
            current.attempt += 1
            self._status[task.page_number] = TaskStatus.PENDING
            self._pending.append(current)
            self._cond.notify_all()
            return current

    def mark_done(self, task: PageTask) -> None:
        self._finish(task, TaskStatus.DONE)

    def mark_failed(self, task: PageTask) -> None:
        self._finish(task, TaskStatus.FAILED)

    def close(self) -> None:
        """Stop handing out tasks; waiting workers wake up and exit."""

        with self._cond:
            self._closed = True
            self._cond.notify_all()

    # ------------------------------------------------------------------
    def status(self, page_number: int) -> TaskStatus:
        with self._cond:
            return self._status[page_number]

    def counts(self) -> dict[str, int]:
        with self._cond:
            result = {status.value: 0 for status in TaskStatus}
            for status in self._status.values():
                result[status.value] += 1
            return result

    @property
    def has_work(self) -> bool:
        with self._cond:
            return bool(self._pending) or self._has_in_flight()

    def __len__(self) -> int:
        return len(self._tasks)

    def _finish(self, task: PageTask, status: TaskStatus) -> None:
        with self._cond:
            if task.page_number not in self._tasks:
                raise KeyError(f"Unknown page task: {task.page_number}")
            if self._status[task.page_number] is TaskStatus.PENDING:
                self._pending = deque(t for t in self._pending if t.page_number != task.page_number)
            self._status[task.page_number] = status
            self._cond.notify_all()

    def _has_in_flight(self) -> bool:
        return any(status is TaskStatus.IN_FLIGHT for status in self._status.values())


__all__ = ["Frontier", "InvalidRange", "PageTask", "TaskStatus", "build_page_url"]
