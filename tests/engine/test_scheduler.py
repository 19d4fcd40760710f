from __future__ import annotations

import random
import threading
import time
from datetime import datetime

import pytest

from exponent_crawler.engine.dedup import HistoryStore
from exponent_crawler.engine.exporter import BaseExporter, SQLiteExporter
from exponent_crawler.engine.fetcher import FetchError, FetchTimeout, RawPageContent
from exponent_crawler.engine.frontier import Frontier, PageTask, TaskStatus
from exponent_crawler.engine.parser import RecordExtractor
from exponent_crawler.engine.scheduler import CrawlScheduler, RetryBackoff
from exponent_crawler.infra import SQLiteManager

BASE = "https://www.tryexponent.com/questions"
NOW = datetime(2024, 6, 15)


def card(question_id: int, title: str, when: str = "2 days ago") -> str:
    return (
        "<li><div class='block cursor-pointer'>"
        f"<h3><a href='/questions/{question_id}/q-{question_id}'>{title}</a></h3>"
        f"<a href='/questions/{question_id}/q-{question_id}#answers'>{question_id % 7} answers</a>"
        f"<span class='text-gray-500'>{when}</span>"
        "</div></li>"
    )


def page_html(*cards: str) -> str:
    return "<ul>" + "".join(cards) + "</ul>"


def default_page(page_number: int) -> str:
    return page_html(
        card(page_number * 10 + 1, f"Question {page_number}-1"),
        card(page_number * 10 + 2, f"Question {page_number}-2"),
    )


class FakeFetcher:
    """Serve canned pages; ``failures`` maps page number to how many attempts fail."""

    def __init__(self, pages=None, failures=None, error=FetchError, delay: float = 0.0) -> None:
        self.pages = pages or {}
        self.failures = dict(failures or {})
        self.error = error
        self.delay = delay
        self.calls: list[tuple[int, int]] = []
        self.released = 0
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()
        self.on_fetch = None

    def fetch(self, task: PageTask) -> RawPageContent:
        with self._lock:
            self.calls.append((task.page_number, task.attempt))
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.on_fetch is not None:
                self.on_fetch(task)
            if self.delay:
                time.sleep(self.delay)
            remaining = self.failures.get(task.page_number, 0)
            if remaining == -1 or remaining > 0:
                if remaining > 0:
                    self.failures[task.page_number] = remaining - 1
                raise self.error(f"boom on page {task.page_number}")
            html = self.pages.get(task.page_number, default_page(task.page_number))
            return RawPageContent.from_html(task.url, task.page_number, 200, html)
        finally:
            with self._lock:
                self.active -= 1

    def release_worker(self) -> None:
        with self._lock:
            self.released += 1


class MemorySink(BaseExporter):
    def __init__(self) -> None:
        self.records: list[dict] = []
        self.flushed = 0

    def export(self, record: dict) -> bool:
        self.records.append(record)
        return True

    def flush(self) -> None:
        self.flushed += 1

    def close(self) -> None:
        return


def make_scheduler(start=1, end=3, fetcher=None, sink=None, **kwargs) -> tuple[CrawlScheduler, Frontier]:
    frontier = Frontier(BASE)
    frontier.enumerate(start, end)
    kwargs.setdefault("backoff", RetryBackoff(base=0))
    scheduler = CrawlScheduler(
        frontier,
        fetcher or FakeFetcher(),
        RecordExtractor(),
        sink or MemorySink(),
        clock=lambda: NOW,
        **kwargs,
    )
    return scheduler, frontier


def test_every_page_is_fetched_and_written() -> None:
    fetcher = FakeFetcher()
    sink = MemorySink()
    scheduler, frontier = make_scheduler(1, 3, fetcher, sink, max_concurrency=2)

    summary = scheduler.run()

    assert summary.pages_done == 3
    assert summary.pages_failed == 0
    assert summary.records_written == 6
    assert sorted(page for page, _ in fetcher.calls) == [1, 2, 3]
    assert {record["link"] for record in sink.records} == {
        f"https://www.tryexponent.com/questions/{n}/q-{n}" for n in (11, 12, 21, 22, 31, 32)
    }
    assert all(record["askedWhen"] == "13/06/2024" for record in sink.records)
    assert frontier.counts()["done"] == 3
    assert sink.flushed >= 1


def test_retry_ceiling_produces_exactly_one_failure_notice() -> None:
    fetcher = FakeFetcher(failures={2: -1})
    notices = []
    scheduler, frontier = make_scheduler(1, 3, fetcher, retry_ceiling=2, on_failure=notices.append)

    summary = scheduler.run()

    assert [attempt for page, attempt in fetcher.calls if page == 2] == [0, 1, 2]
    assert len(notices) == 1
    notice = notices[0]
    assert notice.page_number == 2
    assert notice.url == f"{BASE}?page=2"
    assert notice.attempts == 3
    assert "boom on page 2" in notice.reason
    assert summary.pages_failed == 1
    assert summary.pages_done == 2
    assert summary.retries == 2
    assert summary.failures == notices
    assert frontier.status(2) is TaskStatus.FAILED


def test_zero_retry_ceiling_fails_on_first_error() -> None:
    fetcher = FakeFetcher(failures={1: -1}, error=FetchTimeout)
    scheduler, _ = make_scheduler(1, 1, fetcher, retry_ceiling=0)
    summary = scheduler.run()
    assert fetcher.calls == [(1, 0)]
    assert summary.failures[0].reason.startswith("timeout")


def test_transient_failure_recovers() -> None:
    fetcher = FakeFetcher(failures={1: 1})
    scheduler, frontier = make_scheduler(1, 2, fetcher, max_concurrency=1)

    summary = scheduler.run()

    assert summary.pages_done == 2
    assert summary.pages_failed == 0
    assert summary.retries == 1
    assert fetcher.calls == [(1, 0), (2, 0), (1, 1)]
    assert frontier.status(1) is TaskStatus.DONE


def test_empty_page_is_done_not_failed() -> None:
    fetcher = FakeFetcher(pages={2: "<html><body>No more questions</body></html>"})
    scheduler, _ = make_scheduler(1, 2, fetcher)
    summary = scheduler.run()
    assert summary.pages_done == 2
    assert summary.pages_empty == 1
    assert summary.pages_failed == 0
    assert [page for page, _ in fetcher.calls].count(2) == 1


def test_extraction_errors_fail_without_retry() -> None:
    class BrokenExtractor(RecordExtractor):
        def extract(self, content, now):
            raise RuntimeError("markup changed")

    frontier = Frontier(BASE)
    frontier.enumerate(1, 1)
    fetcher = FakeFetcher()
    scheduler = CrawlScheduler(
        frontier, fetcher, BrokenExtractor(), MemorySink(), backoff=RetryBackoff(base=0)
    )
    summary = scheduler.run()
    assert fetcher.calls == [(1, 0)]
    assert summary.pages_failed == 1
    assert summary.retries == 0


def test_concurrency_is_bounded() -> None:
    fetcher = FakeFetcher(delay=0.02)
    scheduler, _ = make_scheduler(1, 8, fetcher, max_concurrency=3)
    summary = scheduler.run()
    assert summary.pages_done == 8
    assert 1 <= fetcher.max_active <= 3
    assert fetcher.released == 3


def test_workers_never_exceed_page_count() -> None:
    fetcher = FakeFetcher()
    scheduler, _ = make_scheduler(1, 1, fetcher, max_concurrency=8)
    scheduler.run()
    assert fetcher.released == 1


def test_empty_frontier_returns_immediately() -> None:
    fetcher = FakeFetcher()
    scheduler = CrawlScheduler(Frontier(BASE), fetcher, RecordExtractor(), MemorySink())
    summary = scheduler.run()
    assert summary.pages_done == 0
    assert fetcher.calls == []


def test_cancel_stops_dispatching() -> None:
    fetcher = FakeFetcher()
    scheduler, frontier = make_scheduler(1, 5, fetcher, max_concurrency=1)
    fetcher.on_fetch = lambda task: scheduler.cancel()

    summary = scheduler.run()

    assert summary.cancelled
    assert len(fetcher.calls) == 1
    assert summary.pages_done == 1
    assert frontier.counts()["pending"] == 4


def test_failure_handler_errors_do_not_stop_the_crawl() -> None:
    def explode(_notice):
        raise RuntimeError("notifier down")

    fetcher = FakeFetcher(failures={1: -1})
    scheduler, _ = make_scheduler(1, 2, fetcher, retry_ceiling=0, on_failure=explode)
    summary = scheduler.run()
    assert summary.pages_failed == 1
    assert summary.pages_done == 1


def test_history_makes_reruns_idempotent(tmp_path) -> None:
    manager = SQLiteManager()
    history = HistoryStore(manager, tmp_path / "history.db")

    first_sink = MemorySink()
    scheduler, _ = make_scheduler(1, 2, FakeFetcher(), first_sink, history=history)
    first = scheduler.run()

    second_sink = MemorySink()
    scheduler, _ = make_scheduler(1, 2, FakeFetcher(), second_sink, history=history)
    second = scheduler.run()

    assert first.records_written == 4
    assert second.records_written == 0
    assert second.records_skipped == 4
    assert second_sink.records == []
    assert len(history.recent(10)) == 4
    manager.close_all()


def test_question_listed_on_two_pages_is_written_once(tmp_path) -> None:
    shared = card(99, "Shared question")
    fetcher = FakeFetcher(pages={1: page_html(shared, card(11, "One")), 2: page_html(shared)})
    sink = MemorySink()
    manager = SQLiteManager()
    history = HistoryStore(manager, tmp_path / "history.db")
    scheduler, _ = make_scheduler(1, 2, fetcher, sink, history=history)

    summary = scheduler.run()

    links = [record["link"] for record in sink.records]
    assert links.count("https://www.tryexponent.com/questions/99/q-99") == 1
    assert summary.records_written == 2
    assert summary.records_skipped == 1
    manager.close_all()


def test_sqlite_sink_rejects_duplicates_across_runs(tmp_path) -> None:
    path = tmp_path / "questions.db"
    for expected_written in (4, 0):
        sink = SQLiteExporter(path)
        scheduler, _ = make_scheduler(1, 2, FakeFetcher(), sink)
        summary = scheduler.run()
        assert summary.records_written == expected_written
        assert sink.count() == 4
        sink.close()


def test_retry_backoff(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(random, "uniform", lambda _a, _b: 0.0)
    backoff = RetryBackoff(base=0.5, factor=2.0, max_delay=3.0)
    assert [backoff.delay(attempt) for attempt in range(4)] == [0.5, 1.0, 2.0, 3.0]
    assert RetryBackoff(base=0).delay(5) == 0.0


@pytest.mark.parametrize("kwargs", [{"max_concurrency": 0}, {"retry_ceiling": -1}])
def test_invalid_scheduler_arguments(kwargs) -> None:
    with pytest.raises(ValueError):
        CrawlScheduler(Frontier(BASE), FakeFetcher(), RecordExtractor(), MemorySink(), **kwargs)
