"""Bounded-concurrency crawl driver: frontier → fetcher → extractor → sink."""

from __future__ import annotations

import random
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass, field
from datetime import datetime
from threading import Event, Lock
from typing import TYPE_CHECKING, Callable

import structlog

from .dedup import HistoryStore
from .exporter import BaseExporter
from .fetcher import FetchTimeout, PageFetcher
from .frontier import Frontier, PageTask
from .parser import Record, RecordExtractor

if TYPE_CHECKING:
    from ..ui import ProgressReporter


@dataclass(slots=True)
class FailureNotice:
    """Emitted once per page that exhausted its retries."""

    page_number: int
    url: str
    reason: str
    attempts: int


@dataclass
class CrawlSummary:
    pages_done: int = 0
    pages_failed: int = 0
    pages_empty: int = 0
    records_written: int = 0
    records_skipped: int = 0
    retries: int = 0
    cancelled: bool = False
    failures: list[FailureNotice] = field(default_factory=list)

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(slots=True)
class RetryBackoff:
    """Exponential backoff with proportional jitter; ``base=0`` disables waiting."""

    base: float = 1.0
    factor: float = 2.0
    max_delay: float = 30.0
    jitter: float = 0.25

    def delay(self, attempt: int) -> float:
        if self.base <= 0:
            return 0.0
        value = min(self.max_delay, self.base * (self.factor ** attempt))
        return value + random.uniform(0, value * self.jitter)


class CrawlScheduler:
    """Run page tasks on a fixed pool of worker threads.

    Each worker pulls a task, fetches it, extracts records and appends them to
    the sink. Fetch failures are retried up to ``retry_ceiling`` extra times;
    the task stays in flight while it waits for its backoff, so two attempts
    for the same page never overlap. Extraction is never retried: an empty
    page is a valid outcome.
    """

    def __init__(
        self,
        frontier: Frontier,
        fetcher: PageFetcher,
        extractor: RecordExtractor,
        sink: BaseExporter,
        *,
        max_concurrency: int = 3,
        retry_ceiling: int = 2,
        backoff: RetryBackoff | None = None,
        history: HistoryStore | None = None,
        on_failure: Callable[[FailureNotice], None] | None = None,
        progress: "ProgressReporter | None" = None,
        clock: Callable[[], datetime] | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        if retry_ceiling < 0:
            raise ValueError("retry_ceiling must be >= 0")
        self.frontier = frontier
        self.fetcher = fetcher
        self.extractor = extractor
        self.sink = sink
        self.max_concurrency = max_concurrency
        self.retry_ceiling = retry_ceiling
        self.backoff = backoff or RetryBackoff()
        self.history = history
        self.on_failure = on_failure
        self.progress = progress
        self._clock = clock or datetime.now
        self.logger = logger or structlog.get_logger("exponent_crawler.scheduler")
        self.summary = CrawlSummary()
        self._cancelled = Event()
        self._summary_lock = Lock()
        self._export_lock = Lock()

    # ------------------------------------------------------------------
    def run(self) -> CrawlSummary:
        total = len(self.frontier)
        if not self.frontier.has_work:
            self.logger.info("crawl_finished", pages=0, **self._counters())
            return self.summary
        self.logger.info(
            "crawl_started",
            pages=total,
            concurrency=self.max_concurrency,
            retry_ceiling=self.retry_ceiling,
        )
        if self.progress is not None:
            self.progress.start(total)
        workers = min(self.max_concurrency, total)
        try:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="crawler") as executor:
                futures = [executor.submit(self._worker) for _ in range(workers)]
                try:
                    for future in as_completed(futures):
                        future.result()
                except KeyboardInterrupt:
                    self.cancel()
        finally:
            if self.progress is not None:
                self.progress.close()
            with self._export_lock:
                self.sink.flush()
        self.summary.cancelled = self._cancelled.is_set()
        self.logger.info("crawl_finished", pages=total, **self._counters())
        return self.summary

    def cancel(self) -> None:
        """Stop dispatching; in-flight tasks finish within their fetch timeout."""

        if not self._cancelled.is_set():
            self.logger.warning("crawl_cancelled")
        self._cancelled.set()
        self.frontier.close()

    # ------------------------------------------------------------------
    def _worker(self) -> None:
        try:
            while not self._cancelled.is_set():
                task = self.frontier.next_task()
                if task is None:
                    break
                self._process(task)
        finally:
            self.fetcher.release_worker()

    def _process(self, task: PageTask) -> None:
        self.logger.info("page_visit", page=task.page_number, url=task.url, attempt=task.attempt)
        try:
            content = self.fetcher.fetch(task)
        except Exception as exc:  # noqa: BLE001
            self._handle_fetch_failure(task, exc)
            return

        try:
            records = self.extractor.extract(content, now=self._clock())
            written, skipped = self._emit(task, records)
        except Exception as exc:  # noqa: BLE001
            self.logger.error(
                "page_processing_error", page=task.page_number, url=task.url, error=str(exc)
            )
            self._fail(task, f"processing failed: {exc}")
            return

        self.frontier.mark_done(task)
        with self._summary_lock:
            self.summary.pages_done += 1
            self.summary.records_written += written
            self.summary.records_skipped += skipped
            if not records:
                self.summary.pages_empty += 1
        if not records:
            self.logger.warning("page_empty", page=task.page_number, url=task.url)
        self.logger.info(
            "page_saved",
            page=task.page_number,
            records=written,
            skipped=skipped,
        )
        if self.progress is not None:
            self.progress.advance(success=True, empty=not records, current_url=task.url)

    def _emit(self, task: PageTask, records: list[Record]) -> tuple[int, int]:
        written = skipped = 0
        with self._export_lock:
            for record in records:
                if self.history is not None and self.history.has_link(record.link):
                    skipped += 1
                    continue
                self.logger.debug(
                    "record_extracted", page=task.page_number, question=record.question, link=record.link
                )
                if self.sink.export(record.to_payload()):
                    written += 1
                else:
                    skipped += 1
                if self.history is not None:
                    self.history.remember(record.link, task.page_number, record.question)
        return written, skipped

    def _handle_fetch_failure(self, task: PageTask, exc: Exception) -> None:
        reason = f"{'timeout' if isinstance(exc, FetchTimeout) else 'fetch error'}: {exc}"
        if task.attempt >= self.retry_ceiling:
            self._fail(task, reason)
            return
        delay = self.backoff.delay(task.attempt)
        self.logger.warning(
            "page_retry",
            page=task.page_number,
            url=task.url,
            attempt=task.attempt,
            delay=round(delay, 2),
            error=str(exc),
        )
        with self._summary_lock:
            self.summary.retries += 1
        if self._cancelled.wait(delay):
            self.frontier.mark_failed(task)
            self.logger.warning("page_abandoned", page=task.page_number, url=task.url)
            return
        self.frontier.requeue(task)

    def _fail(self, task: PageTask, reason: str) -> None:
        self.frontier.mark_failed(task)
        notice = FailureNotice(
            page_number=task.page_number,
            url=task.url,
            reason=reason,
            attempts=task.attempt + 1,
        )
        with self._summary_lock:
            self.summary.pages_failed += 1
            self.summary.failures.append(notice)
        self.logger.error(
            "page_failed",
            page=task.page_number,
            url=task.url,
            attempts=notice.attempts,
            reason=reason,
        )
        if self.progress is not None:
            self.progress.advance(failed=True, current_url=task.url)
        if self.on_failure is not None:
            try:
                self.on_failure(notice)
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("failure_handler_error", page=task.page_number, error=str(exc))

    def _counters(self) -> dict[str, int]:
        with self._summary_lock:
            return {
                "done": self.summary.pages_done,
                "failed": self.summary.pages_failed,
                "empty": self.summary.pages_empty,
                "records": self.summary.records_written,
                "skipped": self.summary.records_skipped,
                "retries": self.summary.retries,
            }


__all__ = ["CrawlScheduler", "CrawlSummary", "FailureNotice", "RetryBackoff"]
