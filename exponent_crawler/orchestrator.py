"""Wire configuration into a ready-to-run crawl pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import structlog

from .config import ConfigRepository, CrawlConfig, OutputFormat
from .engine import (
    CrawlScheduler,
    CrawlSummary,
    FailureNotice,
    Frontier,
    HistoryStore,
    PageFetcher,
    RecordExtractor,
    RetryBackoff,
    build_fetcher,
)
from .engine.exporter import BaseExporter, FileExporter, SQLiteExporter
from .infra import ProxyPool, SQLiteManager, UserAgentPool
from .logging_conf import run_logger
from .ui import ProgressReporter

OUTPUT_NAME = "questions"

FetcherFactory = Callable[..., PageFetcher]


class Orchestrator:
    """Build frontier, fetcher, sink and scheduler from a :class:`CrawlConfig`."""

    def __init__(
        self,
        config: CrawlConfig,
        repository: ConfigRepository,
        storage: SQLiteManager,
        proxy_pool: ProxyPool | None = None,
        ua_pool: UserAgentPool | None = None,
        fetcher_factory: FetcherFactory = build_fetcher,
    ) -> None:
        self.config = config
        self.repository = repository
        self.storage = storage
        self.proxy_pool = proxy_pool
        self.ua_pool = ua_pool
        self.fetcher_factory = fetcher_factory
        self.logger = structlog.get_logger("exponent_crawler.orchestrator")

    def run(
        self,
        progress_enabled: bool = False,
        on_failure: Callable[[FailureNotice], None] | None = None,
        clock: Callable[[], datetime] | None = None,
        run_tag: str | None = None,
    ) -> CrawlSummary:
        config = self.config
        # Range errors surface here, before any browser or client exists.
        frontier = Frontier(config.base_url)
        tasks = frontier.enumerate(config.start_page, config.end_page)

        run_tag = run_tag or datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        with run_logger(run_tag) as log:
            for task in tasks:
                log.debug("page_queued", page=task.page_number, url=task.url)
            if config.use_proxy and (self.proxy_pool is None or self.proxy_pool.empty):
                log.warning("proxy_pool_empty", detail="use_proxy is set but no proxies are configured")

            fetcher = self.fetcher_factory(config, self.proxy_pool, self.ua_pool, logger=log)
            sink = self._create_sink(run_tag)
            history = self.history_store() if config.enable_incremental else None
            scheduler = CrawlScheduler(
                frontier,
                fetcher,
                RecordExtractor(),
                sink,
                max_concurrency=config.max_concurrency,
                retry_ceiling=config.retry_ceiling,
                backoff=RetryBackoff(base=config.retry_backoff),
                history=history,
                on_failure=on_failure,
                progress=ProgressReporter(enabled=progress_enabled),
                clock=clock,
                logger=log.bind(component="scheduler"),
            )
            try:
                return scheduler.run()
            finally:
                sink.close()
                fetcher.close()
                self.storage.close_all()

    # ------------------------------------------------------------------
    def history_path(self) -> Path:
        return self.repository.resolve(self.config.history_path)

    def history_store(self) -> HistoryStore:
        return HistoryStore(self.storage, self.history_path())

    def view_history(self, limit: int = 20) -> list[tuple[str, int, str]]:
        try:
            return self.history_store().recent(limit)
        finally:
            self.storage.close_all()

    def reset_history(self) -> None:
        try:
            self.history_store().reset()
        finally:
            self.storage.close_all()

    def _create_sink(self, run_tag: str) -> BaseExporter:
        base_dir = self.repository.resolve(self.config.outputs_dir)
        base_dir.mkdir(parents=True, exist_ok=True)
        fmt = self.config.output_format
        if fmt in {OutputFormat.JSON, OutputFormat.CSV}:
            return FileExporter(base_dir, OUTPUT_NAME, fmt.value, run_tag=run_tag)
        if fmt is OutputFormat.SQLITE:
            return SQLiteExporter(base_dir / f"{OUTPUT_NAME}.db")
        raise ValueError(f"Unsupported output format: {fmt}")


__all__ = ["Orchestrator", "OUTPUT_NAME"]
