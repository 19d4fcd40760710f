"""Crawl pipeline: frontier → scheduler → fetcher → extractor → sink."""

from .dates import normalize_date
from .dedup import HistoryStore
from .fetcher import (
    FetchError,
    FetchTimeout,
    HttpFetcher,
    PageFetcher,
    RawPageContent,
    RenderingFetcher,
    build_fetcher,
)
from .frontier import Frontier, InvalidRange, PageTask, TaskStatus
from .parser import Record, RecordExtractor
from .scheduler import CrawlScheduler, CrawlSummary, FailureNotice, RetryBackoff

__all__ = [
    "CrawlScheduler",
    "CrawlSummary",
    "FailureNotice",
    "FetchError",
    "FetchTimeout",
    "Frontier",
    "HistoryStore",
    "HttpFetcher",
    "InvalidRange",
    "PageFetcher",
    "PageTask",
    "RawPageContent",
    "Record",
    "RecordExtractor",
    "RenderingFetcher",
    "RetryBackoff",
    "TaskStatus",
    "build_fetcher",
    "normalize_date",
]
