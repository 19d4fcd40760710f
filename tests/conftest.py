"""Shared fixtures for the crawler test suite."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Callable

import pytest

from exponent_crawler.config import ConfigLocator, ConfigRepository, CrawlConfig

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 6, 15, 12, 0, 0)


@pytest.fixture
def crawl_config(tmp_path: Path) -> Callable[..., CrawlConfig]:
    """Build a config that keeps every output under ``tmp_path``."""

    def factory(**overrides: Any) -> CrawlConfig:
        payload: dict[str, Any] = {
            "start_page": 1,
            "end_page": 3,
            "max_concurrency": 2,
            "retry_ceiling": 2,
            "retry_backoff": 0,
            "fetcher": "http",
            "outputs_dir": str(tmp_path / "outputs"),
            "history_path": str(tmp_path / "history" / "questions.db"),
        }
        payload.update(overrides)
        return CrawlConfig.model_validate(payload)

    return factory


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigRepository:
    monkeypatch.setenv("EXPONENT_CRAWLER_HOME", str(tmp_path))
    return ConfigRepository(ConfigLocator())


@pytest.fixture
def listing_html() -> str:
    return (FIXTURES_DIR / "questions_page.html").read_text(encoding="utf-8")
