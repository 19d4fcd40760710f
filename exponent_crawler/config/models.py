"""Pydantic models describing a crawl run."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_BASE_URL = "https://www.tryexponent.com/questions"

DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) "
    "Version/17.4 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36",
]


class FetcherKind(str, Enum):
    """Available fetch strategies."""

    RENDER = "render"
    HTTP = "http"


class OutputFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    SQLITE = "sqlite"


class CrawlConfig(BaseModel):
    """Every option recognised by a crawl run."""

    base_url: str = DEFAULT_BASE_URL
    start_page: int = 1
    end_page: int = 203
    use_proxy: bool = False
    proxies: list[str] = Field(default_factory=list)
    proxy_file: Path | None = None
    user_agent_list: list[str] | Path = Field(default_factory=lambda: list(DEFAULT_USER_AGENTS))
    max_concurrency: int = Field(default=3, ge=1, le=16)
    scroll_delay_ms: int = Field(default=200, ge=0)
    scroll_step_px: int = Field(default=800, gt=0)
    retry_ceiling: int = Field(default=2, ge=0)
    retry_backoff: float = Field(default=1.0, ge=0)
    fetch_timeout: float = Field(default=20.0, gt=0)
    fetcher: FetcherKind = FetcherKind.RENDER
    headless: bool = True
    output_format: OutputFormat = OutputFormat.JSON
    outputs_dir: Path = Field(default=Path("data/outputs"))
    enable_incremental: bool = True
    history_path: Path = Field(default=Path("data/history/questions.db"))

    @field_validator("outputs_dir", "history_path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("proxies", mode="before")
    @classmethod
    def _coerce_proxies(cls, value: Any) -> list[str]:
        if value in (None, ""):
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return [str(item).strip() for item in value if str(item).strip()]

    @model_validator(mode="after")
    def _apply_user_agents(self) -> "CrawlConfig":
        if isinstance(self.user_agent_list, Path):
            if not self.user_agent_list.exists():
                raise ValueError(f"UA file not found: {self.user_agent_list}")
            content = self.user_agent_list.read_text(encoding="utf-8").splitlines()
            self.user_agent_list = [line.strip() for line in content if line.strip()]
        return self


__all__ = ["CrawlConfig", "DEFAULT_BASE_URL", "DEFAULT_USER_AGENTS", "FetcherKind", "OutputFormat"]
