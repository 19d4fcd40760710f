"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    DEFAULT_BASE_URL,
    DEFAULT_USER_AGENTS,
    CrawlConfig,
    FetcherKind,
    OutputFormat,
)

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "CrawlConfig",
    "DEFAULT_BASE_URL",
    "DEFAULT_USER_AGENTS",
    "FetcherKind",
    "OutputFormat",
]
