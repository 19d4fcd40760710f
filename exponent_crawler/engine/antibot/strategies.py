"""Concrete anti-bot strategies used by the chain."""

from __future__ import annotations

import random

from ...config import CrawlConfig
from ...infra import ProxyPool, UserAgentPool
from .chain import AntiBotChain, AntiBotContext, BaseStrategy, RequestDirective, Strategy

VIEWPORTS = [(1920, 1080), (1680, 1050), (1536, 864), (1440, 900), (1366, 768), (1280, 800)]
LOCALES = ["en-US", "en-GB", "en-CA", "en-AU"]
TIMEZONES = [
    "America/New_York",
    "America/Chicago",
    "America/Los_Angeles",
    "Europe/London",
    "Europe/Berlin",
]


class ProxyStrategy(BaseStrategy):
    """Rotate proxies from the pool when enabled."""

    def __init__(self, pool: ProxyPool | None) -> None:
        self.pool = pool

    def before_request(self, context: AntiBotContext, directive: RequestDirective) -> None:
        if context.config.use_proxy and self.pool and not self.pool.empty:
            directive.proxy = self.pool.get_proxy()

    def after_success(self, context: AntiBotContext, directive: RequestDirective) -> None:
        if self.pool:
            self.pool.report_success(directive.proxy)

    def after_failure(
        self, context: AntiBotContext, directive: RequestDirective, error: Exception | None
    ) -> None:
        if self.pool:
            self.pool.report_failure(directive.proxy)


class UserAgentStrategy(BaseStrategy):
    """Pick a user agent for the task."""

    def __init__(self, pool: UserAgentPool | None) -> None:
        self.pool = pool

    def before_request(self, context: AntiBotContext, directive: RequestDirective) -> None:
        if self.pool:
            directive.user_agent = self.pool.get()


class FingerprintStrategy(BaseStrategy):
    """Randomise viewport, locale and timezone per browsing context."""

    def before_request(self, context: AntiBotContext, directive: RequestDirective) -> None:
        directive.viewport = random.choice(VIEWPORTS)
        directive.locale = random.choice(LOCALES)
        directive.timezone_id = random.choice(TIMEZONES)
        language = directive.locale.split("-")[0]
        directive.headers["Accept-Language"] = f"{directive.locale},{language};q=0.9"


class BrowserHeadersStrategy(BaseStrategy):
    """Add the headers a desktop browser sends on top-level navigation."""

    def before_request(self, context: AntiBotContext, directive: RequestDirective) -> None:
        directive.headers.setdefault(
            "Accept",
            "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
        )
        directive.headers.setdefault("Accept-Language", "en-US,en;q=0.9")
        directive.headers.setdefault("Upgrade-Insecure-Requests", "1")


def build_chain(
    config: CrawlConfig,
    proxy_pool: ProxyPool | None,
    ua_pool: UserAgentPool | None,
) -> AntiBotChain:
    """Utility to build a ready-to-use chain from config."""

    strategies: list[Strategy] = [
        ProxyStrategy(proxy_pool),
        UserAgentStrategy(ua_pool or UserAgentPool(config.user_agent_list)),
        FingerprintStrategy(),
        BrowserHeadersStrategy(),
    ]
    return AntiBotChain(strategies)


__all__ = [
    "BrowserHeadersStrategy",
    "FingerprintStrategy",
    "ProxyStrategy",
    "UserAgentStrategy",
    "build_chain",
]
