"""Strategy chain shaping each outgoing page request."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from ...config import CrawlConfig


@dataclass
class RequestDirective:
    """Per-task request options produced by the chain."""

    headers: dict[str, str] = field(default_factory=dict)
    proxy: str | None = None
    user_agent: str | None = None
    viewport: tuple[int, int] = (1920, 1080)
    locale: str = "en-US"
    timezone_id: str = "America/New_York"


@dataclass
class AntiBotContext:
    """State shared by all strategies while a single task is fetched."""

    config: CrawlConfig
    url: str = ""
    page_number: int = 0
    last_exception: Exception | None = None


class Strategy(Protocol):
    """Strategy behaviour expected by the chain."""

    def before_request(self, context: AntiBotContext, directive: RequestDirective) -> None:
        """Mutate directive ahead of a fetch."""

    def after_success(self, context: AntiBotContext, directive: RequestDirective) -> None:
        """Observe a successful fetch."""

    def after_failure(
        self,
        context: AntiBotContext,
        directive: RequestDirective,
        error: Exception | None,
    ) -> None:
        """React when a fetch fails."""


class BaseStrategy:
    """No-op hooks; concrete strategies override only what they use."""

    def before_request(self, context: AntiBotContext, directive: RequestDirective) -> None:
        return

    def after_success(self, context: AntiBotContext, directive: RequestDirective) -> None:
        return

    def after_failure(
        self, context: AntiBotContext, directive: RequestDirective, error: Exception | None
    ) -> None:
        return


class AntiBotChain:
    """Compose strategies and expose a simple API for the fetchers."""

    def __init__(self, strategies: Optional[List[Strategy]] = None) -> None:
        self.strategies = strategies or []

    def add_strategy(self, strategy: Strategy) -> None:
        self.strategies.append(strategy)

    # ------------------------------------------------------------------
    def prepare(self, context: AntiBotContext) -> RequestDirective:
        directive = RequestDirective()
        for strategy in self.strategies:
            strategy.before_request(context, directive)
        if directive.user_agent:
            directive.headers.setdefault("User-Agent", directive.user_agent)
        return directive

    def notify_success(self, context: AntiBotContext, directive: RequestDirective) -> None:
        context.last_exception = None
        for strategy in self.strategies:
            strategy.after_success(context, directive)

    def notify_failure(
        self,
        context: AntiBotContext,
        directive: RequestDirective,
        error: Exception | None,
    ) -> None:
        context.last_exception = error
        for strategy in self.strategies:
            strategy.after_failure(context, directive, error)


__all__ = ["AntiBotChain", "AntiBotContext", "BaseStrategy", "RequestDirective", "Strategy"]
