"""Per-task request shaping: proxies, user agents, browser fingerprints."""

from .chain import AntiBotChain, AntiBotContext, RequestDirective
from .strategies import build_chain

__all__ = ["AntiBotChain", "AntiBotContext", "RequestDirective", "build_chain"]
