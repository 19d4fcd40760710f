"""Infra layer utilities (history storage, proxy and UA pools)."""

from .proxy_pool import ProxyPool
from .storage import SQLiteManager
from .ua_pool import UserAgentPool

__all__ = ["ProxyPool", "SQLiteManager", "UserAgentPool"]
