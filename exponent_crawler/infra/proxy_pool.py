"""Round-robin proxy pool shared by all fetch workers."""

from __future__ import annotations

import random
from pathlib import Path
from threading import Lock
from typing import Dict, Iterable, List, Optional


class ProxyPool:
    """Circular proxy provider that retires proxies after repeated failures."""

    def __init__(
        self,
        proxies: Iterable[str] | None = None,
        file_path: Path | None = None,
        max_failures: int = 3,
    ) -> None:
        self._lock = Lock()
        self._index = 0
        self._proxies: List[str] = []
        self._failures: Dict[str, int] = {}
        self.max_failures = max_failures
        if proxies:
            self._proxies.extend(p.strip() for p in proxies if p.strip())
        if file_path and file_path.exists():
            lines = file_path.read_text(encoding="utf-8").splitlines()
            self._proxies.extend(
                line.strip() for line in lines if line.strip() and not line.startswith("#")
            )
        random.shuffle(self._proxies)

    @property
    def empty(self) -> bool:
        return not self._proxies

    def __len__(self) -> int:
        return len(self._proxies)

    def get_proxy(self) -> Optional[str]:
        with self._lock:
            if not self._proxies:
                return None
            proxy = self._proxies[self._index % len(self._proxies)]
            self._index += 1
            return proxy

    def report_success(self, proxy: str | None) -> None:
        if not proxy:
            return
        with self._lock:
            self._failures.pop(proxy, None)

    def report_failure(self, proxy: str | None) -> None:
        """Count a failure; the proxy leaves the rotation at ``max_failures``."""

        if not proxy:
            return
        with self._lock:
            count = self._failures.get(proxy, 0) + 1
            self._failures[proxy] = count
            # Never retire the last proxy; an empty pool would silently go direct.
            if count >= self.max_failures and proxy in self._proxies and len(self._proxies) > 1:
                self._proxies.remove(proxy)
                self._failures.pop(proxy, None)


__all__ = ["ProxyPool"]
