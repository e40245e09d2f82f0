"""Small in-process cache with per-key expiry.

Only the public giveaway listing goes through it. Balances and anything a
ledger decision depends on are always read under a row lock instead.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from threading import Lock
from typing import Any, Callable, Optional, Tuple, TypeVar

T = TypeVar("T")


class TTLCache:
    def __init__(self, *, max_keys: int = 1_000):
        self._max_keys = max_keys
        self._lock = Lock()
        # key -> (expires_at, value), in insertion order
        self._items: "OrderedDict[str, Tuple[float, Any]]" = OrderedDict()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            expires_at, value = item
            if expires_at <= time.monotonic():
                del self._items[key]
                return None
            return value

    def set(self, key: str, value: Any, *, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            return
        with self._lock:
            self._items.pop(key, None)
            while len(self._items) >= self._max_keys:
                self._items.popitem(last=False)
            self._items[key] = (time.monotonic() + float(ttl_seconds), value)

    def get_or_set(self, key: str, *, ttl_seconds: float, factory: Callable[[], T]) -> T:
        cached = self.get(key)
        if cached is not None:
            return cached
        value = factory()
        self.set(key, value, ttl_seconds=ttl_seconds)
        return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


default_cache = TTLCache()
