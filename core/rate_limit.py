"""Fixed-window rate limits for OTP requests.

Redis holds the counters when REDIS_URL is set so every worker shares them;
otherwise (or while Redis is unreachable) each process keeps its own sliding
window in memory.
"""

from __future__ import annotations

import logging
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from threading import Lock
from typing import Deque, Dict, Optional

import redis  # type: ignore

from config import REDIS_URL

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    allowed: bool
    retry_after_seconds: int


ALLOWED = RateLimitResult(allowed=True, retry_after_seconds=0)


class RateLimiter:
    def __init__(self, redis_url: Optional[str] = REDIS_URL):
        self._redis_url = redis_url
        self._redis: Optional[redis.Redis] = None
        self._lock = Lock()
        self._windows: Dict[str, Deque[float]] = defaultdict(deque)

    def _client(self) -> Optional[redis.Redis]:
        if not self._redis_url:
            return None
        if self._redis is None:
            self._redis = redis.Redis.from_url(
                self._redis_url, socket_connect_timeout=0.5, socket_timeout=0.5
            )
        return self._redis

    def _allow_redis(self, client: redis.Redis, key: str, limit: int, window: int) -> RateLimitResult:
        pipe = client.pipeline()
        pipe.incr(key, 1)
        pipe.ttl(key)
        count, ttl = pipe.execute()
        if ttl == -1:
            client.expire(key, window)
            ttl = window
        if int(count) <= limit:
            return ALLOWED
        return RateLimitResult(allowed=False, retry_after_seconds=max(1, int(ttl if ttl and ttl > 0 else window)))

    def _allow_memory(self, key: str, limit: int, window: int) -> RateLimitResult:
        now = time.time()
        with self._lock:
            hits = self._windows[key]
            while hits and hits[0] <= now - window:
                hits.popleft()
            if len(hits) < limit:
                hits.append(now)
                return ALLOWED
            return RateLimitResult(allowed=False, retry_after_seconds=max(1, int(hits[0] + window - now)))

    def allow(self, *, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        """Count one hit against `key`; a non-positive limit or window disables the check."""
        limit, window = int(limit), int(window_seconds)
        if limit <= 0 or window <= 0:
            return ALLOWED

        client = self._client()
        if client is not None:
            try:
                return self._allow_redis(client, key, limit, window)
            except redis.RedisError as exc:
                logger.warning(f"Rate limit store unavailable for {key}, counting in memory: {exc}")
        return self._allow_memory(key, limit, window)

    def reset(self):
        with self._lock:
            self._windows.clear()


default_rate_limiter = RateLimiter()
