"""Per-caller fixed-window rate limiting with Redis primary and in-memory fallback."""
from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol

import redis

from .config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "travel-search:rl:"


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int = 0


@dataclass
class RateLimitEntry:
    count: int
    reset_at: float


class RateLimiter(Protocol):
    def hit(self, key: str) -> RateLimitDecision: ...


class InMemoryRateLimiter:
    """Process-local limiter; expired windows are swept so the table stays bounded."""

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        *,
        max_keys: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window = window_seconds
        self.max_keys = max_keys
        self._clock = clock
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()
        self._next_sweep = clock() + window_seconds

    def __len__(self) -> int:
        return len(self._entries)

    def _sweep(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if entry.reset_at <= now]
        for key in expired:
            del self._entries[key]
        # Still full: drop the windows closest to expiry.
        overflow = len(self._entries) - self.max_keys + 1
        if overflow > 0:
            oldest = sorted(self._entries, key=lambda key: self._entries[key].reset_at)[:overflow]
            for key in oldest:
                del self._entries[key]
        self._next_sweep = now + self.window
        if expired:
            logger.debug("rate limiter swept %s expired keys", len(expired))

    def hit(self, key: str) -> RateLimitDecision:
        with self._lock:
            now = self._clock()
            if now >= self._next_sweep or (key not in self._entries and len(self._entries) >= self.max_keys):
                self._sweep(now)

            entry = self._entries.get(key)
            if entry is None or entry.reset_at <= now:
                entry = RateLimitEntry(count=0, reset_at=now + self.window)
                self._entries[key] = entry

            if entry.count >= self.limit:
                return RateLimitDecision(
                    allowed=False,
                    remaining=0,
                    retry_after=max(1, math.ceil(entry.reset_at - now)),
                )
            entry.count += 1
            return RateLimitDecision(allowed=True, remaining=self.limit - entry.count)


@dataclass
class RedisRateLimiter:
    """Fixed window shared across workers via ``INCR`` + ``EXPIRE``.

    A request whose Redis round trip fails is counted by the process-local
    ``fallback`` limiter instead.
    """

    client: redis.Redis
    limit: int
    window_seconds: int
    fallback: Optional[InMemoryRateLimiter] = None

    def __post_init__(self) -> None:
        if self.fallback is None:
            self.fallback = InMemoryRateLimiter(self.limit, self.window_seconds)

    def hit(self, key: str) -> RateLimitDecision:
        redis_key = f"{KEY_PREFIX}{key}"
        try:
            pipe = self.client.pipeline()
            pipe.incr(redis_key)
            pipe.ttl(redis_key)
            count, ttl = pipe.execute()
            if ttl is None or ttl < 0:
                self.client.expire(redis_key, self.window_seconds)
                ttl = self.window_seconds
        except redis.RedisError as exc:
            logger.warning("Redis rate limit failed, using in-memory window: %s", exc)
            return self.fallback.hit(key)
        if count > self.limit:
            return RateLimitDecision(allowed=False, remaining=0, retry_after=max(1, int(ttl)))
        return RateLimitDecision(allowed=True, remaining=self.limit - count)


_limiter: RateLimiter | None = None


def _memory_limiter() -> InMemoryRateLimiter:
    return InMemoryRateLimiter(
        settings.rate_limit_requests,
        settings.rate_limit_window_seconds,
        max_keys=settings.rate_limit_max_keys,
    )


def get_rate_limiter() -> RateLimiter:
    global _limiter
    if _limiter is not None:
        return _limiter
    if settings.rate_limit_backend != "redis":
        _limiter = _memory_limiter()
        return _limiter
    try:
        client = redis.Redis(host=settings.redis_host, port=settings.redis_port, decode_responses=True)
        client.ping()
        logger.info("Using Redis rate limiter at %s:%s", settings.redis_host, settings.redis_port)
        _limiter = RedisRateLimiter(
            client,
            settings.rate_limit_requests,
            settings.rate_limit_window_seconds,
            fallback=_memory_limiter(),
        )
    except redis.RedisError:
        logger.warning("Redis not available, using in-memory rate limiter")
        _limiter = _memory_limiter()
    return _limiter


def backend_name(limiter: Optional[RateLimiter]) -> str:
    return "redis" if isinstance(limiter, RedisRateLimiter) else "memory"
