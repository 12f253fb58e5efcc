"""In-memory rate limiter for the public registration endpoints.

Fixed-window counter keyed by client IP and category. Process-local: a
multi-instance deployment needs a shared store behind the same interface.

Usage pattern:
    from app.utils.ratelimiter import rate_limiter
    allowed, meta = await rate_limiter.check_and_increment(
        key=client_ip,
        category="registration",
        limit=3,
        window_seconds=60,
    )

Return semantics:
    check_and_increment -> (allowed: bool, meta: dict)
        meta = {
            'limit': int,
            'remaining': int,
            'reset_epoch': int,
            'retry_after': int,   # seconds until the window resets
            'count': int,
            'category': str,
        }
"""
from __future__ import annotations

import time
import asyncio
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

@dataclass
class Bucket:
    window_start: int
    count: int = 0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

class InMemoryRateLimiter:
    def __init__(self, purge_interval_seconds: int = 300):
        # (key, category) -> Bucket
        self._buckets: Dict[Tuple[str, str], Bucket] = {}
        self.purge_interval_seconds = purge_interval_seconds
        self._last_purge: Optional[int] = None

    def _now(self) -> int:
        return int(time.time())

    def reset(self) -> None:
        self._buckets.clear()
        self._last_purge = None

    def _purge_expired(self, now: int, window_seconds: int) -> None:
        if self._last_purge is None:
            self._last_purge = now
            return
        if now - self._last_purge < self.purge_interval_seconds:
            return
        self._last_purge = now
        expired = [k for k, b in self._buckets.items() if b.window_start + window_seconds <= now]
        for k in expired:
            del self._buckets[k]

    async def check_and_increment(self, key: str, category: str, limit: int, window_seconds: int) -> Tuple[bool, dict]:
        now = self._now()
        window_start = now - (now % window_seconds)
        self._purge_expired(now, window_seconds)

        # setdefault is atomic within the single event loop thread
        bucket = self._buckets.setdefault((key, category), Bucket(window_start=window_start))

        async with bucket.lock:
            if bucket.window_start != window_start:
                bucket.window_start = window_start
                bucket.count = 0
            bucket.count += 1
            allowed = bucket.count <= limit
            reset_epoch = bucket.window_start + window_seconds
            meta = {
                "limit": limit,
                "remaining": max(0, limit - bucket.count) if allowed else 0,
                "reset_epoch": reset_epoch,
                "retry_after": max(1, reset_epoch - now),
                "count": bucket.count,
                "category": category,
            }
            return allowed, meta

def client_ip(headers: Mapping[str, str], peer_host: Optional[str]) -> str:
    """Resolve the caller IP: first x-forwarded-for hop, then x-real-ip, then the socket peer."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return peer_host or "unknown"

# Singleton instance used application-wide
rate_limiter = InMemoryRateLimiter()

__all__ = ["rate_limiter", "InMemoryRateLimiter", "client_ip"]
