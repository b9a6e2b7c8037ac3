"""Expiring key-value stores backing the admin attempt counters.

Persistence strategy:
  - If REDIS_URL is set  -> Redis, shared by every worker.
  - Otherwise            -> process-local memory (development and tests).

Stores never raise. Every call returns a ``StoreResult`` that is either
``ok`` (with ``value=None`` for a missing key) or ``unavailable``; callers
decide what an unavailable backend means for them.
"""
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import redis

from funnel.infrastructure.settings import redis_url

log = logging.getLogger("funnel.attempt_store")


@dataclass(frozen=True)
class StoreResult:
    ok: bool
    value: Optional[dict] = None
    reason: str = ""

    @classmethod
    def found(cls, value: Optional[dict] = None) -> "StoreResult":
        return cls(ok=True, value=value)

    @classmethod
    def unavailable(cls, reason: str) -> "StoreResult":
        return cls(ok=False, reason=reason)


class MemoryAttemptStore:
    """Dict-backed store with per-key expiry deadlines."""

    backend = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[dict, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> StoreResult:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return StoreResult.found()
            value, expires_at = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return StoreResult.found()
            return StoreResult.found(dict(value))

    def put(self, key: str, value: dict, expiry_seconds: int) -> StoreResult:
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            self._entries[key] = (dict(value), now + expiry_seconds)
        return StoreResult.found(dict(value))

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]
        for k in expired:
            del self._entries[k]

    def delete(self, key: str) -> StoreResult:
        with self._lock:
            self._entries.pop(key, None)
        return StoreResult.found()


class RedisAttemptStore:
    """Redis-backed store. Values are JSON objects written with ``SET ... EX``."""

    backend = "redis"

    def __init__(self, client: redis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisAttemptStore":
        client = redis.Redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        return cls(client)

    def get(self, key: str) -> StoreResult:
        try:
            raw = self._client.get(key)
        except (redis.RedisError, OSError) as exc:
            log.warning("Attempt store read failed for %s: %s", key, exc)
            return StoreResult.unavailable(f"{type(exc).__name__}: {exc}")
        if raw is None:
            return StoreResult.found()
        try:
            value = json.loads(raw)
        except ValueError:
            log.warning("Attempt store holds a malformed value for %s", key)
            return StoreResult.unavailable("malformed value")
        if not isinstance(value, dict):
            return StoreResult.unavailable("malformed value")
        return StoreResult.found(value)

    def put(self, key: str, value: dict, expiry_seconds: int) -> StoreResult:
        try:
            self._client.set(key, json.dumps(value), ex=expiry_seconds)
        except (redis.RedisError, OSError) as exc:
            log.warning("Attempt store write failed for %s: %s", key, exc)
            return StoreResult.unavailable(f"{type(exc).__name__}: {exc}")
        return StoreResult.found(value)

    def delete(self, key: str) -> StoreResult:
        try:
            self._client.delete(key)
        except (redis.RedisError, OSError) as exc:
            log.warning("Attempt store delete failed for %s: %s", key, exc)
            return StoreResult.unavailable(f"{type(exc).__name__}: {exc}")
        return StoreResult.found()


def build_attempt_store():
    """Return the Redis store when REDIS_URL is configured, memory otherwise."""
    url = redis_url()
    if url:
        try:
            store = RedisAttemptStore.from_url(url)
        except (redis.RedisError, ValueError) as exc:
            log.error("Invalid REDIS_URL, falling back to memory store: %s", exc)
            return MemoryAttemptStore()
        log.info("Attempt store: redis")
        return store
    log.info("Attempt store: memory (REDIS_URL not set)")
    return MemoryAttemptStore()
