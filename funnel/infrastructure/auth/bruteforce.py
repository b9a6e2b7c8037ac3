"""Brute-force protection for admin authentication.

Tracks failed admin authorizations per client IP in an injected expiring
key-value store and provides the blocking decision used by the admin gate.

Every failure rewrites the counter with a fresh WINDOW_SECONDS expiry, so
the window restarts for the whole count on each new failure rather than
being anchored to the first one.

All operations fail open: an unavailable store reads as zero attempts and
failed writes are logged and dropped.
"""
import logging
from urllib.parse import quote

from funnel.infrastructure.cache.attempt_store import StoreResult

# Configurable limits
MAX_ATTEMPTS = 5
WINDOW_SECONDS = 300  # 5 minutes

KEY_PREFIX = "rate-limit:admin:"

log = logging.getLogger("funnel.bruteforce")


def attempt_key(ip: str) -> str:
    return KEY_PREFIX + quote(ip, safe="")


class AttemptTracker:
    """Owns every read and write of the per-IP attempt counters."""

    def __init__(self, store, max_attempts: int = MAX_ATTEMPTS, window_seconds: int = WINDOW_SECONDS):
        self._store = store
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds

    @property
    def backend(self) -> str:
        return getattr(self._store, "backend", type(self._store).__name__)

    def get_count(self, ip: str) -> int:
        result = self._call("get", attempt_key(ip))
        if not result.ok:
            log.warning("Attempt count unavailable for %s, assuming 0: %s", ip, result.reason)
            return 0
        return _count_of(result.value)

    def increment(self, ip: str) -> None:
        count = self.get_count(ip) + 1
        result = self._call("put", attempt_key(ip), {"count": count}, self.window_seconds)
        if not result.ok:
            log.warning("Failed attempt for %s not recorded: %s", ip, result.reason)
            return
        log.info("Failed admin auth from %s (%d/%d)", ip, count, self.max_attempts)

    def reset(self, ip: str) -> None:
        result = self._call("delete", attempt_key(ip))
        if not result.ok:
            log.warning("Attempt counter for %s not cleared: %s", ip, result.reason)

    def is_blocked(self, ip: str) -> bool:
        return self.get_count(ip) >= self.max_attempts

    def _call(self, op: str, *args) -> StoreResult:
        # Stores report failures as results; anything escaping a third-party
        # store still must not reach the request.
        try:
            return getattr(self._store, op)(*args)
        except Exception as exc:
            return StoreResult.unavailable(f"{type(exc).__name__}: {exc}")


def _count_of(value) -> int:
    if not isinstance(value, dict):
        return 0
    count = value.get("count")
    if isinstance(count, bool) or not isinstance(count, int):
        return 0
    return max(0, count)
