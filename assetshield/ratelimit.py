# assetshield/ratelimit.py
# Attempt limiting for credential endpoints. Injected into the app so the
# backing store can change without touching the login code.
import math
import time

from limits import RateLimitItemPerSecond
from limits.storage import storage_from_string
from limits.strategies import FixedWindowRateLimiter


class RateLimiter:
    """Interface: count an attempt for ``key`` and say whether it is allowed."""

    def check_and_increment(self, key: str) -> bool:
        raise NotImplementedError

    def reset(self, key: str) -> None:
        raise NotImplementedError

    def retry_after(self, key: str) -> int:
        return 0


class InMemoryRateLimiter(RateLimiter):
    """
    Fixed-window attempt counter on the ``limits`` storage backends.

    The default ``memory://`` store is per process and expires idle keys;
    pass e.g. ``redis://host:6379`` to share counts between workers.
    """

    def __init__(self, max_attempts: int = 5, window_seconds: int = 15 * 60, storage_uri: str = "memory://") -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.window_seconds = int(window_seconds)
        self._item = RateLimitItemPerSecond(max_attempts, self.window_seconds)
        self._limiter = FixedWindowRateLimiter(storage_from_string(storage_uri))

    def check_and_increment(self, key: str) -> bool:
        return self._limiter.hit(self._item, key)

    def reset(self, key: str) -> None:
        self._limiter.clear(self._item, key)

    def retry_after(self, key: str) -> int:
        reset_at, remaining = self._limiter.get_window_stats(self._item, key)
        if remaining > 0:
            return 0
        return max(1, math.ceil(reset_at - time.time()))
