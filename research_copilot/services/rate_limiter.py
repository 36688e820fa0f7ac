"""Tenant-scoped, fixed-window request limiter.

NOTE: state lives in this process only. Multiple instances behind a load
balancer each keep their own windows, so the effective limit scales with the
instance count. Moving to a shared store (a table with atomic increment, or
Redis) means swapping this class behind the same `check` signature.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable


@dataclass(slots=True)
class _Window:
    count: int
    reset_at_ms: int


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_in_ms: int


def tenant_key(user_id: str, workspace_id: str | None = None) -> str:
    """Scope limits to user+workspace so one tenant cannot starve another."""
    return f"{user_id}:{workspace_id}" if workspace_id else user_id


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class RateLimiter:
    def __init__(
        self,
        limit: int = 15,
        window_ms: int = 60_000,
        clock: Callable[[], int] = _monotonic_ms,
    ):
        self.limit = max(int(limit), 1)
        self.window_ms = max(int(window_ms), 1)
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def check(self, key: str) -> RateLimitDecision:
        """Count one request against `key` and report whether it may proceed."""
        with self._lock:
            now = self._clock()
            window = self._windows.get(key)

            if window is None or now >= window.reset_at_ms:
                self._windows[key] = _Window(count=1, reset_at_ms=now + self.window_ms)
                return RateLimitDecision(
                    allowed=True,
                    remaining=self.limit - 1,
                    reset_in_ms=self.window_ms,
                )

            reset_in_ms = window.reset_at_ms - now
            # Denials leave the counter untouched.
            if window.count >= self.limit:
                return RateLimitDecision(allowed=False, remaining=0, reset_in_ms=reset_in_ms)

            window.count += 1
            return RateLimitDecision(
                allowed=True,
                remaining=self.limit - window.count,
                reset_in_ms=reset_in_ms,
            )

    def evict_expired(self) -> int:
        """Drop windows that have already reset. Intended for a periodic sweeper."""
        with self._lock:
            now = self._clock()
            expired = [k for k, w in self._windows.items() if now >= w.reset_at_ms]
            for key in expired:
                del self._windows[key]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)
