"""Soft per-process cap on recommendation requests per calendar day.

Counters live in memory and vanish on restart; this guards the LLM bill,
not correctness.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Protocol


@dataclass(slots=True, frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_at: datetime | None = None


class CounterStore(Protocol):
    def increment(self, day_key: str) -> tuple[int, datetime]:
        """Atomically bump the counter for ``day_key`` and return (count, reset_at)."""


class InMemoryCounterStore:
    """Keeps only the current day's counter; a new day key wipes the old one."""

    def __init__(self, *, window: timedelta = timedelta(days=1)) -> None:
        self._window = window
        self._lock = threading.Lock()
        self._counters: dict[str, tuple[int, datetime]] = {}

    def increment(self, day_key: str) -> tuple[int, datetime]:
        with self._lock:
            if day_key not in self._counters:
                self._counters.clear()
                self._counters[day_key] = (0, datetime.now(timezone.utc) + self._window)
            count, reset_at = self._counters[day_key]
            count += 1
            self._counters[day_key] = (count, reset_at)
            return count, reset_at


class DailyRateLimiter:
    def __init__(
        self,
        limit: int,
        *,
        store: CounterStore | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.limit = limit
        self._store = store or InMemoryCounterStore()
        self._today = today

    def try_acquire(self) -> RateLimitDecision:
        count, reset_at = self._store.increment(self._today().isoformat())
        if count > self.limit:
            return RateLimitDecision(allowed=False, remaining=0, reset_at=reset_at)
        return RateLimitDecision(allowed=True, remaining=self.limit - count, reset_at=reset_at)
