"""Per-source fixed-window request budget."""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict

from ..config import RateLimitPolicy


@dataclass(slots=True)
class RateLimitState:
    count: int
    window_reset_at: float


class RateLimiter:
    """Track request budgets per source id.

    Windows are fixed rather than sliding, so a burst of up to twice the budget
    can straddle a window boundary. State lives for the lifetime of the
    limiter and only resets when a window expires.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or time.monotonic
        self._states: Dict[str, RateLimitState] = {}
        self._locks: Dict[str, Lock] = {}
        self._registry_lock = Lock()

    def _lock_for(self, source_id: str) -> Lock:
        with self._registry_lock:
            lock = self._locks.get(source_id)
            if lock is None:
                lock = self._locks[source_id] = Lock()
            return lock

    def try_acquire(self, source_id: str, policy: RateLimitPolicy) -> bool:
        """Consume one unit of budget; return ``False`` when the window is exhausted."""

        with self._lock_for(source_id):
            now = self._clock()
            state = self._states.get(source_id)
            if state is None or now >= state.window_reset_at:
                self._states[source_id] = RateLimitState(
                    count=1, window_reset_at=now + policy.window_seconds
                )
                return True
            if state.count < policy.requests_per_window:
                state.count += 1
                return True
            return False

    def state(self, source_id: str) -> RateLimitState | None:
        with self._lock_for(source_id):
            state = self._states.get(source_id)
            if state is None:
                return None
            return RateLimitState(state.count, state.window_reset_at)

    def remaining(self, source_id: str, policy: RateLimitPolicy) -> int:
        with self._lock_for(source_id):
            state = self._states.get(source_id)
            if state is None or self._clock() >= state.window_reset_at:
                return policy.requests_per_window
            return max(policy.requests_per_window - state.count, 0)


__all__ = ["RateLimitState", "RateLimiter"]
