"""In-memory rate limiters for login attempts and playground runs.

Both limiters take an injected clock, so tests control time and every
application instance owns its own state. State is lost on restart.
"""
from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass

from mission_control.core.timeutil import Clock, utc_now


@dataclass
class RateLimitDecision:
    allowed: bool
    retry_after_seconds: int | None = None


@dataclass
class _AttemptRecord:
    count: int
    window_start: float
    locked_until: float | None = None


class LoginRateLimiter:
    """Per-client failed-login counter with a lockout.

    ``max_attempts`` failures inside ``window_seconds`` lock the client out
    for ``lockout_seconds``. The map holds at most ``max_entries`` clients;
    stale records are swept when it fills, then the oldest are dropped.

    Args:
        clock: Returns the current aware datetime.
        max_attempts: Failures allowed per window.
        window_seconds: Failure-counting window length.
        lockout_seconds: Lockout duration once the limit is hit.
        max_entries: Upper bound on tracked clients.
    """

    def __init__(
        self,
        clock: Clock = utc_now,
        max_attempts: int = 5,
        window_seconds: int = 15 * 60,
        lockout_seconds: int = 15 * 60,
        max_entries: int = 10_000,
    ) -> None:
        self._clock = clock
        self._max_attempts = max_attempts
        self._window = window_seconds
        self._lockout = lockout_seconds
        self._max_entries = max_entries
        self._attempts: dict[str, _AttemptRecord] = {}

    def _now(self) -> float:
        return self._clock().timestamp()

    def __len__(self) -> int:
        return len(self._attempts)

    def check(self, client: str) -> RateLimitDecision:
        """Whether ``client`` may attempt a login right now."""
        now = self._now()
        record = self._attempts.get(client)
        if record is None:
            return RateLimitDecision(allowed=True)

        if record.locked_until is not None and now < record.locked_until:
            return RateLimitDecision(allowed=False, retry_after_seconds=math.ceil(record.locked_until - now))

        if now - record.window_start > self._window:
            del self._attempts[client]
            return RateLimitDecision(allowed=True)

        if record.count >= self._max_attempts:
            record.locked_until = now + self._lockout
            return RateLimitDecision(allowed=False, retry_after_seconds=self._lockout)

        return RateLimitDecision(allowed=True)

    def record_failure(self, client: str) -> None:
        now = self._now()
        record = self._attempts.get(client)
        if record is None or now - record.window_start > self._window:
            if client not in self._attempts and len(self._attempts) >= self._max_entries:
                self._evict(now)
            self._attempts[client] = _AttemptRecord(count=1, window_start=now)
        else:
            record.count += 1

    def clear(self, client: str) -> None:
        self._attempts.pop(client, None)

    def _evict(self, now: float) -> None:
        for client, record in list(self._attempts.items()):
            locked = record.locked_until is not None and now < record.locked_until
            if not locked and now - record.window_start > self._window:
                del self._attempts[client]

        overflow = len(self._attempts) - self._max_entries + 1
        if overflow > 0:
            oldest = sorted(self._attempts, key=lambda c: self._attempts[c].window_start)[:overflow]
            for client in oldest:
                del self._attempts[client]


class SlidingWindowLimiter:
    """At most ``limit`` acquisitions in any trailing ``window_seconds``."""

    def __init__(self, clock: Clock = utc_now, limit: int = 10, window_seconds: float = 60.0) -> None:
        self._clock = clock
        self._limit = limit
        self._window = window_seconds
        self._stamps: deque[float] = deque()

    def try_acquire(self) -> RateLimitDecision:
        now = self._clock().timestamp()
        while self._stamps and self._stamps[0] < now - self._window:
            self._stamps.popleft()
        if len(self._stamps) >= self._limit:
            retry_after = math.ceil(self._stamps[0] + self._window - now)
            return RateLimitDecision(allowed=False, retry_after_seconds=max(retry_after, 1))
        self._stamps.append(now)
        return RateLimitDecision(allowed=True)
