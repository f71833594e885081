# src/rtm_client/scheduler/request_scheduler.py

"""
Per-user request scheduler.

Every outbound call made on behalf of a user goes through schedule(), which:
- reserves the user's next slot immediately (FIFO in scheduling order),
- sleeps until that slot,
- awaits the request exactly once and hands back its result or exception.

Consecutive calls for one user are at least min_interval apart.
Users never delay each other.

Burst mode is opt-in (burst_size > 0): if burst_size calls already fall inside
burst_window before the planned slot, the slot moves out by burst_cooldown.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _noop() -> None:
    pass


@dataclass(frozen=True, slots=True)
class RateLimits:
    """Scheduler configuration, in seconds."""

    min_interval: float = 1.0
    burst_size: int = 0
    burst_window: float = 0.333
    burst_cooldown: float = 120.0

    @property
    def bursts_enabled(self) -> bool:
        return self.burst_size > 0 and self.burst_window > 0


class SchedulerState(StrEnum):
    IDLE = "idle"
    THROTTLED = "throttled"


class RequestScheduler:
    def __init__(
        self,
        limits: RateLimits | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._limits = limits or RateLimits()
        self._clock = clock
        self._sleep = sleep

        self._next_allowed: dict[int, float] = {}
        self._waiting: dict[int, int] = {}
        self._recent: dict[int, deque[float]] = {}

    @property
    def limits(self) -> RateLimits:
        return self._limits

    def _reserve(self, user_id: int) -> float:
        """Claim the user's next slot; returns the delay from now."""
        now = self._clock()
        next_allowed = self._next_allowed.get(user_id, now)
        delay = max(0.0, next_allowed - now)

        if self._limits.bursts_enabled:
            fire_at = now + delay
            recent = self._recent.setdefault(user_id, deque())
            while recent and recent[0] <= fire_at - self._limits.burst_window:
                recent.popleft()
            if len(recent) >= self._limits.burst_size:
                delay += self._limits.burst_cooldown
                logger.warning(
                    "Burst limit hit user=%s; cooling down %.1fs",
                    user_id,
                    self._limits.burst_cooldown,
                )
            recent.append(now + delay)

        self._next_allowed[user_id] = now + delay + self._limits.min_interval
        return delay

    async def _fire(
        self,
        user_id: int,
        delay: float,
        request_fn: Callable[[], Awaitable[T]],
        release: Callable[[], None],
    ) -> T:
        if delay > 0:
            try:
                logger.debug("Throttling user=%s for %.3fs", user_id, delay)
                await self._sleep(delay)
            finally:
                release()
        return await request_fn()

    def _waiter(self, user_id: int) -> Callable[[], None]:
        """Count one waiting call; the returned release() uncounts it once."""
        self._waiting[user_id] = self._waiting.get(user_id, 0) + 1
        released = False

        def release() -> None:
            nonlocal released
            if not released:
                released = True
                self._waiting[user_id] -= 1

        return release

    def schedule(self, user_id: Any, request_fn: Callable[[], Awaitable[T]]) -> asyncio.Future[T]:
        """
        Queue request_fn for user_id and return a future for its result.

        Must be called from a running event loop. The slot is reserved before
        this returns, so calls for one user fire in the order they were scheduled.
        """
        uid = int(user_id)
        delay = self._reserve(uid)
        release = self._waiter(uid) if delay > 0 else _noop
        future = asyncio.ensure_future(self._fire(uid, delay, request_fn, release))
        # a future cancelled before its first step never runs _fire
        future.add_done_callback(lambda _f: release())
        return future

    def state(self, user_id: Any) -> SchedulerState:
        if self._waiting.get(int(user_id), 0) > 0:
            return SchedulerState.THROTTLED
        return SchedulerState.IDLE

    def next_allowed_time(self, user_id: Any) -> float | None:
        return self._next_allowed.get(int(user_id))
