# tests/test_request_scheduler.py

from __future__ import annotations

import asyncio
import time

import pytest

from rtm_client.scheduler.request_scheduler import RateLimits, RequestScheduler, SchedulerState

from .fakes import FakeClock


def _recorder(log: list, name: str):
    async def request_fn() -> str:
        log.append(name)
        return name

    return request_fn


@pytest.mark.asyncio
async def test_three_calls_are_spaced_by_min_interval() -> None:
    clock = FakeClock()
    sched = RequestScheduler(RateLimits(min_interval=1.0), clock=clock, sleep=clock.sleep)
    fired: list[str] = []

    futures = [sched.schedule(1, _recorder(fired, n)) for n in ("a", "b", "c")]
    results = await asyncio.gather(*futures)

    assert results == ["a", "b", "c"]
    assert fired == ["a", "b", "c"]
    # first call goes immediately, the others wait 1s and 2s
    assert clock.sleeps == [1.0, 2.0]
    assert sched.next_allowed_time(1) == clock.now + 3.0


@pytest.mark.asyncio
async def test_delay_shrinks_as_time_passes() -> None:
    clock = FakeClock()
    sched = RequestScheduler(RateLimits(min_interval=1.0), clock=clock, sleep=clock.sleep)

    await sched.schedule(1, _recorder([], "a"))
    clock.now += 0.4
    await sched.schedule(1, _recorder([], "b"))
    clock.now += 5.0
    await sched.schedule(1, _recorder([], "c"))

    assert clock.sleeps == [pytest.approx(0.6)]


@pytest.mark.asyncio
async def test_users_do_not_delay_each_other() -> None:
    clock = FakeClock()
    sched = RequestScheduler(RateLimits(min_interval=1.0), clock=clock, sleep=clock.sleep)

    busy = [sched.schedule(1, _recorder([], n)) for n in ("a", "b", "c")]
    other = sched.schedule(2, _recorder([], "u2"))

    assert sched.state(1) is SchedulerState.THROTTLED
    assert sched.state(2) is SchedulerState.IDLE
    assert sched.next_allowed_time(2) == clock.now + 1.0

    await asyncio.gather(*busy, other)
    # only user 1's second and third calls waited
    assert clock.sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_fifo_order_with_real_sleep() -> None:
    sched = RequestScheduler(RateLimits(min_interval=0.05))
    fired: list[tuple[str, float]] = []

    def make(name: str):
        async def request_fn() -> None:
            fired.append((name, time.monotonic()))

        return request_fn

    await asyncio.gather(*(sched.schedule(7, make(str(i))) for i in range(4)))

    assert [n for n, _ in fired] == ["0", "1", "2", "3"]
    gaps = [b - a for (_, a), (_, b) in zip(fired, fired[1:])]
    assert all(g >= 0.045 for g in gaps)


@pytest.mark.asyncio
async def test_request_errors_reach_their_caller_only() -> None:
    clock = FakeClock()
    sched = RequestScheduler(RateLimits(min_interval=1.0), clock=clock, sleep=clock.sleep)

    async def boom() -> None:
        raise ValueError("boom")

    bad = sched.schedule(1, boom)
    good = sched.schedule(1, _recorder([], "ok"))

    with pytest.raises(ValueError, match="boom"):
        await bad
    assert await good == "ok"


@pytest.mark.asyncio
async def test_state_is_throttled_while_waiting() -> None:
    gate = asyncio.Event()

    async def held_sleep(_delay: float) -> None:
        await gate.wait()

    clock = FakeClock()
    sched = RequestScheduler(RateLimits(min_interval=1.0), clock=clock, sleep=held_sleep)

    assert sched.state(1) is SchedulerState.IDLE
    first = sched.schedule(1, _recorder([], "a"))
    second = sched.schedule(1, _recorder([], "b"))
    await first
    assert sched.state(1) is SchedulerState.THROTTLED
    assert sched.state(2) is SchedulerState.IDLE

    gate.set()
    await second
    assert sched.state(1) is SchedulerState.IDLE


@pytest.mark.asyncio
async def test_cancel_before_start_leaves_user_idle() -> None:
    clock = FakeClock()
    sched = RequestScheduler(RateLimits(min_interval=1.0), clock=clock, sleep=clock.sleep)
    fired: list[str] = []

    await sched.schedule(1, _recorder(fired, "a"))
    pending = sched.schedule(1, _recorder(fired, "b"))
    assert sched.state(1) is SchedulerState.THROTTLED

    pending.cancel()
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    assert pending.cancelled()
    assert sched.state(1) is SchedulerState.IDLE
    assert fired == ["a"]


@pytest.mark.asyncio
async def test_cancel_while_sleeping_leaves_user_idle() -> None:
    gate = asyncio.Event()

    async def held_sleep(_delay: float) -> None:
        await gate.wait()

    clock = FakeClock()
    sched = RequestScheduler(RateLimits(min_interval=1.0), clock=clock, sleep=held_sleep)

    await sched.schedule(1, _recorder([], "a"))
    pending = sched.schedule(1, _recorder([], "b"))
    await asyncio.sleep(0)  # now parked in the sleep
    pending.cancel()
    with pytest.raises(asyncio.CancelledError):
        await pending

    assert sched.state(1) is SchedulerState.IDLE


@pytest.mark.asyncio
async def test_burst_limit_adds_cooldown() -> None:
    clock = FakeClock()
    limits = RateLimits(min_interval=0.0, burst_size=3, burst_window=0.333, burst_cooldown=120.0)
    sched = RequestScheduler(limits, clock=clock, sleep=clock.sleep)

    await asyncio.gather(*(sched.schedule(1, _recorder([], str(i))) for i in range(4)))
    assert clock.sleeps == [120.0]

    # once the window has passed, calls are free again
    clock.now += 200.0
    await sched.schedule(1, _recorder([], "late"))
    assert clock.sleeps == [120.0]


def test_bursts_are_off_by_default() -> None:
    assert not RateLimits().bursts_enabled
    assert RateLimits(burst_size=3).bursts_enabled
