"""Provider pacing tests."""

from __future__ import annotations

import pytest

from wagerlab.data.pacing import RateLimiter


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def time(self) -> float:
        return self.now

    async def sleep(self, duration: float) -> None:
        self.sleeps.append(duration)
        self.now += duration


@pytest.mark.asyncio
async def test_rate_limiter_waits_when_limit_exceeded() -> None:
    clock = FakeClock()
    limiter = RateLimiter(max_events=2, window_seconds=10, time_fn=clock.time, sleep_fn=clock.sleep)
    await limiter.wait_for_slot()
    clock.now += 1
    await limiter.wait_for_slot()
    clock.now += 1
    await limiter.wait_for_slot()
    assert pytest.approx(clock.sleeps[-1], rel=0.01) == 8.0


@pytest.mark.asyncio
async def test_rate_limiter_disabled_with_zero_budget() -> None:
    clock = FakeClock()
    limiter = RateLimiter(max_events=0, time_fn=clock.time, sleep_fn=clock.sleep)
    for _ in range(5):
        await limiter.wait_for_slot()
    assert clock.sleeps == []
