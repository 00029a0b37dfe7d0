from __future__ import annotations

import asyncio
from dataclasses import dataclass

import pytest

from dont_pick_it.timer import TimerDriver


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def _driver(clock: FakeClock, fired: list[float], interval_s: float = 0.1) -> TimerDriver:
    return TimerDriver(clock=clock, on_expire=lambda: fired.append(clock.now()), interval_s=interval_s)


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        TimerDriver(clock=FakeClock(), on_expire=lambda: None, interval_s=0.0)


def test_display_is_ceiling_of_remaining_time() -> None:
    clock = FakeClock(t=10.0)
    fired: list[float] = []
    timer = _driver(clock, fired)

    timer.arm(started_at_s=10.0, limit_s=15.0)
    assert timer.displayed_remaining_s() == 15

    clock.advance(0.2)
    assert timer.tick() == 15
    clock.t = 14.5
    assert timer.tick() == 11
    clock.t = 24.5
    assert timer.tick() == 1
    assert fired == []


def test_expiry_fires_exactly_once() -> None:
    clock = FakeClock()
    fired: list[float] = []
    timer = _driver(clock, fired)
    timer.arm(started_at_s=0.0, limit_s=5.0)

    clock.advance(5.0)
    assert timer.tick() == 0
    assert timer.tick() is None
    clock.advance(3.0)
    timer.tick()

    assert fired == [5.0]
    assert not timer.armed
    assert timer.remaining_s() is None


def test_disarm_prevents_expiry() -> None:
    clock = FakeClock()
    fired: list[float] = []
    timer = _driver(clock, fired)
    timer.arm(started_at_s=0.0, limit_s=1.0)

    timer.disarm()
    clock.advance(10.0)

    assert timer.tick() is None
    assert fired == []


def test_rearm_uses_new_anchor() -> None:
    clock = FakeClock()
    fired: list[float] = []
    timer = _driver(clock, fired)
    timer.arm(started_at_s=0.0, limit_s=5.0)

    clock.advance(4.0)
    timer.arm(started_at_s=clock.now(), limit_s=5.0)
    clock.advance(4.0)
    timer.tick()

    assert fired == []
    assert timer.remaining_s() == pytest.approx(1.0)


def test_background_task_fires_on_running_loop() -> None:
    clock = FakeClock()
    fired: list[float] = []

    async def scenario() -> TimerDriver:
        timer = _driver(clock, fired, interval_s=0.005)
        timer.arm(started_at_s=0.0, limit_s=1.0)
        await asyncio.sleep(0.02)
        assert fired == []
        clock.advance(1.0)
        await asyncio.sleep(0.05)
        return timer

    timer = asyncio.run(scenario())

    assert fired == [1.0]
    assert not timer.armed


def test_disarmed_background_task_never_fires() -> None:
    clock = FakeClock()
    fired: list[float] = []

    async def scenario() -> None:
        timer = _driver(clock, fired, interval_s=0.005)
        timer.arm(started_at_s=0.0, limit_s=1.0)
        timer.disarm()
        clock.advance(2.0)
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert fired == []
