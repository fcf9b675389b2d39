from __future__ import annotations

import threading
import time

import pytest

from backend.services.scheduling import (
    CancellationToken,
    ThreadingTickScheduler,
    VirtualTickScheduler,
)


def test_cancellation_token_is_one_shot():
    token = CancellationToken()
    assert not token.cancelled
    assert token.wait(0) is False

    token.cancel()

    assert token.cancelled
    assert token.wait(0) is True


def test_virtual_scheduler_fires_on_interval_boundaries():
    scheduler = VirtualTickScheduler()
    ticks: list[int] = []
    scheduler.schedule_repeating(0.05, lambda: ticks.append(1))

    assert scheduler.advance(0.04) == 0
    assert scheduler.advance(0.01) == 1
    assert scheduler.advance(0.2) == 4
    assert len(ticks) == 5


def test_virtual_scheduler_stops_after_cancel():
    scheduler = VirtualTickScheduler()
    ticks: list[int] = []
    token = scheduler.schedule_repeating(0.05, lambda: ticks.append(1))

    scheduler.advance(0.1)
    token.cancel()
    scheduler.advance(1.0)

    assert len(ticks) == 2
    assert scheduler.active_schedules == 0


def test_virtual_scheduler_cancel_from_inside_tick():
    scheduler = VirtualTickScheduler()
    ticks: list[int] = []
    holder: list[CancellationToken] = []

    def tick() -> None:
        ticks.append(1)
        holder[0].cancel()

    holder.append(scheduler.schedule_repeating(0.05, tick))
    scheduler.advance(1.0)

    assert ticks == [1]


def test_virtual_scheduler_failing_tick_cancels_schedule():
    scheduler = VirtualTickScheduler()

    def explode() -> None:
        raise RuntimeError("boom")

    token = scheduler.schedule_repeating(0.05, explode)
    assert scheduler.advance(1.0) == 1
    assert token.cancelled


def test_schedulers_reject_non_positive_interval():
    with pytest.raises(ValueError):
        VirtualTickScheduler().schedule_repeating(0, lambda: None)
    with pytest.raises(ValueError):
        ThreadingTickScheduler().schedule_repeating(-1, lambda: None)
    with pytest.raises(ValueError):
        VirtualTickScheduler().advance(-0.1)


def test_threading_scheduler_ticks_until_cancelled():
    scheduler = ThreadingTickScheduler()
    lock = threading.Lock()
    ticks: list[int] = []

    def tick() -> None:
        with lock:
            ticks.append(1)

    token = scheduler.schedule_repeating(0.01, tick)
    deadline = time.monotonic() + 2.0
    while time.monotonic() < deadline:
        with lock:
            if len(ticks) >= 3:
                break
        time.sleep(0.01)
    token.cancel()
    time.sleep(0.05)
    with lock:
        settled = len(ticks)
    time.sleep(0.1)

    with lock:
        assert settled >= 3
        assert len(ticks) == settled
