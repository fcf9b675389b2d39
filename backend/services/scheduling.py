"""Cancellable repeating ticks for rolling previews."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from itertools import count
from typing import Callable, Protocol

from backend.utils.logger import get_logger


logger = get_logger(__name__)

TickCallback = Callable[[], None]


class CancellationToken:
    """One-shot cancellation flag shared between a schedule and its owner."""

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def wait(self, timeout: float) -> bool:
        """Block up to ``timeout`` seconds; True once cancelled."""
        return self._event.wait(timeout)


class TickScheduler(Protocol):
    def schedule_repeating(
        self,
        interval_seconds: float,
        callback: TickCallback,
    ) -> CancellationToken: ...


class ThreadingTickScheduler:
    """Runs each schedule on its own daemon thread.

    Ticks of one schedule never overlap: the thread waits on the token for
    the interval, runs the callback to completion, then waits again.
    """

    def __init__(self, thread_name_prefix: str = "lottery-roll") -> None:
        self._thread_name_prefix = thread_name_prefix
        self._ids = count(1)

    def schedule_repeating(
        self,
        interval_seconds: float,
        callback: TickCallback,
    ) -> CancellationToken:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        token = CancellationToken()

        def run() -> None:
            while not token.wait(interval_seconds):
                try:
                    callback()
                except Exception:
                    logger.exception("Roll tick failed; cancelling schedule")
                    token.cancel()

        thread = threading.Thread(
            target=run,
            name=f"{self._thread_name_prefix}-{next(self._ids)}",
            daemon=True,
        )
        thread.start()
        return token


@dataclass
class _VirtualTask:
    interval: float
    callback: TickCallback
    token: CancellationToken
    next_due: float
    order: int = field(default=0)


class VirtualTickScheduler:
    """Deterministic scheduler whose clock only moves on ``advance``."""

    def __init__(self) -> None:
        self._now = 0.0
        self._tasks: list[_VirtualTask] = []
        self._order = count()

    @property
    def active_schedules(self) -> int:
        return sum(1 for task in self._tasks if not task.token.cancelled)

    def schedule_repeating(
        self,
        interval_seconds: float,
        callback: TickCallback,
    ) -> CancellationToken:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        token = CancellationToken()
        self._tasks.append(
            _VirtualTask(
                interval=interval_seconds,
                callback=callback,
                token=token,
                next_due=self._now + interval_seconds,
                order=next(self._order),
            )
        )
        return token

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due ticks in time order."""
        if seconds < 0:
            raise ValueError("seconds must be >= 0")
        target = self._now + seconds
        fired = 0
        while True:
            self._tasks = [task for task in self._tasks if not task.token.cancelled]
            due = [task for task in self._tasks if task.next_due <= target + 1e-9]
            if not due:
                break
            task = min(due, key=lambda item: (item.next_due, item.order))
            self._now = task.next_due
            task.next_due += task.interval
            try:
                task.callback()
            except Exception:
                logger.exception("Roll tick failed; cancelling schedule")
                task.token.cancel()
            fired += 1
        self._now = target
        return fired
