"""Roll/stop state machine for one lottery session."""

from __future__ import annotations

from enum import Enum
from threading import RLock
from typing import Callable, Optional, Sequence

from backend.domain.models import Assignment, Entry, clone_entries
from backend.services.allocation_service import allocate
from backend.services.scheduling import CancellationToken, ThreadingTickScheduler, TickScheduler
from backend.services.shuffler import Shuffler
from backend.utils.logger import get_logger


logger = get_logger(__name__)

DEFAULT_ROLL_INTERVAL_SECONDS = 0.05

UpdateCallback = Callable[[list[Assignment], bool], None]
Allocator = Callable[[Sequence[Entry], Shuffler], list[Assignment]]


class SessionState(str, Enum):
    IDLE = "IDLE"
    LOADED = "LOADED"
    ROLLING = "ROLLING"
    COMMITTED = "COMMITTED"


class RollSession:
    """Holds an immutable roster, an animated preview and the latest draw.

    ``start_rolling`` begins periodic cosmetic previews; ``stop_rolling``
    cancels them and commits exactly one real allocation. Both are no-ops
    when called in the wrong state.
    """

    def __init__(
        self,
        *,
        shuffler: Optional[Shuffler] = None,
        scheduler: Optional[TickScheduler] = None,
        roll_interval_seconds: float = DEFAULT_ROLL_INTERVAL_SECONDS,
        allocator: Allocator = allocate,
    ) -> None:
        if roll_interval_seconds <= 0:
            raise ValueError("roll_interval_seconds must be > 0")
        self._shuffler = shuffler or Shuffler()
        self._scheduler = scheduler or ThreadingTickScheduler()
        self._roll_interval_seconds = roll_interval_seconds
        self._allocator = allocator
        self._lock = RLock()
        self._state = SessionState.IDLE
        self._original: tuple[Entry, ...] = ()
        self._current: list[Assignment] = []
        self._roll_token: CancellationToken | None = None

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def is_rolling(self) -> bool:
        return self.state is SessionState.ROLLING

    @property
    def original_entries(self) -> tuple[Entry, ...]:
        with self._lock:
            return self._original

    def initialize(self, entries: Sequence[Entry]) -> None:
        with self._lock:
            self._cancel_roll()
            self._original = clone_entries(entries)
            self._current = [entry.as_assignment() for entry in self._original]
            self._state = SessionState.LOADED
        logger.info("Roll session initialized | entries=%s", len(self._original))

    def start_rolling(self, on_update: UpdateCallback) -> bool:
        """Begin preview ticks; returns False when nothing was started."""
        with self._lock:
            if self._state is SessionState.ROLLING:
                return False
            if self._state is SessionState.IDLE:
                logger.warning("start_rolling ignored: no roster loaded")
                return False

            token_holder: list[CancellationToken] = []

            def tick() -> None:
                with self._lock:
                    if not token_holder or token_holder[0].cancelled:
                        return
                    preview = self._build_preview()
                    on_update(preview, True)

            self._state = SessionState.ROLLING
            token = self._scheduler.schedule_repeating(self._roll_interval_seconds, tick)
            token_holder.append(token)
            self._roll_token = token
            return True

    def stop_rolling(self, on_update: UpdateCallback) -> list[Assignment]:
        with self._lock:
            if self._state is not SessionState.ROLLING:
                return list(self._current)

            self._cancel_roll()
            result = self._allocator(self._original, self._shuffler)
            self._current = list(result)
            self._state = SessionState.COMMITTED
            on_update(list(self._current), False)
            logger.info(
                "Roll session committed | entries=%s | assigned=%s",
                len(self._original),
                len(self._current),
            )
            return list(self._current)

    def get_current_data(self) -> list[Assignment]:
        with self._lock:
            return list(self._current)

    def close(self) -> None:
        """Cancel any active roll without committing."""
        with self._lock:
            self._cancel_roll()
            if self._state is SessionState.ROLLING:
                self._state = SessionState.LOADED

    def _cancel_roll(self) -> None:
        if self._roll_token is not None:
            self._roll_token.cancel()
            self._roll_token = None

    def _build_preview(self) -> list[Assignment]:
        rows: list[Assignment] = []
        for _ in self._original:
            person = self._shuffler.pick(self._original)
            room = self._shuffler.pick(self._original)
            rows.append(
                Assignment(
                    employee_id=person.employee_id,
                    gender=person.gender,
                    room_slot=room.room_slot,
                )
            )
        return rows
