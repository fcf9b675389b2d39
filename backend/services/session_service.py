"""Registry and workflow orchestration for concurrent lottery sessions."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from threading import RLock
from typing import Callable, Optional, Sequence
from uuid import uuid4

from backend.domain.constraints import LotteryConfig, validate_lottery_config
from backend.domain.models import AllocationSummary, Assignment, Entry
from backend.repository.result_exporter import export_to_excel, export_to_pdf
from backend.repository.roster_reader import RosterParseResult, read_roster
from backend.services.allocation_service import summarize_allocation
from backend.services.roll_session import RollSession, SessionState, UpdateCallback
from backend.services.scheduling import ThreadingTickScheduler, TickScheduler
from backend.services.shuffler import RandomSource, Shuffler, build_random_source
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

SESSION_SEED_BOUND = 2**32


class LotteryValidationError(Exception):
    """Raised when session inputs are unusable."""


class SessionNotFoundError(Exception):
    """Raised when a session id is unknown."""


class SessionLimitExceededError(Exception):
    """Raised when the registry is full."""


class ExportFormat(str, Enum):
    XLSX = "xlsx"
    PDF = "pdf"


@dataclass(frozen=True)
class ExportedFile:
    filename: str
    media_type: str
    content: bytes


@dataclass
class _SessionHandle:
    session_id: str
    session: RollSession
    created_at: datetime
    latest_frame: list[Assignment] = field(default_factory=list)
    frame_count: int = 0
    last_summary: Optional[AllocationSummary] = None


@dataclass(frozen=True)
class SessionSnapshot:
    session_id: str
    state: SessionState
    is_rolling: bool
    total_entries: int
    frame_count: int
    rows: list[Assignment]
    summary: Optional[AllocationSummary]
    created_at: datetime


def validate_entries(entries: Sequence[Entry]) -> None:
    if not entries:
        raise LotteryValidationError("at least one entry is required")
    seen_ids: set[str] = set()
    seen_slots: set[str] = set()
    for entry in entries:
        if not entry.employee_id.strip():
            raise LotteryValidationError("employee_id must be non-empty")
        if not entry.room_slot.strip():
            raise LotteryValidationError("room_slot must be non-empty")
        if entry.employee_id in seen_ids:
            raise LotteryValidationError(f"duplicate employee_id {entry.employee_id!r}")
        if entry.room_slot in seen_slots:
            raise LotteryValidationError(f"duplicate room_slot {entry.room_slot!r}")
        seen_ids.add(entry.employee_id)
        seen_slots.add(entry.room_slot)


class LotterySessionService:
    """Owns independent roll sessions keyed by generated ids."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        scheduler: Optional[TickScheduler] = None,
        random_source_factory: Optional[Callable[[], RandomSource]] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._config = LotteryConfig(
            roll_interval_ms=self._settings.roll_interval_ms,
            max_sessions=self._settings.max_sessions,
            max_roster_rows=self._settings.max_roster_rows,
            pdf_rows_per_page=self._settings.pdf_rows_per_page,
            random_seed=self._settings.random_seed,
        )
        validate_lottery_config(self._config)
        self._scheduler = scheduler or ThreadingTickScheduler()
        self._random_source_factory = random_source_factory or self._next_random_source
        # A fixed seed drives a master generator; each session draws its own seed from it.
        self._seed_sequence = (
            random.Random(self._config.random_seed)
            if self._config.random_seed is not None
            else None
        )
        self._lock = RLock()
        self._sessions: dict[str, _SessionHandle] = {}

    @property
    def session_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def parse_roster(self, content: bytes, filename: str) -> RosterParseResult:
        return read_roster(content, filename, max_rows=self._config.max_roster_rows)

    def create_session(self, entries: Sequence[Entry]) -> SessionSnapshot:
        validate_entries(entries)
        self._check_row_limit(entries)
        session = RollSession(
            shuffler=Shuffler(self._random_source_factory()),
            scheduler=self._scheduler,
            roll_interval_seconds=self._settings.roll_interval_seconds,
        )
        session.initialize(entries)
        handle = _SessionHandle(
            session_id=uuid4().hex,
            session=session,
            created_at=datetime.now(timezone.utc),
            latest_frame=session.get_current_data(),
        )
        with self._lock:
            if len(self._sessions) >= self._config.max_sessions:
                raise SessionLimitExceededError(
                    f"session limit of {self._config.max_sessions} reached"
                )
            self._sessions[handle.session_id] = handle
        logger.info(
            "Lottery session created | session_id=%s | entries=%s",
            handle.session_id,
            len(entries),
        )
        return self._snapshot(handle)

    def reload_session(self, session_id: str, entries: Sequence[Entry]) -> SessionSnapshot:
        validate_entries(entries)
        self._check_row_limit(entries)
        handle = self._get_handle(session_id)
        handle.session.initialize(entries)
        current = handle.session.get_current_data()
        with self._lock:
            handle.latest_frame = current
            handle.frame_count = 0
            handle.last_summary = None
        return self._snapshot(handle)

    def get_snapshot(self, session_id: str) -> SessionSnapshot:
        return self._snapshot(self._get_handle(session_id))

    def start_rolling(self, session_id: str) -> SessionSnapshot:
        handle = self._get_handle(session_id)
        started = handle.session.start_rolling(self._frame_recorder(handle))
        if started:
            logger.info("Lottery rolling started | session_id=%s", session_id)
        return self._snapshot(handle)

    def stop_rolling(self, session_id: str) -> SessionSnapshot:
        handle = self._get_handle(session_id)
        was_rolling = handle.session.is_rolling
        result = handle.session.stop_rolling(self._frame_recorder(handle))
        if was_rolling:
            summary = summarize_allocation(handle.session.original_entries, result)
            with self._lock:
                handle.last_summary = summary
            logger.info(
                "Lottery committed | session_id=%s | assigned=%s | total=%s",
                session_id,
                summary.assigned_count,
                summary.total_entries,
            )
            if not summary.is_complete:
                logger.warning(
                    "Lottery left entries out | session_id=%s | unfilled_slots=%s | unplaced=%s",
                    session_id,
                    len(summary.unfilled_room_slots),
                    len(summary.unplaced_employee_ids),
                )
        return self._snapshot(handle)

    def delete_session(self, session_id: str) -> None:
        with self._lock:
            handle = self._sessions.pop(session_id, None)
        if handle is None:
            raise SessionNotFoundError(f"unknown session_id {session_id!r}")
        handle.session.close()
        logger.info("Lottery session deleted | session_id=%s", session_id)

    def export_result(self, session_id: str, export_format: ExportFormat) -> ExportedFile:
        handle = self._get_handle(session_id)
        if handle.session.state is not SessionState.COMMITTED:
            raise LotteryValidationError("export is only available after a committed draw")
        rows = handle.session.get_current_data()
        stamp = datetime.now().strftime("%Y-%m-%d")
        base_name = f"{self._settings.export_sheet_name}_{stamp}"
        if export_format is ExportFormat.PDF:
            return ExportedFile(
                filename=f"{base_name}.pdf",
                media_type="application/pdf",
                content=export_to_pdf(
                    rows,
                    self._settings.export_title,
                    rows_per_page=self._config.pdf_rows_per_page,
                ),
            )
        return ExportedFile(
            filename=f"{base_name}.xlsx",
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            content=export_to_excel(rows, self._settings.export_sheet_name),
        )

    def close(self) -> None:
        """Cancel every active roll; used on application shutdown."""
        with self._lock:
            handles = list(self._sessions.values())
        for handle in handles:
            handle.session.close()

    def _next_random_source(self) -> RandomSource:
        if self._seed_sequence is None:
            return build_random_source(None)
        with self._lock:
            session_seed = self._seed_sequence.randrange(SESSION_SEED_BOUND)
        return build_random_source(session_seed)

    def _check_row_limit(self, entries: Sequence[Entry]) -> None:
        if len(entries) > self._config.max_roster_rows:
            raise LotteryValidationError(
                f"entries exceed the limit of {self._config.max_roster_rows} rows"
            )

    def _get_handle(self, session_id: str) -> _SessionHandle:
        with self._lock:
            handle = self._sessions.get(session_id)
        if handle is None:
            raise SessionNotFoundError(f"unknown session_id {session_id!r}")
        return handle

    def _frame_recorder(self, handle: _SessionHandle) -> UpdateCallback:
        def record(rows: list[Assignment], is_rolling: bool) -> None:
            with self._lock:
                handle.latest_frame = rows
                if is_rolling:
                    handle.frame_count += 1

        return record

    def _snapshot(self, handle: _SessionHandle) -> SessionSnapshot:
        # Session calls stay outside the registry lock: ticks take the locks
        # in session -> registry order.
        state = handle.session.state
        current = handle.session.get_current_data()
        total_entries = len(handle.session.original_entries)
        with self._lock:
            rows = list(handle.latest_frame) if state is SessionState.ROLLING else current
            return SessionSnapshot(
                session_id=handle.session_id,
                state=state,
                is_rolling=state is SessionState.ROLLING,
                total_entries=total_entries,
                frame_count=handle.frame_count,
                rows=rows,
                summary=handle.last_summary,
                created_at=handle.created_at,
            )
