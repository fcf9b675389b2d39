"""HTTP controller layer for lottery sessions."""

from __future__ import annotations

from datetime import datetime
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status
from pydantic import BaseModel, Field, field_validator

from backend.controllers.dependencies import get_session_service
from backend.domain.models import AllocationSummary, Entry, Gender
from backend.repository.roster_reader import RosterValidationError
from backend.services.roll_session import SessionState
from backend.services.session_service import (
    ExportFormat,
    LotterySessionService,
    LotteryValidationError,
    SessionLimitExceededError,
    SessionNotFoundError,
    SessionSnapshot,
)
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/sessions", tags=["lottery"])


class EntryPayload(BaseModel):
    """Roster row validated before entering the service layer."""

    employee_id: str = Field(min_length=1)
    gender: Gender
    room_slot: str = Field(min_length=1)

    @field_validator("employee_id", "room_slot", mode="before")
    @classmethod
    def strip_text(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("gender", mode="before")
    @classmethod
    def normalize_gender(cls, value: object) -> Gender:
        gender = Gender.parse(value)
        if gender is None:
            raise ValueError(f"unrecognized gender {value!r}")
        return gender

    def to_entry(self) -> Entry:
        return Entry(
            employee_id=self.employee_id,
            gender=self.gender,
            room_slot=self.room_slot,
        )


class CreateSessionRequest(BaseModel):
    entries: list[EntryPayload] = Field(min_length=1)

    def to_entries(self) -> list[Entry]:
        return [item.to_entry() for item in self.entries]


class AssignmentRow(BaseModel):
    employee_id: str
    gender: Gender
    room_slot: str


class AllocationSummaryResponse(BaseModel):
    total_entries: int = Field(ge=0)
    assigned_count: int = Field(ge=0)
    unfilled_room_slots: list[str]
    unplaced_employee_ids: list[str]

    @classmethod
    def from_summary(cls, summary: AllocationSummary) -> "AllocationSummaryResponse":
        return cls(
            total_entries=summary.total_entries,
            assigned_count=summary.assigned_count,
            unfilled_room_slots=list(summary.unfilled_room_slots),
            unplaced_employee_ids=list(summary.unplaced_employee_ids),
        )


class SessionResponse(BaseModel):
    session_id: str
    state: SessionState
    is_rolling: bool
    total_entries: int = Field(ge=0)
    frame_count: int = Field(ge=0)
    rows: list[AssignmentRow]
    summary: AllocationSummaryResponse | None = None
    created_at: datetime
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def from_snapshot(
        cls,
        snapshot: SessionSnapshot,
        warnings: list[str] | None = None,
    ) -> "SessionResponse":
        return cls(
            session_id=snapshot.session_id,
            state=snapshot.state,
            is_rolling=snapshot.is_rolling,
            total_entries=snapshot.total_entries,
            frame_count=snapshot.frame_count,
            rows=[
                AssignmentRow(
                    employee_id=row.employee_id,
                    gender=row.gender,
                    room_slot=row.room_slot,
                )
                for row in snapshot.rows
            ],
            summary=(
                AllocationSummaryResponse.from_summary(snapshot.summary)
                if snapshot.summary is not None
                else None
            ),
            created_at=snapshot.created_at,
            warnings=list(warnings or []),
        )


def _not_found(exc: SessionNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


def _bad_request(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    payload: CreateSessionRequest,
    service: LotterySessionService = Depends(get_session_service),
) -> SessionResponse:
    try:
        snapshot = service.create_session(payload.to_entries())
        return SessionResponse.from_snapshot(snapshot)
    except LotteryValidationError as exc:
        raise _bad_request(exc) from exc
    except SessionLimitExceededError as exc:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected session creation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create lottery session",
        ) from exc


@router.post("/upload", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def upload_roster(
    file: UploadFile = File(...),
    service: LotterySessionService = Depends(get_session_service),
) -> SessionResponse:
    """Create a session from an ``.xlsx``, ``.xls`` or ``.csv`` roster."""
    try:
        content = await file.read()
        parsed = service.parse_roster(content, file.filename or "")
        snapshot = service.create_session(parsed.entries)
        return SessionResponse.from_snapshot(snapshot, warnings=parsed.warnings)
    except (RosterValidationError, LotteryValidationError) as exc:
        raise _bad_request(exc) from exc
    except SessionLimitExceededError as exc:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected roster upload failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process roster upload",
        ) from exc


@router.get("/{session_id}", response_model=SessionResponse, status_code=status.HTTP_200_OK)
async def get_session(
    session_id: str,
    service: LotterySessionService = Depends(get_session_service),
) -> SessionResponse:
    try:
        return SessionResponse.from_snapshot(service.get_snapshot(session_id))
    except SessionNotFoundError as exc:
        raise _not_found(exc) from exc


@router.put("/{session_id}/entries", response_model=SessionResponse, status_code=status.HTTP_200_OK)
async def reload_entries(
    session_id: str,
    payload: CreateSessionRequest,
    service: LotterySessionService = Depends(get_session_service),
) -> SessionResponse:
    try:
        snapshot = service.reload_session(session_id, payload.to_entries())
        return SessionResponse.from_snapshot(snapshot)
    except SessionNotFoundError as exc:
        raise _not_found(exc) from exc
    except LotteryValidationError as exc:
        raise _bad_request(exc) from exc


@router.post("/{session_id}/start", response_model=SessionResponse, status_code=status.HTTP_200_OK)
async def start_rolling(
    session_id: str,
    service: LotterySessionService = Depends(get_session_service),
) -> SessionResponse:
    """Begin the animated preview; repeated calls are harmless."""
    try:
        return SessionResponse.from_snapshot(service.start_rolling(session_id))
    except SessionNotFoundError as exc:
        raise _not_found(exc) from exc


@router.post("/{session_id}/stop", response_model=SessionResponse, status_code=status.HTTP_200_OK)
async def stop_rolling(
    session_id: str,
    service: LotterySessionService = Depends(get_session_service),
) -> SessionResponse:
    """Commit one real draw, or return the current result when not rolling."""
    try:
        return SessionResponse.from_snapshot(service.stop_rolling(session_id))
    except SessionNotFoundError as exc:
        raise _not_found(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected lottery commit failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to commit lottery",
        ) from exc


@router.get("/{session_id}/export", status_code=status.HTTP_200_OK)
async def export_result(
    session_id: str,
    format: ExportFormat = ExportFormat.XLSX,
    service: LotterySessionService = Depends(get_session_service),
) -> Response:
    try:
        exported = service.export_result(session_id, format)
    except SessionNotFoundError as exc:
        raise _not_found(exc) from exc
    except LotteryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected export failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to export lottery result",
        ) from exc
    disposition = f"attachment; filename*=UTF-8''{quote(exported.filename)}"
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": disposition},
    )


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: str,
    service: LotterySessionService = Depends(get_session_service),
) -> Response:
    try:
        service.delete_session(session_id)
    except SessionNotFoundError as exc:
        raise _not_found(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
