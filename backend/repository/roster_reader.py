"""Roster file parsing into validated lottery entries."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Iterable, Optional, Sequence

import pandas as pd

from backend.domain.models import Entry, Gender
from backend.utils.logger import get_logger


logger = get_logger(__name__)

SUPPORTED_EXTENSIONS = (".xlsx", ".xls", ".csv")
_EXCEL_ENGINES = {".xlsx": "openpyxl", ".xls": "xlrd"}
REQUIRED_COLUMNS = 3


class RosterValidationError(Exception):
    """Raised when an uploaded roster cannot produce any usable entry."""


@dataclass(frozen=True)
class RejectedRow:
    row_number: int
    reason: str


@dataclass(frozen=True)
class RosterParseResult:
    entries: list[Entry]
    duplicate_employee_ids: list[str] = field(default_factory=list)
    duplicate_room_slots: list[str] = field(default_factory=list)
    corrected_genders: list[str] = field(default_factory=list)
    rejected_rows: list[RejectedRow] = field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        messages: list[str] = []
        if self.duplicate_employee_ids:
            messages.append(
                "Duplicate employee ids ignored: " + ", ".join(self.duplicate_employee_ids)
            )
        if self.duplicate_room_slots:
            messages.append(
                "Duplicate room slots ignored: " + ", ".join(self.duplicate_room_slots)
            )
        if self.corrected_genders:
            messages.append(
                "Non-standard gender values normalized: " + "; ".join(self.corrected_genders)
            )
        for rejected in self.rejected_rows:
            messages.append(f"Row {rejected.row_number} rejected: {rejected.reason}")
        return messages


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_roster_rows(
    rows: Iterable[Sequence[Any]],
    *,
    max_rows: Optional[int] = None,
) -> RosterParseResult:
    """Validate raw rows (header first) of employee id, gender, room slot."""
    entries: list[Entry] = []
    seen_ids: set[str] = set()
    seen_slots: set[str] = set()
    duplicate_ids: list[str] = []
    duplicate_slots: list[str] = []
    corrected: list[str] = []
    rejected: list[RejectedRow] = []

    for index, row in enumerate(rows):
        if index == 0:
            continue
        if row is None or len(row) < REQUIRED_COLUMNS:
            continue

        employee_id = _cell_text(row[0])
        raw_gender = _cell_text(row[1])
        room_slot = _cell_text(row[2])
        if not employee_id or not raw_gender or not room_slot:
            continue

        gender = Gender.parse(raw_gender)
        if gender is None:
            rejected.append(
                RejectedRow(row_number=index + 1, reason=f"unrecognized gender {raw_gender!r}")
            )
            continue
        if raw_gender != gender.value:
            corrected.append(f"{employee_id}: {raw_gender!r}")

        if employee_id in seen_ids:
            duplicate_ids.append(employee_id)
            continue
        if room_slot in seen_slots:
            duplicate_slots.append(room_slot)
            continue
        seen_ids.add(employee_id)
        seen_slots.add(room_slot)

        entries.append(Entry(employee_id=employee_id, gender=gender, room_slot=room_slot))
        if max_rows is not None and len(entries) > max_rows:
            raise RosterValidationError(f"roster exceeds the limit of {max_rows} rows")

    if not entries:
        raise RosterValidationError("roster contains no valid rows")

    result = RosterParseResult(
        entries=entries,
        duplicate_employee_ids=duplicate_ids,
        duplicate_room_slots=duplicate_slots,
        corrected_genders=corrected,
        rejected_rows=rejected,
    )
    logger.info(
        "Roster parsed | entries=%s | duplicates=%s | corrected=%s | rejected=%s",
        len(entries),
        len(duplicate_ids) + len(duplicate_slots),
        len(corrected),
        len(rejected),
    )
    return result


def _keep_required_cells(cells: list[str]) -> list[str]:
    return cells[:REQUIRED_COLUMNS]


def _load_frame(content: bytes, extension: str) -> pd.DataFrame:
    buffer = io.BytesIO(content)
    if extension in _EXCEL_ENGINES:
        return pd.read_excel(
            buffer,
            sheet_name=0,
            header=None,
            dtype=object,
            engine=_EXCEL_ENGINES[extension],
        )
    # Rows longer than the header (trailing notes) keep their first cells.
    return pd.read_csv(
        buffer,
        header=None,
        dtype=str,
        keep_default_na=False,
        engine="python",
        on_bad_lines=_keep_required_cells,
    )


def read_roster(
    content: bytes,
    filename: str,
    *,
    max_rows: Optional[int] = None,
) -> RosterParseResult:
    """Parse the first sheet of an ``.xlsx``/``.xls`` workbook or a ``.csv`` file."""
    extension = PurePath(filename or "").suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise RosterValidationError(
            f"unsupported roster file type {extension or '(none)'!r}; "
            f"expected one of {', '.join(SUPPORTED_EXTENSIONS)}"
        )
    if not content:
        raise RosterValidationError("roster file is empty")

    try:
        frame = _load_frame(content, extension)
    except Exception as exc:
        raise RosterValidationError(f"failed to read roster file: {exc}") from exc

    rows = frame.itertuples(index=False, name=None)
    return parse_roster_rows(rows, max_rows=max_rows)
