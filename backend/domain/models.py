"""Domain models for the apartment lottery."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional


class Gender(str, Enum):
    MALE = "男"
    FEMALE = "女"

    @classmethod
    def parse(cls, raw: object) -> Optional["Gender"]:
        """Map a free-form gender label to a canonical value, or None."""
        if isinstance(raw, Gender):
            return raw
        if raw is None:
            return None
        text = str(raw).strip().lower()
        if text in _MALE_ALIASES:
            return cls.MALE
        if text in _FEMALE_ALIASES:
            return cls.FEMALE
        return None


_MALE_ALIASES = frozenset({"男", "男性", "m", "male"})
_FEMALE_ALIASES = frozenset({"女", "女性", "f", "female"})


@dataclass(frozen=True)
class Entry:
    employee_id: str
    gender: Gender
    room_slot: str

    def clone(self) -> "Entry":
        return replace(self)

    def as_assignment(self) -> "Assignment":
        return Assignment(
            employee_id=self.employee_id,
            gender=self.gender,
            room_slot=self.room_slot,
        )


def clone_entries(entries: Iterable[Entry]) -> tuple[Entry, ...]:
    """Snapshot an entry sequence without sharing the caller's container."""
    return tuple(entry.clone() for entry in entries)


@dataclass(frozen=True)
class RoomKey:
    base_room: str
    sub_unit: Optional[str]


@dataclass(frozen=True)
class RoomSlot:
    room_slot: str
    sub_unit: Optional[str]
    original_index: int


@dataclass(frozen=True)
class RoomGroup:
    base_room: str
    slots: tuple[RoomSlot, ...]

    @property
    def size(self) -> int:
        return len(self.slots)

    @property
    def is_shared(self) -> bool:
        return len(self.slots) >= 2


@dataclass(frozen=True)
class RoomGrouping:
    shared_groups: tuple[RoomGroup, ...]
    single_groups: tuple[RoomGroup, ...]

    @property
    def total_slots(self) -> int:
        return sum(group.size for group in self.shared_groups + self.single_groups)


@dataclass(frozen=True)
class Candidate:
    employee_id: str
    gender: Gender


@dataclass(frozen=True)
class GenderPools:
    male: tuple[Candidate, ...]
    female: tuple[Candidate, ...]


@dataclass(frozen=True)
class Assignment:
    employee_id: str
    gender: Gender
    room_slot: str


@dataclass(frozen=True)
class AllocationSummary:
    total_entries: int
    assigned_count: int
    unfilled_room_slots: list[str]
    unplaced_employee_ids: list[str]

    @property
    def is_complete(self) -> bool:
        return not self.unfilled_room_slots and not self.unplaced_employee_ids
