"""Room-slot label parsing and physical-room grouping."""

from __future__ import annotations

import re
from typing import Iterable

from backend.domain.models import Entry, RoomGroup, RoomGrouping, RoomKey, RoomSlot


ROOM_DELIMITER = "-"
# A trailing bedroom letter only counts on labels with more than this many segments.
SUB_UNIT_MIN_PRECEDING_SEGMENTS = 4

_SUB_UNIT_PATTERN = re.compile(r"[A-Za-z]")


def parse_room_slot(room_slot: str) -> RoomKey:
    """Split a slot label such as ``南-16-1-1001-A`` into base room and bedroom.

    Labels that do not carry a recognizable bedroom suffix map to themselves.
    """
    parts = room_slot.split(ROOM_DELIMITER)
    last_part = parts[-1]
    if (
        len(parts) > SUB_UNIT_MIN_PRECEDING_SEGMENTS
        and _SUB_UNIT_PATTERN.fullmatch(last_part)
    ):
        return RoomKey(
            base_room=ROOM_DELIMITER.join(parts[:-1]),
            sub_unit=last_part,
        )
    return RoomKey(base_room=room_slot, sub_unit=None)


def group_room_slots(entries: Iterable[Entry]) -> RoomGrouping:
    """Bucket slots by physical room, keeping first-seen and input order."""
    slots_by_room: dict[str, list[RoomSlot]] = {}
    for index, entry in enumerate(entries):
        key = parse_room_slot(entry.room_slot)
        slots_by_room.setdefault(key.base_room, []).append(
            RoomSlot(
                room_slot=entry.room_slot,
                sub_unit=key.sub_unit,
                original_index=index,
            )
        )

    shared: list[RoomGroup] = []
    single: list[RoomGroup] = []
    for base_room, slots in slots_by_room.items():
        group = RoomGroup(base_room=base_room, slots=tuple(slots))
        if group.is_shared:
            shared.append(group)
        else:
            single.append(group)
    return RoomGrouping(shared_groups=tuple(shared), single_groups=tuple(single))
