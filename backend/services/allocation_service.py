"""Gender-constrained room lottery allocation."""

from __future__ import annotations

from collections import deque
from typing import Optional, Sequence

from backend.domain.models import (
    AllocationSummary,
    Assignment,
    Candidate,
    Entry,
    Gender,
    GenderPools,
    RoomSlot,
)
from backend.domain.rooms import group_room_slots
from backend.services.shuffler import Shuffler
from backend.utils.logger import get_logger


logger = get_logger(__name__)


def build_gender_pools(entries: Sequence[Entry]) -> GenderPools:
    """Split entries into per-gender candidate lists, keeping input order."""
    male: list[Candidate] = []
    female: list[Candidate] = []
    for entry in entries:
        candidate = Candidate(employee_id=entry.employee_id, gender=entry.gender)
        if entry.gender is Gender.MALE:
            male.append(candidate)
        elif entry.gender is Gender.FEMALE:
            female.append(candidate)
    return GenderPools(male=tuple(male), female=tuple(female))


def _select_pool(
    male: deque[Candidate],
    female: deque[Candidate],
    group_size: int,
    shuffler: Shuffler,
) -> Optional[deque[Candidate]]:
    male_fits = len(male) >= group_size
    female_fits = len(female) >= group_size
    if male_fits and female_fits:
        return male if shuffler.coin_flip() else female
    if male_fits:
        return male
    if female_fits:
        return female
    return None


def allocate(entries: Sequence[Entry], shuffler: Optional[Shuffler] = None) -> list[Assignment]:
    """Run one lottery draw over ``entries``.

    Shared rooms are filled first, each from a single gender pool. A shared
    room that neither pool can fill whole is treated as independent single
    slots. Leftover people then fill the single slots in random order. Slots
    or people left over once either side runs out are absent from the result.
    The returned order is shuffled for display.
    """
    shuffler = shuffler or Shuffler()

    pools = build_gender_pools(entries)
    male = deque(shuffler.shuffle(list(pools.male)))
    female = deque(shuffler.shuffle(list(pools.female)))

    grouping = group_room_slots(entries)
    shared_groups = shuffler.shuffle(list(grouping.shared_groups))

    filled: list[tuple[int, Assignment]] = []
    overflow: list[RoomSlot] = []

    for group in shared_groups:
        pool = _select_pool(male, female, group.size, shuffler)
        if pool is None:
            logger.debug(
                "Shared room deferred to single slots | base_room=%s | size=%s | male=%s | female=%s",
                group.base_room,
                group.size,
                len(male),
                len(female),
            )
            overflow.extend(group.slots)
            continue
        for slot in group.slots:
            candidate = pool.popleft()
            filled.append((slot.original_index, _assign(candidate, slot)))

    remaining = deque(shuffler.shuffle(list(male) + list(female)))
    single_slots = shuffler.shuffle(
        [group.slots[0] for group in grouping.single_groups] + overflow
    )

    for slot in single_slots:
        if not remaining:
            break
        filled.append((slot.original_index, _assign(remaining.popleft(), slot)))

    filled.sort(key=lambda item: item[0])
    result = [assignment for _, assignment in filled]
    shuffler.shuffle(result)

    logger.debug(
        "Allocation finished | entries=%s | shared_groups=%s | overflow_slots=%s | assigned=%s",
        len(entries),
        len(shared_groups),
        len(overflow),
        len(result),
    )
    return result


def _assign(candidate: Candidate, slot: RoomSlot) -> Assignment:
    return Assignment(
        employee_id=candidate.employee_id,
        gender=candidate.gender,
        room_slot=slot.room_slot,
    )


def summarize_allocation(
    entries: Sequence[Entry],
    assignments: Sequence[Assignment],
) -> AllocationSummary:
    """Report which input slots and people a draw left out."""
    assigned_slots = {assignment.room_slot for assignment in assignments}
    assigned_ids = {assignment.employee_id for assignment in assignments}
    return AllocationSummary(
        total_entries=len(entries),
        assigned_count=len(assignments),
        unfilled_room_slots=[
            entry.room_slot for entry in entries if entry.room_slot not in assigned_slots
        ],
        unplaced_employee_ids=[
            entry.employee_id for entry in entries if entry.employee_id not in assigned_ids
        ],
    )
