from __future__ import annotations

import random

from backend.domain.models import Entry, Gender
from backend.domain.rooms import group_room_slots
from backend.services.allocation_service import (
    allocate,
    build_gender_pools,
    summarize_allocation,
)
from backend.services.shuffler import Shuffler


class FixedCoinSource:
    """Seeded permutations with a pinned 50/50 draw."""

    def __init__(self, coin: float, seed: int = 0) -> None:
        self._coin = coin
        self._rng = random.Random(seed)

    def random(self) -> float:
        return self._coin

    def randrange(self, stop: int) -> int:
        return self._rng.randrange(stop)


def _by_room(assignments):
    return {item.room_slot: item for item in assignments}


def _random_roster(seed: int) -> list[Entry]:
    """Mixed apartments and single rooms with arbitrary gender balance."""
    rng = random.Random(seed)
    entries: list[Entry] = []
    employee_number = 0
    for room_number in range(rng.randint(1, 8)):
        size = rng.choice([1, 1, 2, 2, 3, 4])
        for bedroom in range(size):
            employee_number += 1
            label = f"南-16-1-{1000 + room_number}"
            if size > 1:
                label += f"-{'ABCD'[bedroom]}"
            entries.append(
                Entry(
                    employee_id=f"E{employee_number:03d}",
                    gender=rng.choice([Gender.MALE, Gender.FEMALE]),
                    room_slot=label,
                )
            )
    rng.shuffle(entries)
    return entries


def _balanced_roster(seed: int) -> list[Entry]:
    """Roster where each gender alone could fill every shared room."""
    rng = random.Random(seed)
    shared_sizes = [rng.choice([2, 3]) for _ in range(rng.randint(1, 4))]
    shared_total = sum(shared_sizes)
    labels: list[str] = []
    for room_number, size in enumerate(shared_sizes):
        labels.extend(f"北-3-2-{200 + room_number}-{'ABC'[i]}" for i in range(size))
    single_count = shared_total + rng.randint(0, 3)
    labels.extend(f"北-3-2-{500 + number}" for number in range(single_count))

    extra = len(labels) - 2 * shared_total
    genders = [Gender.MALE] * shared_total + [Gender.FEMALE] * shared_total
    genders += [rng.choice([Gender.MALE, Gender.FEMALE]) for _ in range(extra)]
    rng.shuffle(genders)
    rng.shuffle(labels)
    return [
        Entry(employee_id=f"P{index}", gender=gender, room_slot=label)
        for index, (gender, label) in enumerate(zip(genders, labels))
    ]


# --- Gender pools ---

def test_build_gender_pools_keeps_input_order():
    entries = [
        Entry("E1", Gender.FEMALE, "R1"),
        Entry("E2", Gender.MALE, "R2"),
        Entry("E3", Gender.FEMALE, "R3"),
        Entry("E4", Gender.MALE, "R4"),
    ]

    pools = build_gender_pools(entries)

    assert [candidate.employee_id for candidate in pools.male] == ["E2", "E4"]
    assert [candidate.employee_id for candidate in pools.female] == ["E1", "E3"]


# --- Scenarios ---

def test_shared_room_goes_to_only_gender_with_enough_people():
    entries = [
        Entry("E1", Gender.MALE, "南-16-1-1001-A"),
        Entry("E2", Gender.MALE, "南-16-1-1001-B"),
        Entry("E3", Gender.FEMALE, "南-16-1-1002"),
    ]

    for seed in range(50):
        result = allocate(entries, Shuffler(random.Random(seed)))
        rooms = _by_room(result)

        assert len(result) == 3
        assert {rooms["南-16-1-1001-A"].employee_id, rooms["南-16-1-1001-B"].employee_id} == {
            "E1",
            "E2",
        }
        assert rooms["南-16-1-1001-A"].gender is Gender.MALE
        assert rooms["南-16-1-1001-B"].gender is Gender.MALE
        assert rooms["南-16-1-1002"].employee_id == "E3"
        assert rooms["南-16-1-1002"].gender is Gender.FEMALE


def test_shared_room_filled_female_when_male_pool_too_small():
    entries = [
        Entry("E1", Gender.FEMALE, "南-16-1-1001-A"),
        Entry("E2", Gender.FEMALE, "南-16-1-1001-B"),
        Entry("E3", Gender.MALE, "南-16-1-1002"),
    ]

    for seed in range(50):
        rooms = _by_room(allocate(entries, Shuffler(random.Random(seed))))

        assert rooms["南-16-1-1001-A"].gender is Gender.FEMALE
        assert rooms["南-16-1-1001-B"].gender is Gender.FEMALE
        assert rooms["南-16-1-1002"].employee_id == "E3"


def test_coin_flip_chooses_pool_when_both_genders_fit():
    entries = [
        Entry("M1", Gender.MALE, "南-16-1-1001-A"),
        Entry("F1", Gender.FEMALE, "南-16-1-1001-B"),
        Entry("M2", Gender.MALE, "南-16-1-1002"),
        Entry("F2", Gender.FEMALE, "南-16-1-1003"),
    ]

    male_rooms = _by_room(allocate(entries, Shuffler(FixedCoinSource(coin=0.1))))
    female_rooms = _by_room(allocate(entries, Shuffler(FixedCoinSource(coin=0.9))))

    assert male_rooms["南-16-1-1001-A"].gender is Gender.MALE
    assert male_rooms["南-16-1-1001-B"].gender is Gender.MALE
    assert female_rooms["南-16-1-1001-A"].gender is Gender.FEMALE
    assert female_rooms["南-16-1-1001-B"].gender is Gender.FEMALE


def test_shared_room_neither_gender_can_fill_overflows_to_single_slots():
    entries = [
        Entry("M1", Gender.MALE, "南-16-1-1001-A"),
        Entry("F1", Gender.FEMALE, "南-16-1-1001-B"),
        Entry("M2", Gender.MALE, "南-16-1-1001-C"),
        Entry("F2", Gender.FEMALE, "南-16-1-1002"),
    ]

    seen_mixed = False
    for seed in range(40):
        result = allocate(entries, Shuffler(random.Random(seed)))

        assert len(result) == 4
        assert {item.employee_id for item in result} == {"M1", "F1", "M2", "F2"}
        assert {item.room_slot for item in result} == {entry.room_slot for entry in entries}
        shared_genders = {
            item.gender for item in result if item.room_slot.startswith("南-16-1-1001-")
        }
        seen_mixed = seen_mixed or len(shared_genders) == 2

    assert seen_mixed


def test_allocate_does_not_mutate_input():
    entries = _random_roster(5)
    snapshot = list(entries)

    allocate(entries, Shuffler(random.Random(5)))

    assert entries == snapshot


def test_allocate_same_seed_same_result():
    entries = _random_roster(21)

    first = allocate(entries, Shuffler(random.Random(77)))
    second = allocate(entries, Shuffler(random.Random(77)))

    assert first == second


def test_allocate_empty_roster():
    assert allocate([], Shuffler(random.Random(0))) == []


# --- Invariants over many rosters ---

def test_result_ids_and_rooms_unique_and_from_input():
    for seed in range(200):
        entries = _random_roster(seed)
        result = allocate(entries, Shuffler(random.Random(seed)))

        ids = [item.employee_id for item in result]
        rooms = [item.room_slot for item in result]
        assert len(ids) == len(set(ids))
        assert len(rooms) == len(set(rooms))
        assert set(ids) <= {entry.employee_id for entry in entries}
        assert set(rooms) <= {entry.room_slot for entry in entries}
        assert len(result) <= len(entries)


def test_result_keeps_each_persons_gender():
    for seed in range(100):
        entries = _random_roster(seed)
        gender_by_id = {entry.employee_id: entry.gender for entry in entries}

        for item in allocate(entries, Shuffler(random.Random(seed))):
            assert item.gender is gender_by_id[item.employee_id]


def test_one_slot_per_person_rosters_are_always_fully_placed():
    for seed in range(200):
        entries = _random_roster(seed)
        result = allocate(entries, Shuffler(random.Random(seed)))

        assert len(result) == len(entries)
        assert summarize_allocation(entries, result).is_complete


def test_shared_rooms_are_single_gender_when_pools_allow():
    for seed in range(200):
        entries = _balanced_roster(seed)
        result = allocate(entries, Shuffler(random.Random(seed)))
        rooms = _by_room(result)

        assert len(result) == len(entries)
        for group in group_room_slots(entries).shared_groups:
            genders = {rooms[slot.room_slot].gender for slot in group.slots}
            assert len(genders) == 1, (seed, group.base_room)


# --- Summary ---

def test_summarize_reports_missing_slots_and_people():
    entries = [
        Entry("E1", Gender.MALE, "R1"),
        Entry("E2", Gender.FEMALE, "R2"),
        Entry("E3", Gender.MALE, "R3"),
    ]
    partial = [entries[0].as_assignment()]

    summary = summarize_allocation(entries, partial)

    assert summary.total_entries == 3
    assert summary.assigned_count == 1
    assert summary.unfilled_room_slots == ["R2", "R3"]
    assert summary.unplaced_employee_ids == ["E2", "E3"]
    assert not summary.is_complete
