from __future__ import annotations

import random
from collections import Counter

import pytest

from backend.services.shuffler import Shuffler, build_random_source


class RecordingSource:
    """Random source that replays fixed draws and records requested bounds."""

    def __init__(self, value: float = 0.0) -> None:
        self.value = value
        self.stops: list[int] = []

    def random(self) -> float:
        return self.value

    def randrange(self, stop: int) -> int:
        self.stops.append(stop)
        return 0


def test_shuffle_draws_from_shrinking_prefix():
    source = RecordingSource()
    items = ["a", "b", "c", "d"]

    returned = Shuffler(source).shuffle(items)

    assert returned is items
    assert source.stops == [4, 3, 2]
    assert items == ["b", "c", "d", "a"]


def test_shuffle_short_sequences_do_not_draw():
    source = RecordingSource()
    shuffler = Shuffler(source)

    assert shuffler.shuffle([]) == []
    assert shuffler.shuffle(["only"]) == ["only"]
    assert source.stops == []


def test_shuffle_is_approximately_uniform():
    shuffler = Shuffler(random.Random(1234))
    counts = Counter(tuple(shuffler.shuffle([0, 1, 2])) for _ in range(6000))

    assert len(counts) == 6
    for ordering, seen in counts.items():
        assert 850 <= seen <= 1150, (ordering, seen)


def test_coin_flip_threshold():
    assert Shuffler(RecordingSource(0.49)).coin_flip() is True
    assert Shuffler(RecordingSource(0.5)).coin_flip() is False


def test_pick_uses_randrange_and_rejects_empty():
    source = RecordingSource()
    shuffler = Shuffler(source)

    assert shuffler.pick(["x", "y", "z"]) == "x"
    assert source.stops == [3]
    with pytest.raises(IndexError):
        shuffler.pick([])


def test_build_random_source_seeded_is_reproducible():
    first = Shuffler(build_random_source(99)).shuffle(list(range(10)))
    second = Shuffler(build_random_source(99)).shuffle(list(range(10)))

    assert first == second
    assert isinstance(build_random_source(None), random.SystemRandom)
