"""Uniform randomness primitives shared by the allocator and roll previews."""

from __future__ import annotations

import random
from typing import MutableSequence, Optional, Protocol, Sequence, TypeVar


T = TypeVar("T")


class RandomSource(Protocol):
    """Anything exposing the two draws the lottery needs.

    ``random.Random`` and ``random.SystemRandom`` both satisfy it.
    """

    def random(self) -> float: ...

    def randrange(self, stop: int) -> int: ...


def build_random_source(seed: Optional[int] = None) -> RandomSource:
    if seed is None:
        return random.SystemRandom()
    return random.Random(seed)


class Shuffler:
    """Fisher-Yates permutations and fair draws over an injectable source."""

    def __init__(self, source: Optional[RandomSource] = None) -> None:
        self._source = source if source is not None else random.SystemRandom()

    def shuffle(self, items: MutableSequence[T]) -> MutableSequence[T]:
        """Permute ``items`` in place and return it."""
        for i in range(len(items) - 1, 0, -1):
            j = self._source.randrange(i + 1)
            items[i], items[j] = items[j], items[i]
        return items

    def coin_flip(self) -> bool:
        return self._source.random() < 0.5

    def pick(self, items: Sequence[T]) -> T:
        if not items:
            raise IndexError("cannot pick from an empty sequence")
        return items[self._source.randrange(len(items))]
