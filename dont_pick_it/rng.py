from __future__ import annotations

import math
import random
from collections.abc import Sequence
from typing import Protocol, TypeVar

T = TypeVar("T")


class RandomSource(Protocol):
    """Uniform random source used by every generator."""

    def uniform(self) -> float:
        """Return a float in [0.0, 1.0)."""
        ...


class SeededRng:
    """Seeded RNG wrapper to keep deterministic streams explicit."""

    def __init__(self, seed: int) -> None:
        self._seed = int(seed)
        self._rng = random.Random(self._seed)

    @property
    def seed(self) -> int:
        return self._seed

    def uniform(self) -> float:
        return self._rng.random()


def pick_index(rng: RandomSource, n: int) -> int:
    if n <= 0:
        raise ValueError("n must be > 0")
    idx = int(math.floor(rng.uniform() * n))
    # Guard against sources that hand back exactly 1.0.
    return min(max(idx, 0), n - 1)


def pick(rng: RandomSource, items: Sequence[T]) -> T:
    return items[pick_index(rng, len(items))]


def shuffled(rng: RandomSource, items: Sequence[T]) -> list[T]:
    values = list(items)
    # In-place Fisher-Yates on a copy.
    for i in range(len(values) - 1, 0, -1):
        j = pick_index(rng, i + 1)
        values[i], values[j] = values[j], values[i]
    return values


def new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)
