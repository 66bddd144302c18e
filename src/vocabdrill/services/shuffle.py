"""Uniform shuffling with an injectable random source."""
import random
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")


def shuffle_in_place(items: List[T], rng: Optional[random.Random] = None) -> List[T]:
    """Fisher-Yates shuffle of `items`; returns the same list."""
    rng = rng or random.Random()
    for i in range(len(items) - 1, 0, -1):
        j = rng.randint(0, i)
        items[i], items[j] = items[j], items[i]
    return items


def shuffled(items: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """Return a shuffled copy of `items`."""
    return shuffle_in_place(list(items), rng)
