from __future__ import annotations

from typing import List, TypeVar

T = TypeVar('T')

MASK64 = 0xFFFFFFFFFFFFFFFF


class SeededRng:
    """64-bit linear congruential generator; the seed is the initial state.

    Produces the same stream for the same seed on every platform, which is what
    keeps catalog seed ids reproducible.
    """

    MULTIPLIER = 6364136223846793005
    INCREMENT = 1

    def __init__(self, seed: int) -> None:
        self._state = int(seed) & MASK64

    @property
    def state(self) -> int:
        return self._state

    def next(self) -> int:
        self._state = (self._state * self.MULTIPLIER + self.INCREMENT) & MASK64
        return self._state

    def below(self, n: int) -> int:
        """Uniform-ish integer in [0, n), taken from the high bits of next()."""
        if n <= 0:
            raise ValueError('below() needs a positive bound')
        return (self.next() * n) >> 64

    def randint(self, lo: int, hi: int) -> int:
        """Inclusive on both ends."""
        return lo + self.below(hi - lo + 1)

    def shuffle(self, items: List[T]) -> None:
        """In-place Fisher-Yates."""
        for i in range(len(items) - 1, 0, -1):
            j = self.below(i + 1)
            items[i], items[j] = items[j], items[i]
