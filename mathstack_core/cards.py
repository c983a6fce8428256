from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple


class CardColor(str, Enum):
    RED = 'red'
    BLUE = 'blue'
    YELLOW = 'yellow'
    GREEN = 'green'
    PURPLE = 'purple'

    @property
    def color_index(self) -> int:
        """Position of the color in the fixed color order (used by the save format)."""
        return COLORS.index(self)

    @property
    def letter(self) -> str:
        return self.value[0].upper()

    @classmethod
    def from_index(cls, index: int) -> 'CardColor':
        return COLORS[index % len(COLORS)]

    @classmethod
    def parse(cls, text: str) -> 'CardColor':
        """Accepts a color name or its first letter, any case."""
        key = str(text).strip().lower()
        for color in cls:
            if key == color.value or key == color.letter.lower():
                return color
        raise ValueError(f'Unknown color: {text!r}')


COLORS: Tuple[CardColor, ...] = tuple(CardColor)


class Difficulty(str, Enum):
    EASY = 'easy'
    MEDIUM = 'medium'
    HARD = 'hard'

    @property
    def max_number(self) -> int:
        return _MAX_NUMBER[self]

    @property
    def grid_size(self) -> Tuple[int, int]:
        """(rows, cols) of the grid for this difficulty."""
        return _GRID_SIZE[self]

    @property
    def seed_prefix(self) -> str:
        return _SEED_PREFIX[self]

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def deck_size(self) -> int:
        return len(COLORS) * self.max_number

    @classmethod
    def parse(cls, text: str) -> 'Difficulty':
        """Accepts 'easy'/'medium'/'hard' (any case) or a seed prefix letter."""
        key = str(text).strip().lower()
        for d in cls:
            if key == d.value or key == d.seed_prefix.lower():
                return d
        raise ValueError(f'Unknown difficulty: {text!r}')

    @classmethod
    def from_seed_prefix(cls, prefix: str) -> 'Difficulty':
        for d in cls:
            if d.seed_prefix == prefix:
                return d
        raise ValueError(f'Unknown seed prefix: {prefix!r}')


_MAX_NUMBER = {Difficulty.EASY: 5, Difficulty.MEDIUM: 10, Difficulty.HARD: 15}
_GRID_SIZE = {Difficulty.EASY: (3, 5), Difficulty.MEDIUM: (4, 5), Difficulty.HARD: (5, 5)}
_SEED_PREFIX = {Difficulty.EASY: 'E', Difficulty.MEDIUM: 'M', Difficulty.HARD: 'H'}


@dataclass(frozen=True)
class Card:
    """A numbered, colored card. Two cards are equal iff number and color match."""
    number: int
    color: CardColor

    def label(self) -> str:
        return f"{self.color.letter}{self.number}"


def build_deck(difficulty: Difficulty) -> List[Card]:
    """One card per (color, number), color-major."""
    return [Card(number, color) for color in COLORS for number in range(1, difficulty.max_number + 1)]
