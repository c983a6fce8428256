from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .cards import Difficulty
from .generator import generate_grid
from .grid import Grid, Layout

logger = logging.getLogger(__name__)

LEVEL_COUNT = 999

_SEED_ID_RE = re.compile(r'^([EMH])(\d{3,})$')


def format_seed_id(difficulty: Difficulty, index: int) -> str:
    return f"{difficulty.seed_prefix}{index:03d}"


def normalize_seed_id(text: str, count: int = LEVEL_COUNT) -> Tuple[Difficulty, str]:
    """Validates user-typed seed ids like ' h042 ' -> (HARD, 'H042').

    Raises ValueError with a readable reason when the text is not a catalog id.
    """
    cleaned = str(text or '').strip().upper()
    if len(cleaned) < 4:
        raise ValueError('Seed ID must be at least 4 characters (e.g. E001)')
    m = _SEED_ID_RE.match(cleaned)
    if not m:
        raise ValueError('Seed ID must start with E, M or H followed by digits')
    number = int(m.group(2))
    if not 1 <= number <= count:
        raise ValueError(f'Seed number must be between 1 and {count}')
    difficulty = Difficulty.from_seed_prefix(m.group(1))
    return difficulty, format_seed_id(difficulty, number)


@dataclass(frozen=True)
class Level:
    seed_id: str
    difficulty: Difficulty
    layout: Layout

    def create_grid(self) -> Grid:
        """Fresh mutable grid for a session; all cells locked."""
        return Grid.from_layout(self.layout)


class LevelCatalog:
    """Pre-generated levels, built lazily once per difficulty and then kept immutable."""

    def __init__(self, count: int = LEVEL_COUNT) -> None:
        if count <= 0:
            raise ValueError('Catalog needs at least one level')
        self.count = count
        self._levels: Dict[Difficulty, Tuple[Level, ...]] = {}
        self._by_id: Dict[Difficulty, Dict[str, Level]] = {}

    def levels(self, difficulty: Difficulty) -> Tuple[Level, ...]:
        if difficulty not in self._levels:
            self._build(difficulty)
        return self._levels[difficulty]

    def _build(self, difficulty: Difficulty) -> None:
        logger.info('Generating %d %s levels', self.count, difficulty.value)
        built = []
        for i in range(1, self.count + 1):
            grid = generate_grid(difficulty, seed=i)
            built.append(Level(seed_id=format_seed_id(difficulty, i), difficulty=difficulty, layout=grid.to_layout()))
        self._levels[difficulty] = tuple(built)
        self._by_id[difficulty] = {lvl.seed_id: lvl for lvl in built}

    def get_level(self, difficulty: Difficulty, seed_id: str) -> Optional[Level]:
        """Exact-match lookup; None when the id is not in this difficulty's table."""
        self.levels(difficulty)
        return self._by_id[difficulty].get(seed_id)

    def get_random_level(self, difficulty: Difficulty, rng: Optional[random.Random] = None) -> Level:
        table = self.levels(difficulty)
        return (rng or random).choice(table)
