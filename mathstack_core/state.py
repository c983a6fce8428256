from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from .cards import COLORS, Card, CardColor, Difficulty
from .clock import SessionClock
from .grid import Grid
from .rules import Collections, TempSlots, empty_collections, empty_temp_slots


@dataclass(frozen=True)
class GridSelection:
    row: int
    col: int


@dataclass(frozen=True)
class TempSlotSelection:
    slot: int


@dataclass(frozen=True)
class CollectionSelection:
    """index == -1 selects the whole collection for a bulk transfer."""
    color: CardColor
    index: int

    @property
    def whole(self) -> bool:
        return self.index == -1


Selection = Union[GridSelection, TempSlotSelection, CollectionSelection]


def copy_collections(collections: Collections) -> Collections:
    return {color: list(collections.get(color, [])) for color in COLORS}


def copy_temp_slots(slots: TempSlots) -> TempSlots:
    return [list(slot) for slot in slots]


@dataclass(frozen=True)
class Snapshot:
    """Pre-move copy of everything undo restores. The grid keeps its unlocked flags."""
    grid: Grid
    collections: Collections
    temp_slots: TempSlots
    moves: int


@dataclass
class GameSession:
    difficulty: Difficulty
    seed_id: str
    grid: Grid
    clock: SessionClock
    collections: Collections = field(default_factory=empty_collections)
    temp_slots: TempSlots = field(default_factory=empty_temp_slots)
    selection: Optional[Selection] = None
    moves: int = 0
    history: List[Snapshot] = field(default_factory=list)
    won: bool = False
    final_score: Optional[int] = None
    started: bool = True

    @property
    def elapsed_seconds(self) -> int:
        return self.clock.elapsed_seconds()

    @property
    def paused(self) -> bool:
        return self.clock.paused

    @property
    def in_progress(self) -> bool:
        """Counts toward abandoned/given-up statistics: started, unfinished, with time on the clock."""
        return self.started and not self.won and self.elapsed_seconds > 0

    def snapshot(self) -> Snapshot:
        return Snapshot(
            grid=self.grid.copy(),
            collections=copy_collections(self.collections),
            temp_slots=copy_temp_slots(self.temp_slots),
            moves=self.moves,
        )

    def restore(self, snap: Snapshot) -> None:
        self.grid = snap.grid.copy()
        self.collections = copy_collections(snap.collections)
        self.temp_slots = copy_temp_slots(snap.temp_slots)
        self.moves = snap.moves

    def collection_complete(self, color: CardColor) -> bool:
        return len(self.collections[color]) == self.difficulty.max_number

    def to_view(self) -> Dict[str, object]:
        """JSON-friendly view used by the host app and the CLI."""
        return {
            'difficulty': self.difficulty.value,
            'seedId': self.seed_id,
            'rows': self.grid.rows,
            'cols': self.grid.cols,
            'grid': [
                [
                    {'cards': [_card_json(card) for card in cell.stack], 'unlocked': cell.unlocked}
                    for cell in (self.grid.cell(r, c) for c in range(self.grid.cols))
                ]
                for r in range(self.grid.rows)
            ],
            'collections': {color.value: list(self.collections[color]) for color in COLORS},
            'tempSlots': [[_card_json(card) for card in slot] for slot in self.temp_slots],
            'selection': _selection_json(self.selection),
            'moves': self.moves,
            'elapsedSeconds': self.elapsed_seconds,
            'paused': self.paused,
            'won': self.won,
            'finalScore': self.final_score,
            'canUndo': bool(self.history),
        }


def _card_json(card: Card) -> Dict[str, object]:
    return {'number': card.number, 'color': card.color.value}


def _selection_json(selection: Optional[Selection]) -> Optional[Dict[str, object]]:
    if isinstance(selection, GridSelection):
        return {'kind': 'grid', 'row': selection.row, 'col': selection.col}
    if isinstance(selection, TempSlotSelection):
        return {'kind': 'temp', 'slot': selection.slot}
    if isinstance(selection, CollectionSelection):
        return {'kind': 'collection', 'color': selection.color.value, 'index': selection.index}
    return None


@dataclass(frozen=True)
class MoveResult:
    ok: bool
    message: str = ''
    won: bool = False
    score: Optional[int] = None

    @classmethod
    def rejected(cls, message: str) -> 'MoveResult':
        return cls(ok=False, message=message)


@dataclass(frozen=True)
class GameResult:
    """Completed-game record handed to the statistics collaborator."""
    difficulty: Difficulty
    seed_id: str
    time_seconds: int
    moves: int
    score: int
    finished_at: str
