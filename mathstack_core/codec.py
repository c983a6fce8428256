from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .cards import COLORS, Card, CardColor, Difficulty, build_deck
from .grid import Grid
from .rules import TEMP_SLOT_COUNT, Collections, TempSlots, can_add_to_collection, empty_collections
from .state import GameSession

logger = logging.getLogger(__name__)

SAVE_VERSION = 1


@dataclass
class SavedGame:
    """Decoded save blob. History is not persisted."""
    difficulty: Difficulty
    seed_id: str
    grid: Grid
    collections: Collections
    temp_slots: TempSlots
    moves: int
    time_in_seconds: int
    is_paused: bool


class SaveFormatError(ValueError):
    pass


def _card_pair(card: Card) -> List[int]:
    return [card.number, card.color.color_index]


def session_to_dict(session: GameSession) -> Dict[str, Any]:
    return {
        'version': SAVE_VERSION,
        'difficulty': session.difficulty.value,
        'seedId': session.seed_id,
        'grid': [
            [[v for card in session.grid.cell(r, c).stack for v in _card_pair(card)] for c in range(session.grid.cols)]
            for r in range(session.grid.rows)
        ],
        'collections': {color.value: list(session.collections[color]) for color in COLORS},
        'tempSlots': [
            [{'number': card.number, 'colorIndex': card.color.color_index} for card in slot]
            for slot in session.temp_slots
        ],
        'moves': session.moves,
        'timeInSeconds': session.elapsed_seconds,
        'isPaused': session.paused,
    }


def encode(session: GameSession) -> bytes:
    return json.dumps(session_to_dict(session), separators=(',', ':')).encode('utf-8')


def decode(blob: Optional[bytes]) -> Optional[SavedGame]:
    """Parses a save blob; anything missing, malformed or inconsistent yields None."""
    if not blob:
        return None
    try:
        obj = json.loads(blob.decode('utf-8') if isinstance(blob, (bytes, bytearray)) else blob)
        return _from_dict(obj)
    except (UnicodeDecodeError, json.JSONDecodeError, SaveFormatError) as e:
        logger.warning('Discarding unreadable saved game: %s', e)
        return None


def _require(cond: bool, reason: str) -> None:
    if not cond:
        raise SaveFormatError(reason)


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _make_card(number: Any, color_index: Any, difficulty: Difficulty) -> Card:
    _require(_is_int(number) and 1 <= number <= difficulty.max_number, f'card number out of range: {number!r}')
    _require(_is_int(color_index) and 0 <= color_index < len(COLORS), f'color index out of range: {color_index!r}')
    return Card(number, CardColor.from_index(color_index))


def _from_dict(obj: Any) -> SavedGame:
    _require(isinstance(obj, dict), 'save is not an object')
    _require(obj.get('version') == SAVE_VERSION, f"unsupported save version: {obj.get('version')!r}")
    try:
        difficulty = Difficulty(obj.get('difficulty'))
    except ValueError:
        raise SaveFormatError(f"unknown difficulty: {obj.get('difficulty')!r}")
    seed_id = obj.get('seedId')
    _require(isinstance(seed_id, str) and seed_id != '', 'missing seed id')

    grid = _grid_from_rows(obj.get('grid'), difficulty)

    raw_collections = obj.get('collections')
    _require(isinstance(raw_collections, dict), 'collections must be an object')
    collections = empty_collections()
    for key, numbers in raw_collections.items():
        try:
            color = CardColor(key)
        except ValueError:
            raise SaveFormatError(f'unknown collection color: {key!r}')
        _require(isinstance(numbers, list), f'collection {key} must be a list')
        seq: List[int] = []
        for n in numbers:
            _make_card(n, color.color_index, difficulty)
            _require(can_add_to_collection(seq, n, difficulty.max_number), f'collection {key} is not a sequence')
            seq.append(n)
        collections[color] = seq

    raw_slots = obj.get('tempSlots')
    _require(isinstance(raw_slots, list) and len(raw_slots) == TEMP_SLOT_COUNT, 'expected three temp slots')
    temp_slots: TempSlots = []
    for slot in raw_slots:
        _require(isinstance(slot, list), 'temp slot must be a list')
        cards = []
        for entry in slot:
            _require(isinstance(entry, dict), 'temp slot card must be an object')
            cards.append(_make_card(entry.get('number'), entry.get('colorIndex'), difficulty))
        temp_slots.append(cards)

    moves = obj.get('moves')
    seconds = obj.get('timeInSeconds')
    paused = obj.get('isPaused', False)
    _require(_is_int(moves) and moves >= 0, 'moves must be a non-negative integer')
    _require(_is_int(seconds) and seconds >= 0, 'timeInSeconds must be a non-negative integer')
    _require(isinstance(paused, bool), 'isPaused must be a boolean')

    held = grid.cards()
    held.extend(Card(n, color) for color, numbers in collections.items() for n in numbers)
    held.extend(card for slot in temp_slots for card in slot)
    _require(Counter(held) == Counter(build_deck(difficulty)), 'cards do not match the deck')

    return SavedGame(
        difficulty=difficulty,
        seed_id=seed_id,
        grid=grid,
        collections=collections,
        temp_slots=temp_slots,
        moves=moves,
        time_in_seconds=seconds,
        is_paused=paused,
    )


def _grid_from_rows(rows: Any, difficulty: Difficulty) -> Grid:
    n_rows, n_cols = difficulty.grid_size
    _require(isinstance(rows, list) and len(rows) == n_rows, 'grid has the wrong number of rows')
    grid = Grid(n_rows, n_cols)
    for r, row in enumerate(rows):
        _require(isinstance(row, list) and len(row) == n_cols, f'grid row {r} has the wrong width')
        for c, flat in enumerate(row):
            _require(isinstance(flat, list) and len(flat) % 2 == 0, f'cell ({r},{c}) is not number/color pairs')
            cell = grid.cell(r, c)
            cell.stack = [_make_card(flat[i], flat[i + 1], difficulty) for i in range(0, len(flat), 2)]
            # Stored flags are not trusted: occupied cells come back playable.
            cell.unlocked = not cell.is_empty
    grid.unlock_bottom_row()
    return grid
