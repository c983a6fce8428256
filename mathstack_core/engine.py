from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from .cards import Card, CardColor, Difficulty
from .catalog import Level, LevelCatalog
from .clock import Now, SessionClock
from .codec import decode, encode
from .db import MemoryBlobStore, _utc_now
from .grid import Coord
from .rules import (
    TEMP_SLOT_COUNT,
    add_to_temp_slot,
    all_complete,
    can_add_slot_stack_to_collection,
    can_add_to_collection,
    can_add_to_temp_slot,
    is_run,
    ordered_for_collection,
)
from .scoring import final_score
from .state import (
    CollectionSelection,
    GameResult,
    GameSession,
    GridSelection,
    MoveResult,
    TempSlotSelection,
)

logger = logging.getLogger(__name__)

SAVE_KEY = 'saved_game'
DEFAULT_AUTOSAVE_INTERVAL = 30
UNDO_PENALTY = 1
SHUFFLE_PENALTY = 2
SHUFFLE_STACK_SIZES = (1, 3)
SHUFFLE_FALLBACK_CAP = 5

Listener = Callable[[str, Dict[str, Any]], None]


class PuzzleEngine:
    """Owns the single live GameSession and every mutation applied to it.

    Collaborators are injected: `catalog` supplies levels, `store` holds the
    saved-game blob (put/get/delete), `stats` receives finished-game records,
    `now` drives the session clock and `rng` is the process-wide randomness
    used for shuffles and random level picks.

    Moves validate first and only then push a snapshot, so a rejected move
    leaves the session and its history untouched.
    """

    def __init__(
        self,
        catalog: Optional[LevelCatalog] = None,
        store: Any = None,
        stats: Any = None,
        now: Now = time.monotonic,
        rng: Optional[random.Random] = None,
        autosave_interval: float = DEFAULT_AUTOSAVE_INTERVAL,
    ) -> None:
        self.catalog = catalog or LevelCatalog()
        self.store = store if store is not None else MemoryBlobStore()
        self.stats = stats
        self._now = now
        self.rng = rng or random.Random()
        self.autosave_interval = autosave_interval
        self.session: Optional[GameSession] = None
        self._last_save_at: Optional[float] = None
        self._listeners: List[Listener] = []

    # ---- events ----

    def subscribe(self, callback: Listener) -> Callable[[], None]:
        """Registers an observer of (event_name, payload); returns an unsubscribe function."""
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)
        return _unsubscribe

    def _emit(self, event: str, **payload: Any) -> None:
        for listener in list(self._listeners):
            listener(event, payload)

    # ---- lifecycle ----

    def start_new_game(self, difficulty: Difficulty) -> GameSession:
        level = self.catalog.get_random_level(difficulty, rng=self.rng)
        return self._load_level(level)

    def start_game_with_seed(self, difficulty: Difficulty, seed_id: str) -> GameSession:
        """Unknown seed ids fall back to a random level of the same difficulty."""
        level = self.catalog.get_level(difficulty, seed_id)
        if level is None:
            logger.info('Seed %s not found for %s; using a random level', seed_id, difficulty.value)
            level = self.catalog.get_random_level(difficulty, rng=self.rng)
        return self._load_level(level)

    def _load_level(self, level: Level) -> GameSession:
        grid = level.create_grid()
        grid.unlock_bottom_row()
        clock = SessionClock(self._now)
        clock.start()
        self.session = GameSession(difficulty=level.difficulty, seed_id=level.seed_id, grid=grid, clock=clock)
        self._last_save_at = self._now()
        logger.info('New %s game %s', level.difficulty.value, level.seed_id)
        self._emit('new_game', difficulty=level.difficulty.value, seedId=level.seed_id)
        return self.session

    def restart_current_level(self) -> Optional[GameSession]:
        s = self.session
        if s is None:
            return None
        self.store.delete(SAVE_KEY)
        return self.start_game_with_seed(s.difficulty, s.seed_id)

    def _end_session(self) -> None:
        s = self.session
        if s is None:
            return
        s.clock.stop()
        s.started = False
        s.selection = None

    def reset_game(self) -> None:
        """Leaves the current game; an in-progress game counts as abandoned."""
        s = self.session
        if s is None:
            return
        if s.in_progress:
            self._record_abandoned(s)
        self._end_session()

    def give_up_game(self) -> None:
        s = self.session
        if s is None:
            return
        if s.in_progress:
            if self.stats is not None:
                self.stats.record_given_up(s.difficulty, s.seed_id)
            logger.info('Gave up %s game %s', s.difficulty.value, s.seed_id)
            self._emit('given_up', difficulty=s.difficulty.value, seedId=s.seed_id)
        self.store.delete(SAVE_KEY)
        self._end_session()

    def start_new_game_from_pause(self, difficulty: Difficulty) -> GameSession:
        s = self.session
        if s is not None and s.in_progress:
            self._record_abandoned(s)
        self.store.delete(SAVE_KEY)
        return self.start_new_game(difficulty)

    def _record_abandoned(self, s: GameSession) -> None:
        if self.stats is not None:
            self.stats.record_abandoned(s.difficulty, s.seed_id)
        logger.info('Abandoned %s game %s', s.difficulty.value, s.seed_id)
        self._emit('abandoned', difficulty=s.difficulty.value, seedId=s.seed_id)

    def save_and_exit_game(self) -> bool:
        s = self.session
        if s is None:
            return False
        in_progress = s.in_progress
        s.clock.pause()
        s.selection = None
        return self.save_game() if in_progress else False

    def save_game(self) -> bool:
        """Writes the save blob; skipped when no game is running or it is already won."""
        s = self.session
        if s is None or not s.started or s.won:
            return False
        self.store.put(SAVE_KEY, encode(s))
        self._last_save_at = self._now()
        logger.info('Saved %s game %s (moves=%d, time=%ds)', s.difficulty.value, s.seed_id, s.moves, s.elapsed_seconds)
        self._emit('saved', seedId=s.seed_id, moves=s.moves)
        return True

    def has_saved_game(self) -> bool:
        return self.store.get(SAVE_KEY) is not None

    def load_saved_game(self) -> bool:
        saved = decode(self.store.get(SAVE_KEY))
        if saved is None:
            return False
        clock = SessionClock(self._now, offset=saved.time_in_seconds)
        clock.start()
        if saved.is_paused:
            clock.pause()
        self.session = GameSession(
            difficulty=saved.difficulty,
            seed_id=saved.seed_id,
            grid=saved.grid,
            clock=clock,
            collections=saved.collections,
            temp_slots=saved.temp_slots,
            moves=saved.moves,
        )
        self._last_save_at = self._now()
        logger.info('Loaded %s game %s (moves=%d)', saved.difficulty.value, saved.seed_id, saved.moves)
        self._emit('loaded', difficulty=saved.difficulty.value, seedId=saved.seed_id)
        return True

    # ---- timers ----

    def advance_time(self) -> int:
        s = self.session
        return s.elapsed_seconds if s is not None else 0

    def pause(self) -> bool:
        s = self.session
        if s is None:
            return False
        return s.clock.pause()

    def resume(self) -> bool:
        s = self.session
        if s is None:
            return False
        return s.clock.resume()

    def autosave(self) -> bool:
        s = self.session
        if s is None or not s.started or s.won:
            logger.debug('Autosave skipped: no running game')
            return False
        return self.save_game()

    def request_autosave_if_due(self) -> bool:
        if self._last_save_at is not None and self._now() - self._last_save_at < self.autosave_interval:
            return False
        return self.autosave()

    # ---- queries ----

    @property
    def can_undo(self) -> bool:
        return self.session is not None and bool(self.session.history)

    def can_add_to_collection(self, number: int, color: CardColor) -> bool:
        s = self.session
        if s is None:
            return False
        return can_add_to_collection(s.collections[color], number, s.difficulty.max_number)

    def can_add_to_temp_slot(self, card: Card, slot_index: int) -> bool:
        s = self.session
        if s is None or not _slot_in_range(slot_index):
            return False
        return can_add_to_temp_slot(s.temp_slots[slot_index], card)

    def can_add_slot_stack_to_collection(self, stack: Sequence[Card], color: CardColor) -> bool:
        s = self.session
        if s is None:
            return False
        return can_add_slot_stack_to_collection(stack, s.collections[color], color, s.difficulty.max_number)

    def view(self) -> Optional[Dict[str, Any]]:
        return self.session.to_view() if self.session is not None else None

    # ---- selection ----

    def clear_selection(self) -> None:
        if self.session is not None:
            self.session.selection = None

    def select_grid_cell(self, row: int, col: int) -> bool:
        s = self.session
        if s is None or not s.grid.in_bounds(row, col):
            return False
        cell = s.grid.cell(row, col)
        if not cell.unlocked or cell.is_empty:
            return False
        s.selection = GridSelection(row, col)
        return True

    def select_temp_slot(self, slot: int) -> bool:
        s = self.session
        if s is None or not _slot_in_range(slot) or not s.temp_slots[slot]:
            return False
        s.selection = TempSlotSelection(slot)
        return True

    def select_collection(self, color: CardColor, index: int) -> bool:
        """index -1 selects the whole collection; otherwise only its last card is selectable."""
        s = self.session
        if s is None:
            return False
        collection = s.collections[color]
        if index != -1 and (not collection or index != len(collection) - 1):
            return False
        s.selection = CollectionSelection(color, index)
        return True

    # ---- move plumbing ----

    def _reject(self, message: str) -> MoveResult:
        logger.debug('Rejected: %s', message)
        self._emit('rejected', message=message)
        return MoveResult.rejected(message)

    def _blocked(self) -> Optional[MoveResult]:
        s = self.session
        if s is None or not s.started:
            return self._reject('No game in progress')
        if s.won:
            return self._reject('Game already won')
        if s.paused:
            return self._reject('Game is paused')
        return None

    def _grid_source_problem(self, source: Coord) -> Optional[str]:
        s = self.session
        assert s is not None
        r, c = source
        if not s.grid.in_bounds(r, c):
            return f'Cell ({r},{c}) is off the grid'
        cell = s.grid.cell(r, c)
        if cell.is_empty:
            return f'Cell ({r},{c}) is empty'
        if not cell.unlocked:
            return f'Cell ({r},{c}) is locked'
        return None

    def _empty_target_problem(self, target: Coord) -> Optional[str]:
        s = self.session
        assert s is not None
        r, c = target
        if not s.grid.in_bounds(r, c):
            return f'Cell ({r},{c}) is off the grid'
        if not s.grid.cell(r, c).is_empty:
            return 'Target cell is not empty'
        return None

    def _push_snapshot(self) -> GameSession:
        s = self.session
        assert s is not None
        s.history.append(s.snapshot())
        return s

    def _commit(self, action: str, message: str, check_win: bool = False, cost: int = 1) -> MoveResult:
        s = self.session
        assert s is not None
        s.moves += cost
        s.selection = None
        logger.debug('%s: %s (moves=%d)', action, message, s.moves)
        self._emit('move', action=action, moves=s.moves)
        if check_win and all_complete(s.collections, s.difficulty.max_number):
            return self._win(message)
        return MoveResult(ok=True, message=message)

    def _win(self, message: str) -> MoveResult:
        s = self.session
        assert s is not None
        s.won = True
        s.clock.stop()
        elapsed = s.elapsed_seconds
        score = final_score(s.difficulty, elapsed, s.moves)
        s.final_score = score
        result = GameResult(
            difficulty=s.difficulty,
            seed_id=s.seed_id,
            time_seconds=elapsed,
            moves=s.moves,
            score=score,
            finished_at=_utc_now(),
        )
        if self.stats is not None:
            self.stats.record_result(result)
        self.store.delete(SAVE_KEY)
        logger.info('Won %s game %s: score=%d moves=%d time=%ds', s.difficulty.value, s.seed_id, score, s.moves, elapsed)
        self._emit('won', seedId=s.seed_id, score=score, moves=s.moves, timeSeconds=elapsed)
        return MoveResult(ok=True, message=message, won=True, score=score)

    # ---- grid sources ----

    def collect_card(self, row: int, col: int) -> MoveResult:
        """Top card of a grid cell onto its own color's collection."""
        blocked = self._blocked()
        if blocked:
            return blocked
        problem = self._grid_source_problem((row, col))
        if problem:
            return self._reject(problem)
        s = self.session
        assert s is not None
        card = s.grid.cell(row, col).top_card
        assert card is not None
        if not can_add_to_collection(s.collections[card.color], card.number, s.difficulty.max_number):
            return self._reject(f"{card.label()} doesn't fit in the {card.color.value} collection")
        self._push_snapshot()
        s.grid.cell(row, col).stack.pop()
        s.collections[card.color].append(card.number)
        s.grid.unlock_adjacent(row, col)
        return self._commit('collect', f'Collected {card.color.value.capitalize()} {card.number}', check_win=True)

    def move_card_from_grid(self, source: Coord, target: Coord) -> MoveResult:
        blocked = self._blocked()
        if blocked:
            return blocked
        problem = self._grid_source_problem(source) or self._empty_target_problem(target)
        if problem:
            return self._reject(problem)
        s = self._push_snapshot()
        (sr, sc), (tr, tc) = source, target
        src = s.grid.cell(sr, sc)
        dst = s.grid.cell(tr, tc)
        dst.stack.append(src.stack.pop())
        dst.unlocked = True
        if src.is_empty:
            s.grid.unlock_above(sr, sc)
        s.grid.unlock_adjacent(sr, sc)
        s.grid.unlock_adjacent(tr, tc)
        return self._commit('grid_to_grid', f'Moved card to ({tr},{tc})')

    def move_card_from_grid_to_temp_slot(self, source: Coord, slot: int) -> MoveResult:
        blocked = self._blocked()
        if blocked:
            return blocked
        problem = self._grid_source_problem(source)
        if problem:
            return self._reject(problem)
        if not _slot_in_range(slot):
            return self._reject(f'No temp slot {slot}')
        s = self.session
        assert s is not None
        sr, sc = source
        card = s.grid.cell(sr, sc).top_card
        assert card is not None
        if not can_add_to_temp_slot(s.temp_slots[slot], card):
            return self._reject("Card doesn't fit in this stack")
        self._push_snapshot()
        src = s.grid.cell(sr, sc)
        add_to_temp_slot(s.temp_slots[slot], src.stack.pop())
        if src.is_empty:
            s.grid.unlock_above(sr, sc)
        s.grid.unlock_adjacent(sr, sc)
        return self._commit('grid_to_temp', f'Moved {card.label()} to stack {slot + 1}')

    def move_card_from_grid_to_collection(self, source: Coord, color: CardColor) -> MoveResult:
        blocked = self._blocked()
        if blocked:
            return blocked
        problem = self._grid_source_problem(source)
        if problem:
            return self._reject(problem)
        s = self.session
        assert s is not None
        sr, sc = source
        card = s.grid.cell(sr, sc).top_card
        assert card is not None
        if card.color != color or not can_add_to_collection(s.collections[color], card.number, s.difficulty.max_number):
            return self._reject("Card doesn't fit in collection")
        self._push_snapshot()
        s.grid.cell(sr, sc).stack.pop()
        s.collections[color].append(card.number)
        s.grid.unlock_adjacent(sr, sc)
        return self._commit('grid_to_collection', f'Collected {color.value.capitalize()} {card.number}', check_win=True)

    # ---- temp slot sources ----

    def move_card_from_temp_slot(self, slot: int, target: Coord) -> MoveResult:
        """Whole temp-slot stack onto an empty grid cell."""
        blocked = self._blocked()
        if blocked:
            return blocked
        if not _slot_in_range(slot):
            return self._reject(f'No temp slot {slot}')
        s = self.session
        assert s is not None
        if not s.temp_slots[slot]:
            return self._reject('No cards to move')
        problem = self._empty_target_problem(target)
        if problem:
            return self._reject(problem)
        self._push_snapshot()
        tr, tc = target
        dst = s.grid.cell(tr, tc)
        dst.stack.extend(s.temp_slots[slot])
        s.temp_slots[slot] = []
        dst.unlocked = True
        s.grid.unlock_adjacent(tr, tc)
        return self._commit('temp_to_grid', f'Moved stack {slot + 1} to ({tr},{tc})')

    def move_card_between_temp_slots(self, source: int, target: int) -> MoveResult:
        """Moves a whole stack; onto a non-empty slot it concatenates without a run check."""
        blocked = self._blocked()
        if blocked:
            return blocked
        if not _slot_in_range(source) or not _slot_in_range(target):
            return self._reject('No such temp slot')
        if source == target:
            return self._reject('Source and target are the same stack')
        s = self.session
        assert s is not None
        if not s.temp_slots[source]:
            return self._reject('No cards to move')
        self._push_snapshot()
        moved = s.temp_slots[source]
        s.temp_slots[source] = []
        s.temp_slots[target].extend(moved)
        if not is_run(s.temp_slots[target]):
            logger.debug('Temp slot %d now holds a broken run after merge', target)
        return self._commit('temp_to_temp', f'Moved stack {source + 1} to stack {target + 1}')

    def move_card_from_temp_slot_to_collection(self, slot: int, color: CardColor) -> MoveResult:
        """Top card of a temp slot onto a collection."""
        blocked = self._blocked()
        if blocked:
            return blocked
        if not _slot_in_range(slot):
            return self._reject(f'No temp slot {slot}')
        s = self.session
        assert s is not None
        if not s.temp_slots[slot]:
            return self._reject("Card doesn't fit in collection")
        card = s.temp_slots[slot][-1]
        if card.color != color or not can_add_to_collection(s.collections[color], card.number, s.difficulty.max_number):
            return self._reject("Card doesn't fit in collection")
        self._push_snapshot()
        s.temp_slots[slot].pop()
        s.collections[color].append(card.number)
        return self._commit('temp_to_collection', f'Collected {color.value.capitalize()} {card.number}', check_win=True)

    def move_slot_stack_to_collection(self, slot: int, color: CardColor) -> MoveResult:
        """Whole temp-slot run onto a collection, ordered to follow its direction."""
        blocked = self._blocked()
        if blocked:
            return blocked
        if not _slot_in_range(slot):
            return self._reject('No stack selected')
        s = self.session
        assert s is not None
        stack = s.temp_slots[slot]
        collection = s.collections[color]
        if not can_add_slot_stack_to_collection(stack, collection, color, s.difficulty.max_number):
            return self._reject("Stack doesn't fit in collection")
        self._push_snapshot()
        numbers = ordered_for_collection(stack, collection)
        collection.extend(numbers)
        s.temp_slots[slot] = []
        return self._commit('stack_to_collection', f'Collected {len(numbers)} cards to {color.value.capitalize()}',
                            check_win=True)

    # ---- collection sources ----

    def _collection_source_problem(self, color: CardColor, index: int) -> Optional[str]:
        s = self.session
        assert s is not None
        collection = s.collections[color]
        if not collection:
            return f'The {color.value} collection is empty'
        if index != -1 and index != len(collection) - 1:
            return 'Only the last card of a collection can be moved'
        return None

    def move_card_from_collection(self, color: CardColor, index: int, target: Coord) -> MoveResult:
        """Whole collection (index -1) or its last card onto an empty grid cell."""
        blocked = self._blocked()
        if blocked:
            return blocked
        problem = self._collection_source_problem(color, index) or self._empty_target_problem(target)
        if problem:
            return self._reject(problem)
        s = self._push_snapshot()
        tr, tc = target
        dst = s.grid.cell(tr, tc)
        if index == -1:
            dst.stack.extend(Card(n, color) for n in s.collections[color])
            s.collections[color] = []
        else:
            dst.stack.append(Card(s.collections[color].pop(), color))
        dst.unlocked = True
        s.grid.unlock_adjacent(tr, tc)
        return self._commit('collection_to_grid', f'Moved {color.value} cards to ({tr},{tc})')

    def move_card_from_collection_to_temp_slot(self, color: CardColor, index: int, slot: int) -> MoveResult:
        blocked = self._blocked()
        if blocked:
            return blocked
        problem = self._collection_source_problem(color, index)
        if problem:
            return self._reject(problem)
        if not _slot_in_range(slot):
            return self._reject(f'No temp slot {slot}')
        s = self.session
        assert s is not None
        if index == -1:
            if s.temp_slots[slot]:
                return self._reject("Can't move entire collection to occupied slot")
            self._push_snapshot()
            s.temp_slots[slot] = [Card(n, color) for n in s.collections[color]]
            s.collections[color] = []
        else:
            card = Card(s.collections[color][-1], color)
            if not can_add_to_temp_slot(s.temp_slots[slot], card):
                return self._reject("Card doesn't fit in this stack")
            self._push_snapshot()
            s.collections[color].pop()
            add_to_temp_slot(s.temp_slots[slot], card)
        return self._commit('collection_to_temp', f'Moved {color.value} cards to stack {slot + 1}')

    # ---- selection-driven forms ----

    def move_to_empty_cell(self, row: int, col: int) -> MoveResult:
        s = self.session
        selection = s.selection if s is not None else None
        if not isinstance(selection, GridSelection):
            return self._blocked() or self._reject('No grid cell selected')
        return self.move_card_from_grid((selection.row, selection.col), (row, col))

    def move_from_temp_to_empty_cell(self, row: int, col: int) -> MoveResult:
        s = self.session
        selection = s.selection if s is not None else None
        if not isinstance(selection, TempSlotSelection):
            return self._blocked() or self._reject('No stack selected')
        return self.move_card_from_temp_slot(selection.slot, (row, col))

    def move_from_collection_to_empty_cell(self, row: int, col: int) -> MoveResult:
        s = self.session
        selection = s.selection if s is not None else None
        if not isinstance(selection, CollectionSelection):
            return self._blocked() or self._reject('No collection selected')
        return self.move_card_from_collection(selection.color, selection.index, (row, col))

    def move_to_temp_slot(self, slot: int) -> MoveResult:
        s = self.session
        selection = s.selection if s is not None else None
        if isinstance(selection, GridSelection):
            return self.move_card_from_grid_to_temp_slot((selection.row, selection.col), slot)
        if isinstance(selection, CollectionSelection):
            return self.move_card_from_collection_to_temp_slot(selection.color, selection.index, slot)
        return self._blocked() or self._reject('Nothing selected')

    # ---- utilities ----

    def undo_move(self) -> MoveResult:
        """Restores the last snapshot; the undo itself costs one move."""
        blocked = self._blocked()
        if blocked:
            return blocked
        s = self.session
        assert s is not None
        if not s.history:
            return self._reject('Nothing to undo')
        snap = s.history.pop()
        s.restore(snap)
        s.moves = snap.moves + UNDO_PENALTY
        s.selection = None
        logger.debug('Undo (moves=%d)', s.moves)
        self._emit('undo', moves=s.moves)
        return MoveResult(ok=True, message=f'Move undone (+{UNDO_PENALTY} move)')

    def shuffle_cards(self) -> MoveResult:
        """Re-deals the cards left on the grid with process-wide randomness."""
        blocked = self._blocked()
        if blocked:
            return blocked
        s = self.session
        assert s is not None
        if s.grid.card_count() == 0:
            return self._reject('No cards to shuffle')
        self._push_snapshot()
        pool: List[Card] = []
        for _, cell in s.grid.cells():
            pool.extend(cell.stack)
            cell.stack = []
        s.grid.lock_all()
        self.rng.shuffle(pool)

        index = 0
        lo, hi = SHUFFLE_STACK_SIZES
        for _, cell in s.grid.cells():
            if index >= len(pool):
                break
            size = min(self.rng.randint(lo, hi), len(pool) - index)
            cell.stack.extend(pool[index:index + size])
            index += size
        while index < len(pool):
            cell = s.grid.cell(self.rng.randrange(s.grid.rows), self.rng.randrange(s.grid.cols))
            if len(cell.stack) < SHUFFLE_FALLBACK_CAP:
                cell.stack.append(pool[index])
                index += 1

        s.grid.unlock_bottom_row()
        s.moves += SHUFFLE_PENALTY
        s.selection = None
        logger.debug('Shuffled %d cards (moves=%d)', len(pool), s.moves)
        self._emit('shuffle', moves=s.moves)
        return MoveResult(ok=True, message=f'Cards shuffled! (+{SHUFFLE_PENALTY} moves)')


def _slot_in_range(slot: int) -> bool:
    return isinstance(slot, int) and not isinstance(slot, bool) and 0 <= slot < TEMP_SLOT_COUNT
