from __future__ import annotations

import logging
from collections import Counter
from typing import List, Tuple

from .cards import Card, Difficulty, build_deck
from .grid import Coord, Grid
from .rng import SeededRng

logger = logging.getLogger(__name__)

EASY_STACK_PERCENT = 15
EASY_SINGLE_PERCENT = 85
NORMAL_STACK_PERCENT = 30
NORMAL_STACK_SIZES = (2, 4)
RANDOM_PASS_CAP = 5
RANDOM_PASS_MAX_ATTEMPTS = 1000
FORCED_SWEEP_CAP = 6


def generate_grid(difficulty: Difficulty, seed: int) -> Grid:
    """Deals the full deck for a difficulty onto its grid, deterministically per seed.

    All cells come back locked; unlocking happens when a session loads the level.
    """
    rows, cols = difficulty.grid_size
    grid = Grid(rows, cols)
    rng = SeededRng(seed)

    deck = build_deck(difficulty)
    rng.shuffle(deck)

    # Stack density is tuned separately for each path, so keep them apart.
    if difficulty is Difficulty.EASY:
        dealt = _distribute_easy(grid, deck, rng)
    else:
        dealt = _distribute_normal(grid, deck, rng)
    _distribute_remaining(grid, deck, dealt, rng)

    problems = find_integrity_problems(grid, difficulty)
    if problems:
        logger.error('Level generation integrity fault (%s, seed=%d): %s', difficulty.value, seed, '; '.join(problems))
    return grid


def _shuffled_positions(rows: int, cols: int, rng: SeededRng) -> List[Coord]:
    positions = [(r, c) for r in range(rows) for c in range(cols)]
    rng.shuffle(positions)
    return positions


def _distribute_easy(grid: Grid, cards: List[Card], rng: SeededRng) -> int:
    """Visits cells in random order: occasional 2-stacks, mostly singles, some cells left empty."""
    index = 0
    for r, c in _shuffled_positions(grid.rows, grid.cols, rng):
        if index >= len(cards):
            break
        stack = grid.cell(r, c).stack
        if rng.randint(1, 100) <= EASY_STACK_PERCENT and index + 1 < len(cards):
            size = min(2, len(cards) - index)
            stack.extend(cards[index:index + size])
            index += size
        elif rng.randint(1, 100) <= EASY_SINGLE_PERCENT or r == grid.rows - 1:
            stack.append(cards[index])
            index += 1
    return index


def _distribute_normal(grid: Grid, cards: List[Card], rng: SeededRng) -> int:
    """Row-major: every cell gets a card, some get a run of 2-4."""
    index = 0
    lo, hi = NORMAL_STACK_SIZES
    for r, c in grid.coords():
        if index >= len(cards):
            break
        stack = grid.cell(r, c).stack
        if rng.randint(1, 100) <= NORMAL_STACK_PERCENT and index + 1 < len(cards):
            size = min(rng.randint(lo, hi), len(cards) - index)
            stack.extend(cards[index:index + size])
            index += size
        else:
            stack.append(cards[index])
            index += 1
    return index


def _distribute_remaining(grid: Grid, cards: List[Card], start: int, rng: SeededRng) -> None:
    """Random picks capped at RANDOM_PASS_CAP, then a row-major sweep capped at FORCED_SWEEP_CAP."""
    index = start
    attempts = 0
    while index < len(cards) and attempts < RANDOM_PASS_MAX_ATTEMPTS:
        cell = grid.cell(rng.below(grid.rows), rng.below(grid.cols))
        if len(cell.stack) < RANDOM_PASS_CAP:
            cell.stack.append(cards[index])
            index += 1
            attempts = 0
        else:
            attempts += 1

    if index < len(cards):
        logger.debug('Random pass left %d cards; forcing row-major sweep', len(cards) - index)
    for _, cell in grid.cells():
        if index >= len(cards):
            break
        if len(cell.stack) < FORCED_SWEEP_CAP:
            cell.stack.append(cards[index])
            index += 1


def find_integrity_problems(grid: Grid, difficulty: Difficulty) -> List[str]:
    """Compares the grid's cards with the full deck. Empty list means exactly one of each."""
    problems: List[str] = []
    counts = Counter(grid.cards())
    expected = set(build_deck(difficulty))

    duplicates = sorted((card for card, n in counts.items() if n > 1), key=_card_order)
    if duplicates:
        problems.append('duplicate cards: ' + ', '.join(f"{card.label()} (x{counts[card]})" for card in duplicates))

    missing = sorted(expected - set(counts), key=_card_order)
    if missing:
        problems.append('missing cards: ' + ', '.join(card.label() for card in missing))

    unexpected = sorted(set(counts) - expected, key=_card_order)
    if unexpected:
        problems.append('unexpected cards: ' + ', '.join(card.label() for card in unexpected))

    total = sum(counts.values())
    if total != difficulty.deck_size:
        problems.append(f'card count mismatch: expected {difficulty.deck_size}, got {total}')
    return problems


def _card_order(card: Card) -> Tuple[int, int]:
    return card.color.color_index, card.number
