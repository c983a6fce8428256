from __future__ import annotations

from typing import Dict, List, Sequence

from .cards import COLORS, Card, CardColor

TEMP_SLOT_COUNT = 3

Collections = Dict[CardColor, List[int]]
TempSlots = List[List[Card]]


def empty_collections() -> Collections:
    return {color: [] for color in COLORS}


def empty_temp_slots() -> TempSlots:
    return [[] for _ in range(TEMP_SLOT_COUNT)]


def is_ascending(collection: Sequence[int]) -> bool:
    """Direction is fixed by the first number: 1 means ascending, anything else descending."""
    return bool(collection) and collection[0] == 1


def can_add_to_collection(collection: Sequence[int], number: int, max_number: int) -> bool:
    if not collection:
        return number == 1 or number == max_number
    last = collection[-1]
    if is_ascending(collection):
        return number == last + 1 and number <= max_number
    return number == last - 1 and number >= 1


def _extends(end: Card, card: Card) -> bool:
    return card.color == end.color and abs(card.number - end.number) == 1


def can_add_to_temp_slot(slot: Sequence[Card], card: Card) -> bool:
    """Empty slots take anything; otherwise the card must extend the run at its top or bottom."""
    if not slot:
        return True
    return _extends(slot[-1], card) or _extends(slot[0], card)


def is_run(stack: Sequence[Card]) -> bool:
    """One color, consecutive numbers once sorted. Temp merges can break this."""
    if not stack:
        return False
    if any(card.color != stack[0].color for card in stack):
        return False
    numbers = sorted(card.number for card in stack)
    return all(b - a == 1 for a, b in zip(numbers, numbers[1:]))


def add_to_temp_slot(slot: List[Card], card: Card) -> None:
    """Appends on top when that extends the run, else inserts at the bottom."""
    if not slot or _extends(slot[-1], card):
        slot.append(card)
    elif _extends(slot[0], card):
        slot.insert(0, card)
    else:
        raise ValueError(f'{card.label()} does not extend the run')


def can_add_slot_stack_to_collection(stack: Sequence[Card], collection: Sequence[int],
                                     color: CardColor, max_number: int) -> bool:
    if not stack or stack[0].color != color:
        return False
    numbers = [card.number for card in stack]
    if len(numbers) == 1:
        return can_add_to_collection(collection, numbers[0], max_number)
    if not is_run(stack):
        return False
    lo, hi = min(numbers), max(numbers)
    if not collection:
        return lo == 1 or hi == max_number
    if is_ascending(collection):
        return lo == collection[-1] + 1
    return hi == collection[-1] - 1


def ordered_for_collection(stack: Sequence[Card], collection: Sequence[int]) -> List[int]:
    """Numbers of a run in the order they are appended to the collection."""
    numbers = sorted(card.number for card in stack)
    if collection:
        ascending = is_ascending(collection)
    else:
        ascending = numbers[0] == 1
    return numbers if ascending else numbers[::-1]


def all_complete(collections: Collections, max_number: int) -> bool:
    return all(len(collections.get(color, [])) == max_number for color in COLORS)
