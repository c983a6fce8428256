from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Tuple

from .cards import Card

Coord = Tuple[int, int]
# Immutable grid contents: rows -> cells -> cards (bottom -> top).
Layout = Tuple[Tuple[Tuple[Card, ...], ...], ...]

_ORTHOGONAL = ((-1, 0), (1, 0), (0, -1), (0, 1))


@dataclass
class GridCell:
    """A stack of cards (bottom -> top) and whether its top card is playable."""
    stack: List[Card] = field(default_factory=list)
    unlocked: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.stack

    @property
    def top_card(self) -> Optional[Card]:
        return self.stack[-1] if self.stack else None

    def copy(self) -> 'GridCell':
        return GridCell(stack=list(self.stack), unlocked=self.unlocked)


class Grid:
    """Row-major 2D array of GridCell with the unlock transitions of the puzzle."""

    def __init__(self, rows: int, cols: int) -> None:
        if rows <= 0 or cols <= 0:
            raise ValueError('Grid needs positive dimensions')
        self.rows = rows
        self.cols = cols
        self._cells: List[List[GridCell]] = [[GridCell() for _ in range(cols)] for _ in range(rows)]

    @classmethod
    def from_layout(cls, layout: Layout) -> 'Grid':
        """Builds a grid from card stacks; every cell starts locked."""
        rows = len(layout)
        cols = len(layout[0]) if rows else 0
        grid = cls(rows, cols)
        for r, row in enumerate(layout):
            if len(row) != cols:
                raise ValueError('Ragged layout')
            for c, stack in enumerate(row):
                grid._cells[r][c].stack = list(stack)
        return grid

    def to_layout(self) -> Layout:
        return tuple(tuple(tuple(cell.stack) for cell in row) for row in self._cells)

    def copy(self) -> 'Grid':
        clone = Grid(self.rows, self.cols)
        clone._cells = [[cell.copy() for cell in row] for row in self._cells]
        return clone

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Grid):
            return NotImplemented
        return self.to_layout() == other.to_layout() and self.unlocked_mask() == other.unlocked_mask()

    def in_bounds(self, r: int, c: int) -> bool:
        return 0 <= r < self.rows and 0 <= c < self.cols

    def cell(self, r: int, c: int) -> GridCell:
        if not self.in_bounds(r, c):
            raise IndexError(f'Cell ({r},{c}) outside {self.rows}x{self.cols} grid')
        return self._cells[r][c]

    def coords(self) -> Iterable[Coord]:
        for r in range(self.rows):
            for c in range(self.cols):
                yield (r, c)

    def cells(self) -> Iterator[Tuple[Coord, GridCell]]:
        for r, c in self.coords():
            yield (r, c), self._cells[r][c]

    def cards(self) -> List[Card]:
        """All cards on the grid, row-major, bottom -> top within a cell."""
        out: List[Card] = []
        for _, cell in self.cells():
            out.extend(cell.stack)
        return out

    def card_count(self) -> int:
        return sum(len(cell.stack) for _, cell in self.cells())

    def unlocked_mask(self) -> Tuple[Tuple[bool, ...], ...]:
        return tuple(tuple(cell.unlocked for cell in row) for row in self._cells)

    def neighbors(self, coord: Coord) -> List[Coord]:
        """Orthogonal neighbors inside the grid (no wrap-around)."""
        r, c = coord
        return [(r + dr, c + dc) for dr, dc in _ORTHOGONAL if self.in_bounds(r + dr, c + dc)]

    # ---- unlock transitions ----

    def lock_all(self) -> None:
        for _, cell in self.cells():
            cell.unlocked = False

    def unlock_bottom_row(self) -> None:
        """Unlocks the occupied cells of the bottom-most row that holds any card."""
        for r in range(self.rows - 1, -1, -1):
            has_cards = False
            for c in range(self.cols):
                cell = self._cells[r][c]
                if not cell.is_empty:
                    cell.unlocked = True
                    has_cards = True
            if has_cards:
                break

    def unlock_adjacent(self, r: int, c: int) -> None:
        for nr, nc in self.neighbors((r, c)):
            cell = self._cells[nr][nc]
            if not cell.is_empty:
                cell.unlocked = True

    def unlock_above(self, r: int, c: int) -> None:
        if r > 0 and not self._cells[r - 1][c].is_empty:
            self._cells[r - 1][c].unlocked = True

    def pretty(self, selected: Optional[Coord] = None) -> str:
        """Text rendering: 'R5' top card, ':n' stack height, '(..)' locked, '<..>' selected."""
        lines: List[str] = []
        header = '     ' + ' '.join(f'{c:^7}' for c in range(self.cols))
        lines.append(header)
        for r in range(self.rows):
            row: List[str] = []
            for c in range(self.cols):
                cell = self._cells[r][c]
                if cell.is_empty:
                    text = '.'
                else:
                    top = cell.top_card
                    assert top is not None
                    text = top.label()
                    if len(cell.stack) > 1:
                        text += f':{len(cell.stack)}'
                    if not cell.unlocked:
                        text = f'({text})'
                if selected == (r, c):
                    text = f'<{text}>'
                row.append(f'{text:^7}')
            lines.append(f'{r:>3}  ' + ' '.join(row))
        return '\n'.join(lines)
