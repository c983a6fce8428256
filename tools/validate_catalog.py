#!/usr/bin/env python3
"""
Regenerate catalog levels and check every one of them for deal integrity.

- Rebuilds all levels per difficulty (or the first N if a limit is provided).
- Checks:
  * exactly one of each card of the deck (no duplicates, none missing)
  * no cell above the forced-sweep cap
  * the same seed regenerates an identical grid
- Prints a JSON summary with stack-height histogram and any problem samples

Usage:
  python tools/validate_catalog.py          # all 999 levels per difficulty
  python tools/validate_catalog.py 50       # first 50 per difficulty
"""
from __future__ import annotations

import json
import os
import sys
from collections import Counter
from typing import Any, Dict, List, Optional

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from game import LEVEL_COUNT, Difficulty, find_integrity_problems, format_seed_id, generate_grid  # noqa: E402
from mathstack_core.generator import FORCED_SWEEP_CAP  # noqa: E402


def validate(limit: Optional[int] = None) -> Dict[str, Any]:
    count = limit if (limit is not None and limit > 0) else LEVEL_COUNT
    summary: Dict[str, Any] = {"levelsPerDifficulty": count, "ok": True, "difficulties": {}}
    for difficulty in Difficulty:
        heights: Counter = Counter()
        empty_cells = 0
        problems: List[str] = []
        for i in range(1, count + 1):
            seed_id = format_seed_id(difficulty, i)
            grid = generate_grid(difficulty, i)
            for p in find_integrity_problems(grid, difficulty):
                problems.append(f"{seed_id}: {p}")
            for _, cell in grid.cells():
                heights[len(cell.stack)] += 1
                if cell.is_empty:
                    empty_cells += 1
            tallest = max(len(cell.stack) for _, cell in grid.cells())
            if tallest > FORCED_SWEEP_CAP:
                problems.append(f"{seed_id}: stack of {tallest} exceeds cap {FORCED_SWEEP_CAP}")
            if generate_grid(difficulty, i).to_layout() != grid.to_layout():
                problems.append(f"{seed_id}: not deterministic")
        summary["difficulties"][difficulty.value] = {
            "deckSize": difficulty.deck_size,
            "gridSize": list(difficulty.grid_size),
            "stackHeights": {str(h): n for h, n in sorted(heights.items())},
            "maxHeight": max(heights) if heights else 0,
            "emptyCells": empty_cells,
            "problemCount": len(problems),
            "problemSample": problems[:10],
        }
        if problems:
            summary["ok"] = False
    return summary


def main() -> None:
    limit = int(sys.argv[1]) if len(sys.argv) > 1 else None
    summary = validate(limit)
    print(json.dumps(summary, indent=2))
    sys.exit(0 if summary["ok"] else 1)


if __name__ == "__main__":
    main()
