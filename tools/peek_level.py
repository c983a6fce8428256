#!/usr/bin/env python3
"""
Print one catalog level by seed id, with the starting unlock mask applied.

Usage:
  python tools/peek_level.py H042
  python tools/peek_level.py e007 --json
"""
from __future__ import annotations

import argparse
import json
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from game import generate_grid, normalize_seed_id  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Print a Mathstack level")
    parser.add_argument("seed_id", help="Seed id such as E001, M120, H042")
    parser.add_argument("--json", action="store_true", help="Print the layout as JSON instead of a grid")
    args = parser.parse_args()

    try:
        difficulty, seed_id = normalize_seed_id(args.seed_id)
    except ValueError as e:
        parser.error(str(e))
    # Catalog seeds are the level number, so one level can be built without the whole table.
    grid = generate_grid(difficulty, int(seed_id[1:]))
    grid.unlock_bottom_row()

    if args.json:
        rows = [
            [[card.label() for card in grid.cell(r, c).stack] for c in range(grid.cols)]
            for r in range(grid.rows)
        ]
        print(json.dumps({"seedId": seed_id, "difficulty": difficulty.value, "grid": rows}))
        return
    print(f"{seed_id} ({difficulty.display_name}, {difficulty.deck_size} cards)")
    print(grid.pretty())


if __name__ == "__main__":
    main()
