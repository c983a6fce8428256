from __future__ import annotations

# Facade module that re-exports Mathstack core functionality.
# Kept as the single import surface for the Flask app, tools and tests.
# Single-responsibility modules live under mathstack_core/*.

from mathstack_core.cards import COLORS, Card, CardColor, Difficulty, build_deck
from mathstack_core.rng import SeededRng
from mathstack_core.grid import Coord, Grid, GridCell, Layout
from mathstack_core.generator import find_integrity_problems, generate_grid
from mathstack_core.catalog import LEVEL_COUNT, Level, LevelCatalog, format_seed_id, normalize_seed_id
from mathstack_core.rules import (
    TEMP_SLOT_COUNT,
    add_to_temp_slot,
    can_add_slot_stack_to_collection,
    can_add_to_collection,
    can_add_to_temp_slot,
    is_run,
)
from mathstack_core.clock import SessionClock
from mathstack_core.state import (
    CollectionSelection,
    GameResult,
    GameSession,
    GridSelection,
    MoveResult,
    Snapshot,
    TempSlotSelection,
)
from mathstack_core.engine import SAVE_KEY, PuzzleEngine
from mathstack_core.scoring import (
    experience_for_quick_score,
    experience_for_result,
    final_score,
    format_time,
    quick_score,
)
from mathstack_core.codec import SavedGame, decode, encode, session_to_dict
from mathstack_core.db import MemoryBlobStore, SqliteBlobStore, _ensure_db_dir, _resolve_db_path
from mathstack_core.stats import SqliteStatistics


def main() -> None:
    # CLI driver delegated to mathstack_core.cli
    from mathstack_core.cli import main as _main
    _main()


if __name__ == '__main__':
    main()
