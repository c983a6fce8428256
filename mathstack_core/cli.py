from __future__ import annotations

import argparse
from typing import List, Optional

from .cards import COLORS, CardColor, Difficulty
from .catalog import LevelCatalog, normalize_seed_id
from .db import DEFAULT_DB, SqliteBlobStore
from .engine import PuzzleEngine
from .scoring import format_time, quick_score
from .state import GameSession, MoveResult
from .stats import SqliteStatistics

HELP = """Commands (rows/cols from 0, stacks 1-3, colors by name or letter):
  c R C            collect top card of (R,C)
  g R C R2 C2      grid card to empty cell
  gt R C S         grid card to stack S
  gc R C COLOR     grid card to collection
  tg S R C         stack S to empty cell
  tt S S2          stack S onto stack S2
  tc S COLOR       top card of stack S to collection
  sc S COLOR       whole stack S to collection
  cg COLOR I R C   collection card I (or 'all') to empty cell
  ct COLOR I S     collection card I (or 'all') to stack S
  u | undo         undo (+1 move)
  s | shuffle      shuffle grid (+2 moves)
  p | pause        pause / resume
  save             save game
  giveup           give up
  q | quit         save and exit
  h | help         this text"""


def _slot(text: str) -> int:
    return int(text) - 1


def _index(text: str) -> int:
    return -1 if text.lower() in ('all', '-1') else int(text)


def render(session: GameSession) -> str:
    lines = [
        f"{session.difficulty.display_name} {session.seed_id}   moves {session.moves}   "
        f"time {format_time(session.elapsed_seconds)}{'   [paused]' if session.paused else ''}",
        session.grid.pretty(),
        '',
        'Collections: ' + '  '.join(
            f"{color.letter}[{','.join(str(n) for n in session.collections[color])}]" for color in COLORS
        ),
        'Stacks:      ' + '  '.join(
            f"{i + 1}[{' '.join(card.label() for card in slot)}]" for i, slot in enumerate(session.temp_slots)
        ),
    ]
    return '\n'.join(lines)


def execute(engine: PuzzleEngine, tokens: List[str]) -> MoveResult:
    """Runs one text command. Raises ValueError for commands that do not parse."""
    cmd, args = tokens[0].lower(), tokens[1:]
    if cmd == 'c' and len(args) == 2:
        return engine.collect_card(int(args[0]), int(args[1]))
    if cmd == 'g' and len(args) == 4:
        return engine.move_card_from_grid((int(args[0]), int(args[1])), (int(args[2]), int(args[3])))
    if cmd == 'gt' and len(args) == 3:
        return engine.move_card_from_grid_to_temp_slot((int(args[0]), int(args[1])), _slot(args[2]))
    if cmd == 'gc' and len(args) == 3:
        return engine.move_card_from_grid_to_collection((int(args[0]), int(args[1])), CardColor.parse(args[2]))
    if cmd == 'tg' and len(args) == 3:
        return engine.move_card_from_temp_slot(_slot(args[0]), (int(args[1]), int(args[2])))
    if cmd == 'tt' and len(args) == 2:
        return engine.move_card_between_temp_slots(_slot(args[0]), _slot(args[1]))
    if cmd == 'tc' and len(args) == 2:
        return engine.move_card_from_temp_slot_to_collection(_slot(args[0]), CardColor.parse(args[1]))
    if cmd == 'sc' and len(args) == 2:
        return engine.move_slot_stack_to_collection(_slot(args[0]), CardColor.parse(args[1]))
    if cmd == 'cg' and len(args) == 4:
        return engine.move_card_from_collection(CardColor.parse(args[0]), _index(args[1]), (int(args[2]), int(args[3])))
    if cmd == 'ct' and len(args) == 3:
        return engine.move_card_from_collection_to_temp_slot(CardColor.parse(args[0]), _index(args[1]), _slot(args[2]))
    if cmd in ('u', 'undo') and not args:
        return engine.undo_move()
    if cmd in ('s', 'shuffle') and not args:
        return engine.shuffle_cards()
    raise ValueError(f'Could not parse: {" ".join(tokens)}')


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description='Mathstack puzzle: print a level or play in the terminal')
    parser.add_argument('--difficulty', choices=[d.value for d in Difficulty], default='easy', help='Level difficulty')
    parser.add_argument('--seed-id', default=None, help='Catalog level id such as E001 or H042')
    parser.add_argument('--db', default=DEFAULT_DB, help='SQLite DB file path for saves and statistics')
    parser.add_argument('--levels', type=int, default=None, help='Catalog size per difficulty')
    parser.add_argument('--play', action='store_true', help='Play interactively')
    parser.add_argument('--resume', action='store_true', help='Resume the saved game if there is one')
    args = parser.parse_args(argv)

    difficulty = Difficulty.parse(args.difficulty)
    seed_id: Optional[str] = None
    if args.seed_id:
        try:
            difficulty, seed_id = normalize_seed_id(args.seed_id)
        except ValueError as e:
            parser.error(str(e))

    catalog = LevelCatalog(args.levels) if args.levels else LevelCatalog()

    if not args.play:
        level = catalog.get_level(difficulty, seed_id) if seed_id else catalog.get_random_level(difficulty)
        if level is None:
            print(f'Level {seed_id} not found')
            return
        grid = level.create_grid()
        grid.unlock_bottom_row()
        print(f'Level {level.seed_id} ({difficulty.display_name}, {difficulty.deck_size} cards):')
        print(grid.pretty())
        return

    engine = PuzzleEngine(catalog=catalog, store=SqliteBlobStore(args.db), stats=SqliteStatistics(args.db))
    if args.resume and engine.load_saved_game():
        engine.resume()
        print('Resumed saved game.')
    elif seed_id:
        engine.start_game_with_seed(difficulty, seed_id)
    else:
        engine.start_new_game(difficulty)
    print(HELP)

    while True:
        session = engine.session
        assert session is not None
        print()
        print(render(session))
        try:
            text = input('> ').strip()
        except EOFError:
            text = 'q'
        if not text:
            continue
        tokens = text.split()
        cmd = tokens[0].lower()
        if cmd in ('q', 'quit'):
            if engine.save_and_exit_game():
                print('Game saved.')
            return
        if cmd in ('h', 'help'):
            print(HELP)
            continue
        if cmd in ('p', 'pause'):
            if not engine.pause():
                engine.resume()
            continue
        if cmd == 'save':
            print('Game saved.' if engine.save_game() else 'Nothing to save.')
            continue
        if cmd == 'giveup':
            engine.give_up_game()
            print('Game over. Better luck next time!')
            return
        try:
            result = execute(engine, tokens)
        except ValueError as e:
            print(e)
            continue
        print(result.message)
        engine.request_autosave_if_due()
        if result.won:
            q = quick_score(session.difficulty, session.elapsed_seconds, session.moves)
            print(f'You won! Score {result.score} in {format_time(session.elapsed_seconds)} '
                  f'with {session.moves} moves (rating {q}/100).')
            return


if __name__ == '__main__':
    main()
