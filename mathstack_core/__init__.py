"""
Mathstack core Python package.

Pure puzzle logic plus the small sqlite collaborators the host app and CLI use.
Modules:
- cards.py: CardColor, Difficulty, Card, deck building
- rng.py: SeededRng (deterministic 64-bit LCG)
- grid.py: GridCell, Grid and the unlock transitions
- generator.py: seeded level generation and integrity check
- catalog.py: LevelCatalog, seed-id formatting/validation
- rules.py: legality predicates for collections and temp slots
- clock.py: SessionClock (start + accumulated pause)
- state.py: GameSession, selections, snapshots, MoveResult, GameResult
- engine.py: PuzzleEngine (lifecycle, moves, undo, shuffle, win, autosave)
- scoring.py: final score, quick score, XP curves
- codec.py: save-game encode/decode
- db.py: sqlite blob store
- stats.py: sqlite statistics recorder
- cli.py: terminal driver
"""
