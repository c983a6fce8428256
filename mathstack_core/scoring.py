from __future__ import annotations

from typing import Dict

from .cards import Difficulty

MIN_FINAL_SCORE = 100
MOVE_PENALTY = 5

BASE_SCORE: Dict[Difficulty, int] = {Difficulty.EASY: 1000, Difficulty.MEDIUM: 1500, Difficulty.HARD: 2000}
IDEAL_TIME: Dict[Difficulty, int] = {Difficulty.EASY: 120, Difficulty.MEDIUM: 180, Difficulty.HARD: 300}
IDEAL_MOVES: Dict[Difficulty, int] = {Difficulty.EASY: 30, Difficulty.MEDIUM: 50, Difficulty.HARD: 80}
# Completion time-bonus multiplier. The shipped game uses 10 on every difficulty.
TIME_BONUS_MULTIPLIER: Dict[Difficulty, int] = {Difficulty.EASY: 10, Difficulty.MEDIUM: 10, Difficulty.HARD: 10}

QUICK_BASE: Dict[Difficulty, int] = {Difficulty.EASY: 60, Difficulty.MEDIUM: 70, Difficulty.HARD: 80}
QUICK_IDEAL_TIME: Dict[Difficulty, int] = {Difficulty.EASY: 120, Difficulty.MEDIUM: 180, Difficulty.HARD: 300}
QUICK_IDEAL_MOVES: Dict[Difficulty, int] = {Difficulty.EASY: 30, Difficulty.MEDIUM: 50, Difficulty.HARD: 80}

BASE_XP: Dict[Difficulty, int] = {Difficulty.EASY: 50, Difficulty.MEDIUM: 75, Difficulty.HARD: 100}
XP_SCORE_DIVISOR: Dict[Difficulty, int] = {Difficulty.EASY: 10, Difficulty.MEDIUM: 15, Difficulty.HARD: 20}
XP_SCORE_OFFSET: Dict[Difficulty, int] = {Difficulty.EASY: 60, Difficulty.MEDIUM: 70, Difficulty.HARD: 80}


def _div_toward_zero(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


def final_score(difficulty: Difficulty, elapsed_seconds: int, moves: int) -> int:
    """Completion score: base + time bonus - move penalty, never below 100."""
    time_bonus = max(0, IDEAL_TIME[difficulty] - elapsed_seconds) * TIME_BONUS_MULTIPLIER[difficulty]
    move_penalty = max(0, moves - IDEAL_MOVES[difficulty]) * MOVE_PENALTY
    return max(MIN_FINAL_SCORE, BASE_SCORE[difficulty] + time_bonus - move_penalty)


def quick_score(difficulty: Difficulty, elapsed_seconds: int, moves: int) -> int:
    """0..100 rating used for history entries and profile XP."""
    bonus = max(0, QUICK_IDEAL_TIME[difficulty] - elapsed_seconds) // 10
    penalty = max(0, moves - QUICK_IDEAL_MOVES[difficulty]) // 5
    return max(0, min(100, QUICK_BASE[difficulty] + bonus - penalty))


def normalized_score(difficulty: Difficulty, score: int) -> int:
    raw = _div_toward_zero(score - BASE_SCORE[difficulty], XP_SCORE_DIVISOR[difficulty]) + XP_SCORE_OFFSET[difficulty]
    return max(0, min(100, raw))


def experience_for_result(difficulty: Difficulty, score: int) -> int:
    return int(BASE_XP[difficulty] * normalized_score(difficulty, score) / 100)


def experience_for_quick_score(difficulty: Difficulty, score: int) -> int:
    return int(BASE_XP[difficulty] * score / 100)


def format_time(seconds: int) -> str:
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"
