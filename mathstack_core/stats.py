from __future__ import annotations

import logging
import sqlite3
from typing import Any, Dict, List, Optional

from .cards import Difficulty
from .db import DEFAULT_DB, _resolve_db_path, _utc_now
from .scoring import experience_for_result, format_time
from .state import GameResult

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100

OUTCOME_WON = 'won'
OUTCOME_ABANDONED = 'abandoned'
OUTCOME_GIVEN_UP = 'given_up'


def _ensure_db(conn: sqlite3.Connection) -> None:
    """Ensures the games table exists."""
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS games (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            difficulty TEXT NOT NULL,
            seed_id TEXT,
            outcome TEXT NOT NULL,
            time_seconds INTEGER,
            moves INTEGER,
            score INTEGER,
            xp INTEGER NOT NULL DEFAULT 0,
            finished_at TEXT NOT NULL
        )
        """
    )
    conn.commit()


class SqliteStatistics:
    """Records finished games and answers the summary questions a stats screen asks."""

    def __init__(self, db_path: str = DEFAULT_DB) -> None:
        self.db_path = _resolve_db_path(db_path)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        _ensure_db(conn)
        return conn

    def _insert(self, difficulty: Difficulty, seed_id: Optional[str], outcome: str,
                time_seconds: Optional[int] = None, moves: Optional[int] = None,
                score: Optional[int] = None, xp: int = 0, finished_at: Optional[str] = None) -> None:
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT INTO games (difficulty, seed_id, outcome, time_seconds, moves, score, xp, finished_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (difficulty.value, seed_id, outcome, time_seconds, moves, score, xp, finished_at or _utc_now()),
            )
            conn.commit()
        finally:
            conn.close()

    def record_result(self, result: GameResult) -> int:
        """Stores a won game; returns the XP it earned."""
        xp = experience_for_result(result.difficulty, result.score)
        self._insert(
            result.difficulty,
            result.seed_id,
            OUTCOME_WON,
            time_seconds=result.time_seconds,
            moves=result.moves,
            score=result.score,
            xp=xp,
            finished_at=result.finished_at,
        )
        logger.info('Recorded %s win %s: score=%d time=%s moves=%d xp=%d', result.difficulty.value,
                    result.seed_id, result.score, format_time(result.time_seconds), result.moves, xp)
        return xp

    def record_abandoned(self, difficulty: Difficulty, seed_id: Optional[str] = None) -> None:
        self._insert(difficulty, seed_id, OUTCOME_ABANDONED)
        logger.info('Recorded abandoned %s game %s', difficulty.value, seed_id)

    def record_given_up(self, difficulty: Difficulty, seed_id: Optional[str] = None) -> None:
        self._insert(difficulty, seed_id, OUTCOME_GIVEN_UP)
        logger.info('Recorded given-up %s game %s', difficulty.value, seed_id)

    def summary(self, difficulty: Optional[Difficulty] = None) -> Dict[str, Any]:
        where = ''
        params: tuple = ()
        if difficulty is not None:
            where = 'WHERE difficulty = ?'
            params = (difficulty.value,)
        conn = self._connect()
        try:
            row = conn.execute(
                f"""
                SELECT
                    COUNT(*),
                    SUM(CASE WHEN outcome = 'won' THEN 1 ELSE 0 END),
                    COALESCE(SUM(score), 0),
                    MAX(score),
                    MIN(time_seconds),
                    MIN(moves),
                    COALESCE(SUM(moves), 0),
                    COALESCE(SUM(time_seconds), 0),
                    COALESCE(SUM(xp), 0)
                FROM games {where}
                """,
                params,
            ).fetchone()
        finally:
            conn.close()
        played, won, total_score, best_score, best_time, best_moves, total_moves, total_time, total_xp = row
        won = int(won or 0)
        return {
            'played': int(played),
            'won': won,
            'winRate': (won / played) if played else 0.0,
            'totalScore': int(total_score),
            'averageScore': (total_score / won) if won else 0.0,
            'bestScore': best_score,
            'bestTime': best_time,
            'bestTimeFormatted': format_time(best_time) if best_time is not None else '--:--',
            'averageTime': format_time(total_time // won) if won else '--:--',
            'bestMoves': best_moves,
            'averageMoves': (total_moves / won) if won else 0.0,
            'totalXp': int(total_xp),
        }

    def history(self, limit: int = HISTORY_LIMIT) -> List[Dict[str, Any]]:
        """Won games, newest first."""
        conn = self._connect()
        try:
            cur = conn.execute(
                """
                SELECT difficulty, seed_id, time_seconds, moves, score, xp, finished_at
                FROM games WHERE outcome = 'won' ORDER BY id DESC LIMIT ?
                """,
                (int(limit),),
            )
            out: List[Dict[str, Any]] = []
            for diff, seed_id, secs, moves, score, xp, finished_at in cur.fetchall():
                out.append({
                    'difficulty': diff,
                    'seedId': seed_id,
                    'timeSeconds': secs,
                    'time': format_time(secs),
                    'moves': moves,
                    'score': score,
                    'xp': xp,
                    'finishedAt': finished_at,
                })
            return out
        finally:
            conn.close()

    def streaks(self) -> Dict[str, int]:
        """Win/loss streaks in recording order; abandoned and given-up games count as losses."""
        conn = self._connect()
        try:
            outcomes = [row[0] for row in conn.execute("SELECT outcome FROM games ORDER BY id")]
        finally:
            conn.close()
        current_win = longest_win = current_loss = longest_loss = 0
        for outcome in outcomes:
            if outcome == OUTCOME_WON:
                current_win += 1
                current_loss = 0
                longest_win = max(longest_win, current_win)
            else:
                current_loss += 1
                current_win = 0
                longest_loss = max(longest_loss, current_loss)
        return {
            'currentWinStreak': current_win,
            'longestWinStreak': longest_win,
            'currentLossStreak': current_loss,
            'longestLossStreak': longest_loss,
        }
