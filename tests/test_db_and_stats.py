import os
import tempfile
import unittest

from game import (
    Difficulty,
    GameResult,
    MemoryBlobStore,
    SqliteBlobStore,
    SqliteStatistics,
    _ensure_db_dir,
    _resolve_db_path,
)


class TestBlobStores(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.tmp.name, "nested", "store.db")

    def tearDown(self):
        self.tmp.cleanup()

    def test_given_nested_path_when_resolving_then_directory_is_created(self):
        resolved = _resolve_db_path(self.db_path)
        self.assertEqual(resolved, self.db_path)
        self.assertTrue(os.path.isdir(os.path.dirname(self.db_path)))
        _ensure_db_dir(os.path.join(self.tmp.name, "a", "b", "c.db"))
        self.assertTrue(os.path.isdir(os.path.join(self.tmp.name, "a", "b")))

    def test_given_sqlite_store_when_putting_and_getting_then_bytes_round_trip(self):
        store = SqliteBlobStore(self.db_path)
        self.assertIsNone(store.get("saved_game"))
        store.put("saved_game", b"\x00abc")
        self.assertEqual(store.get("saved_game"), b"\x00abc")
        store.put("saved_game", b"second")
        self.assertEqual(SqliteBlobStore(self.db_path).get("saved_game"), b"second")
        store.delete("saved_game")
        self.assertIsNone(store.get("saved_game"))
        store.delete("saved_game")

    def test_given_memory_store_when_used_then_same_contract(self):
        store = MemoryBlobStore()
        self.assertIsNone(store.get("k"))
        store.put("k", bytearray(b"v"))
        self.assertEqual(store.get("k"), b"v")
        store.delete("k")
        store.delete("k")
        self.assertIsNone(store.get("k"))


class TestSqliteStatistics(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.stats = SqliteStatistics(os.path.join(self.tmp.name, "stats.db"))

    def tearDown(self):
        self.tmp.cleanup()

    def _win(self, difficulty=Difficulty.EASY, seed_id="E001", secs=60, moves=25, score=1600,
             finished_at="2024-01-01T00:00:00Z"):
        return self.stats.record_result(GameResult(difficulty, seed_id, secs, moves, score, finished_at))

    def test_given_empty_database_when_summarizing_then_zeroes(self):
        s = self.stats.summary()
        self.assertEqual(s["played"], 0)
        self.assertEqual(s["won"], 0)
        self.assertEqual(s["winRate"], 0.0)
        self.assertIsNone(s["bestTime"])
        self.assertEqual(s["bestTimeFormatted"], "--:--")
        self.assertEqual(self.stats.history(), [])
        self.assertEqual(self.stats.streaks()["longestWinStreak"], 0)

    def test_given_win_when_recorded_then_xp_returned_and_summary_updated(self):
        xp = self._win(score=1000)
        self.assertEqual(xp, 30)
        self.stats.record_abandoned(Difficulty.EASY, "E002")
        s = self.stats.summary(Difficulty.EASY)
        self.assertEqual(s["played"], 2)
        self.assertEqual(s["won"], 1)
        self.assertAlmostEqual(s["winRate"], 0.5)
        self.assertEqual(s["bestScore"], 1000)
        self.assertEqual(s["bestTime"], 60)
        self.assertEqual(s["bestTimeFormatted"], "01:00")
        self.assertEqual(s["averageTime"], "01:00")
        self.assertEqual(s["bestMoves"], 25)
        self.assertEqual(s["totalXp"], 30)

    def test_given_several_difficulties_when_filtering_summary_then_only_that_difficulty(self):
        self._win()
        self._win(Difficulty.HARD, "H001", secs=200, moves=90, score=2950)
        self.stats.record_given_up(Difficulty.HARD, "H002")
        self.assertEqual(self.stats.summary(Difficulty.EASY)["played"], 1)
        hard = self.stats.summary(Difficulty.HARD)
        self.assertEqual((hard["played"], hard["won"]), (2, 1))
        self.assertEqual(hard["bestScore"], 2950)
        self.assertEqual(self.stats.summary()["played"], 3)
        self.assertEqual(self.stats.summary(Difficulty.MEDIUM)["played"], 0)

    def test_given_wins_when_listing_history_then_newest_first_and_limited(self):
        self._win(seed_id="E001", secs=61)
        self.stats.record_abandoned(Difficulty.EASY, "E009")
        self._win(seed_id="E002", secs=125)
        self._win(seed_id="E003", secs=90)
        rows = self.stats.history(limit=2)
        self.assertEqual([r["seedId"] for r in rows], ["E003", "E002"])
        self.assertEqual(rows[1]["time"], "02:05")
        self.assertEqual(rows[0]["difficulty"], "easy")
        self.assertEqual(len(self.stats.history()), 3)

    def test_given_mixed_outcomes_when_computing_streaks_then_current_and_longest(self):
        self._win()
        self._win()
        self._win()
        self.stats.record_given_up(Difficulty.EASY)
        self.stats.record_abandoned(Difficulty.EASY)
        self._win()
        self.assertEqual(self.stats.streaks(), {
            "currentWinStreak": 1,
            "longestWinStreak": 3,
            "currentLossStreak": 0,
            "longestLossStreak": 2,
        })


if __name__ == "__main__":
    unittest.main(verbosity=2)
