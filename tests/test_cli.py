import io
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from unittest import mock

from game import Card, CardColor, Difficulty, Level, MemoryBlobStore, PuzzleEngine
from mathstack_core import cli


class _OneLevel:
    count = 999

    def __init__(self, level):
        self.level = level

    def get_level(self, difficulty, seed_id):
        return self.level if seed_id == self.level.seed_id else None

    def get_random_level(self, difficulty, rng=None):
        return self.level


LEVEL = Level("E001", Difficulty.EASY, (
    ((), (), (), (), ()),
    ((), (), (), (), ()),
    ((Card(2, CardColor.RED), Card(1, CardColor.RED)), (Card(3, CardColor.GREEN),), (), (), ()),
))


class TestExecute(unittest.TestCase):
    def setUp(self):
        self.engine = PuzzleEngine(catalog=_OneLevel(LEVEL), store=MemoryBlobStore())
        self.engine.start_new_game(Difficulty.EASY)

    def test_given_collect_command_when_executed_then_card_collected(self):
        res = cli.execute(self.engine, ["c", "2", "0"])
        self.assertTrue(res.ok, res.message)
        self.assertEqual(self.engine.session.collections[CardColor.RED], [1])

    def test_given_one_based_stack_numbers_when_executed_then_mapped_to_slots(self):
        self.assertTrue(cli.execute(self.engine, ["gt", "2", "1", "3"]).ok)
        self.assertEqual(self.engine.session.temp_slots[2], [Card(3, CardColor.GREEN)])
        self.assertTrue(cli.execute(self.engine, ["tt", "3", "1"]).ok)
        self.assertEqual(self.engine.session.temp_slots[0], [Card(3, CardColor.GREEN)])

    def test_given_collection_all_keyword_when_executed_then_whole_collection_moves(self):
        cli.execute(self.engine, ["c", "2", "0"])
        cli.execute(self.engine, ["gc", "2", "0", "r"])
        res = cli.execute(self.engine, ["ct", "red", "all", "2"])
        self.assertTrue(res.ok, res.message)
        self.assertEqual(self.engine.session.temp_slots[1], [Card(1, CardColor.RED), Card(2, CardColor.RED)])

    def test_given_undo_when_executed_then_rejection_message_for_empty_history(self):
        res = cli.execute(self.engine, ["undo"])
        self.assertFalse(res.ok)
        self.assertEqual(res.message, "Nothing to undo")

    def test_given_malformed_command_when_executed_then_value_error(self):
        for tokens in (["c", "2"], ["zz"], ["gc", "2", "0", "teal"], ["c", "x", "0"]):
            with self.assertRaises(ValueError, msg=tokens):
                cli.execute(self.engine, tokens)

    def test_given_session_when_rendered_then_header_grid_and_piles_shown(self):
        text = cli.render(self.engine.session)
        self.assertIn("Easy E001", text)
        self.assertIn("R1:2", text)
        self.assertIn("Stacks:", text)


class TestColorParsing(unittest.TestCase):
    def test_given_names_or_letters_when_parsing_then_color(self):
        self.assertEqual(CardColor.parse("P"), CardColor.PURPLE)
        self.assertEqual(CardColor.parse(" Yellow "), CardColor.YELLOW)
        with self.assertRaises(ValueError):
            CardColor.parse("x")


class TestMain(unittest.TestCase):
    def test_given_seed_id_when_printing_then_level_is_shown(self):
        buf = io.StringIO()
        with redirect_stdout(buf):
            cli.main(["--seed-id", "e002", "--levels", "3"])
        out = buf.getvalue()
        self.assertIn("Level E002 (Easy, 25 cards):", out)

    def test_given_id_outside_small_catalog_when_printing_then_not_found(self):
        buf = io.StringIO()
        with redirect_stdout(buf):
            cli.main(["--seed-id", "M010", "--levels", "3"])
        self.assertIn("Level M010 not found", buf.getvalue())

    def test_given_scripted_input_when_playing_then_commands_are_answered(self):
        with tempfile.TemporaryDirectory() as tmp:
            db = os.path.join(tmp, "cli.db")
            buf = io.StringIO()
            with mock.patch("builtins.input", side_effect=["h", "bogus", "u", "p", "c 2 0", "q"]), \
                    redirect_stdout(buf):
                cli.main(["--seed-id", "E001", "--levels", "2", "--play", "--db", db])
        out = buf.getvalue()
        self.assertIn("Commands", out)
        self.assertIn("Could not parse: bogus", out)
        self.assertIn("Nothing to undo", out)
        self.assertIn("[paused]", out)
        self.assertIn("Game is paused", out)

    def test_given_end_of_input_when_playing_then_exits(self):
        with tempfile.TemporaryDirectory() as tmp:
            db = os.path.join(tmp, "cli.db")
            buf = io.StringIO()
            with mock.patch("builtins.input", side_effect=EOFError), redirect_stdout(buf):
                cli.main(["--difficulty", "hard", "--levels", "2", "--play", "--db", db])
        self.assertIn("Hard H00", buf.getvalue())


if __name__ == "__main__":
    unittest.main(verbosity=2)
