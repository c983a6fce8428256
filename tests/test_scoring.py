import unittest

from game import (
    Difficulty,
    experience_for_quick_score,
    experience_for_result,
    final_score,
    format_time,
    quick_score,
)


class TestFinalScore(unittest.TestCase):
    def test_given_instant_easy_win_when_scoring_then_full_time_bonus(self):
        self.assertEqual(final_score(Difficulty.EASY, 0, 0), 2200)

    def test_given_ideal_time_and_moves_when_scoring_then_base_score(self):
        self.assertEqual(final_score(Difficulty.EASY, 120, 30), 1000)
        self.assertEqual(final_score(Difficulty.MEDIUM, 180, 50), 1500)
        self.assertEqual(final_score(Difficulty.HARD, 300, 80), 2000)

    def test_given_extra_moves_when_scoring_then_five_points_each(self):
        self.assertEqual(final_score(Difficulty.HARD, 300, 90), 1950)

    def test_given_very_slow_game_when_scoring_then_floor_is_100(self):
        self.assertEqual(final_score(Difficulty.EASY, 100000, 100000), 100)

    def test_given_more_time_or_moves_when_scoring_then_score_never_increases(self):
        for d in Difficulty:
            scores = [final_score(d, t, 40) for t in range(0, 400, 7)]
            self.assertEqual(scores, sorted(scores, reverse=True))
            scores = [final_score(d, 60, m) for m in range(0, 400, 7)]
            self.assertEqual(scores, sorted(scores, reverse=True))


class TestQuickScore(unittest.TestCase):
    def test_given_known_inputs_when_rating_then_expected_values(self):
        self.assertEqual(quick_score(Difficulty.EASY, 0, 0), 72)
        self.assertEqual(quick_score(Difficulty.EASY, 120, 30), 60)

    def test_given_extremes_when_rating_then_clamped_to_0_100(self):
        self.assertEqual(quick_score(Difficulty.HARD, 0, 0), 100)
        self.assertEqual(quick_score(Difficulty.MEDIUM, 1000, 1000), 0)


class TestExperience(unittest.TestCase):
    def test_given_base_score_when_converting_then_sixty_percent_of_base_xp(self):
        self.assertEqual(experience_for_result(Difficulty.EASY, 1000), 30)

    def test_given_large_or_tiny_score_when_converting_then_normalization_is_clamped(self):
        self.assertEqual(experience_for_result(Difficulty.EASY, 2200), 50)
        self.assertEqual(experience_for_result(Difficulty.EASY, 100), 0)

    def test_given_score_just_below_base_when_converting_then_division_truncates_toward_zero(self):
        self.assertEqual(experience_for_result(Difficulty.EASY, 995), 30)

    def test_given_quick_score_when_converting_then_proportional_to_base_xp(self):
        self.assertEqual(experience_for_quick_score(Difficulty.HARD, 50), 50)
        self.assertEqual(experience_for_quick_score(Difficulty.MEDIUM, 100), 75)


class TestFormatTime(unittest.TestCase):
    def test_given_seconds_when_formatting_then_minutes_and_seconds(self):
        self.assertEqual(format_time(125), "02:05")
        self.assertEqual(format_time(0), "00:00")
        self.assertEqual(format_time(-3), "00:00")


if __name__ == "__main__":
    unittest.main(verbosity=2)
