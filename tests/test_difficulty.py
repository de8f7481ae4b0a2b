import unittest

from chessreview.engine.difficulty import SearchBudget, configuration_for
from chessreview.errors import InvalidDifficulty


class DifficultyTableTests(unittest.TestCase):
    def test_every_level_has_a_deterministic_configuration(self) -> None:
        for level in range(1, 11):
            with self.subTest(level=level):
                first = configuration_for(level)
                self.assertEqual(first, configuration_for(level))
                self.assertEqual(first.level, level)
                self.assertEqual(len(first.options()), 4)
                self.assertTrue(first.budget.go_command().startswith("go depth "))

    def test_strength_grows_with_level(self) -> None:
        levels = [configuration_for(level) for level in range(1, 11)]
        for lower, higher in zip(levels, levels[1:]):
            self.assertLessEqual(lower.skill_level, higher.skill_level)
            self.assertLess(lower.elo, higher.elo)
            self.assertLessEqual(lower.budget.depth, higher.budget.depth)

    def test_out_of_range_levels_are_rejected(self) -> None:
        for bad in (0, 11, -1, True, "5", 5.0, None):
            with self.subTest(level=bad):
                with self.assertRaises(InvalidDifficulty):
                    configuration_for(bad)  # type: ignore[arg-type]

    def test_invalid_difficulty_is_a_value_error(self) -> None:
        with self.assertRaises(ValueError):
            configuration_for(0)

    def test_level_five_options_and_search_command(self) -> None:
        settings = configuration_for(5)
        self.assertEqual(
            settings.options(),
            [
                "setoption name Skill Level value 8",
                "setoption name UCI_LimitStrength value true",
                "setoption name UCI_Elo value 1600",
                "setoption name Contempt value 0",
            ],
        )
        self.assertEqual(settings.budget.go_command(), "go depth 5 movetime 250")

    def test_depth_only_budget(self) -> None:
        self.assertEqual(SearchBudget(depth=20).go_command(), "go depth 20")
