import unittest

from chessreview.cli import display
from chessreview.engine.parser import Evaluation
from chessreview.records import AnalysisEntry


class DisplayTests(unittest.TestCase):
    def test_format_evaluation(self) -> None:
        self.assertEqual(display.format_evaluation(Evaluation("cp", 35)), "+0.35")
        self.assertEqual(display.format_evaluation(Evaluation("cp", -120)), "-1.20")
        self.assertEqual(display.format_evaluation(Evaluation("mate", -2)), "#-2")

    def test_review_table_lists_verdicts(self) -> None:
        entry = AnalysisEntry(
            move_number=3, color="white", move="d1h5", fen="fen",
            evaluation=Evaluation("cp", 40), best_move="g1f3", is_blunder=True,
            comment="Blunder. You lost significant advantage. Best was g1f3.",
        )
        with display.console.capture() as capture:
            display.display_review([entry])
        output = capture.get()
        self.assertIn("Game Review", output)
        self.assertIn("d1h5", output)
        self.assertIn("g1f3", output)
