import unittest

import chess

from chessreview.board import ChessBoard, apply_move, replay


class ChessBoardTests(unittest.TestCase):
    def test_accepts_uci_and_san(self) -> None:
        board = ChessBoard()
        first = board.apply("e2e4")
        second = board.apply("e5")
        self.assertTrue(first.legal and second.legal)
        self.assertEqual(first.san, "e4")
        self.assertEqual(second.uci, "e7e5")
        self.assertEqual(board.moves_uci(), ["e2e4", "e7e5"])
        self.assertEqual(board.turn, "white")
        self.assertEqual(board.fullmove_number, 2)

    def test_rejections_leave_position_unchanged(self) -> None:
        board = ChessBoard()
        before = board.fen
        for move, error in (("e2e5", "illegal"), ("Ke2", "illegal"), ("hello", "format")):
            with self.subTest(move=move):
                outcome = board.apply(move)
                self.assertFalse(outcome.legal)
                self.assertEqual(outcome.error, error)
                self.assertEqual(outcome.fen, before)
        self.assertEqual(board.moves_uci(), [])

    def test_ambiguous_san(self) -> None:
        board = ChessBoard("4k3/8/8/8/8/8/4K3/R6R w - - 0 1")
        self.assertEqual(board.apply("Rd1").error, "ambiguous")
        self.assertTrue(board.apply("Rad1").legal)

    def test_checkmate_ends_the_game(self) -> None:
        board = replay(["f2f3", "e7e5", "g2g4", "d8h4"])
        self.assertTrue(board.is_game_over)
        self.assertEqual(board.game_over_kind, "checkmate")
        self.assertEqual(board.result(), "0-1")

    def test_copy_is_independent(self) -> None:
        board = replay(["e2e4"])
        board.set_players("Human", "Computer")
        clone = board.copy()
        clone.apply("e7e5")
        self.assertEqual(board.moves_uci(), ["e2e4"])
        self.assertEqual(clone.moves_uci(), ["e2e4", "e7e5"])
        self.assertIn('[White "Human"]', clone.to_pgn())

    def test_pgn_carries_moves_and_result(self) -> None:
        board = replay(["f2f3", "e7e5", "g2g4", "d8h4"])
        board.set_players("Human", "Computer")
        board.set_result(board.result())
        pgn = board.to_pgn()
        self.assertIn("1. f3 e5 2. g4 Qh4# 0-1", pgn)
        self.assertIn('[Black "Computer"]', pgn)

    def test_apply_move_is_stateless(self) -> None:
        outcome = apply_move(chess.STARTING_FEN, "g1f3")
        self.assertTrue(outcome.legal)
        self.assertEqual(outcome.turn, "black")
        self.assertEqual(outcome.game_over, "none")

    def test_replay_names_the_bad_ply(self) -> None:
        with self.assertRaises(ValueError) as ctx:
            replay(["e2e4", "e2e4"])
        self.assertIn("ply 2", str(ctx.exception))
