"""
Thin facade over python-chess Board and PGN machinery, used as the rules engine.

Provides the exact interface the game service and the analyzer need without
leaking python-chess internals into the rest of the codebase.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

import chess
import chess.pgn

from chessreview.events import Color, GameOverKind, GameResult


@dataclass(frozen=True)
class MoveOutcome:
    """Result of applying one move to a position."""

    legal: bool
    fen: str                 # resulting position (unchanged input if illegal)
    turn: Color              # side to move after the move
    game_over: GameOverKind
    uci: str = ""
    san: str = ""
    error: str = ""          # "", "illegal", "ambiguous" or "format"


class ChessBoard:
    """Facade over chess.Board + chess.pgn.Game."""

    def __init__(self, fen: str | None = None) -> None:
        self._starting_fen = fen
        self._board = chess.Board(fen) if fen else chess.Board()
        self._game = chess.pgn.Game()
        if fen:
            self._game.setup(self._board)
        self._node: chess.pgn.GameNode = self._game
        self._game.headers["Date"] = datetime.now().strftime("%Y.%m.%d")
        self._game.headers["Event"] = "Human vs Computer"

    # ------------------------------------------------------------------ #
    # State queries                                                        #
    # ------------------------------------------------------------------ #

    @property
    def fen(self) -> str:
        return self._board.fen()

    @property
    def turn(self) -> Color:
        return "white" if self._board.turn == chess.WHITE else "black"

    @property
    def fullmove_number(self) -> int:
        return self._board.fullmove_number

    @property
    def is_game_over(self) -> bool:
        # Claimable draws (threefold repetition, fifty-move) end the game:
        # nobody is around to claim them against the engine.
        return self._board.is_game_over(claim_draw=True)

    @property
    def game_over_kind(self) -> GameOverKind:
        if not self.is_game_over:
            return "none"
        return "checkmate" if self._board.is_checkmate() else "draw"

    def moves_uci(self) -> list[str]:
        return [m.uci() for m in self._board.move_stack]

    # ------------------------------------------------------------------ #
    # Move application                                                    #
    # ------------------------------------------------------------------ #

    def parse_move(self, move_str: str) -> tuple[chess.Move | None, str]:
        """
        Parse and validate a move string, returning (move, error_kind).

        error_kind values:
          ""          : success; move is legal
          "illegal"   : valid notation but not legal in this position
          "ambiguous" : valid SAN but needs disambiguation
          "format"    : could not be parsed as UCI or SAN at all
        """
        s = move_str.strip()

        # UCI: from_uci() validates syntax only; legality is a separate check.
        try:
            move = chess.Move.from_uci(s)
            if move in self._board.legal_moves:
                return move, ""
            return None, "illegal"
        except (ValueError, chess.InvalidMoveError):
            pass

        # SAN: parse_san() is board-aware and raises specific subclasses.
        try:
            move = self._board.parse_san(s)
            return move, ""
        except chess.AmbiguousMoveError:
            return None, "ambiguous"
        except chess.IllegalMoveError:
            return None, "illegal"
        except (ValueError, chess.InvalidMoveError):
            pass

        return None, "format"

    def push_move(self, move: chess.Move) -> str:
        """Apply a validated legal move. Returns its SAN string."""
        san = self._board.san(move)
        self._board.push(move)
        self._node = self._node.add_variation(move)
        return san

    def apply(self, move_str: str) -> MoveOutcome:
        """Parse, validate and (if legal) push a move in UCI or SAN notation."""
        move, error = self.parse_move(move_str)
        if move is None:
            return MoveOutcome(
                legal=False, fen=self.fen, turn=self.turn,
                game_over=self.game_over_kind, error=error,
            )
        san = self.push_move(move)
        return MoveOutcome(
            legal=True, fen=self.fen, turn=self.turn,
            game_over=self.game_over_kind, uci=move.uci(), san=san,
        )

    def copy(self) -> ChessBoard:
        """Independent board with the same start position and move stack."""
        clone = ChessBoard(self._starting_fen)
        for header, value in self._game.headers.items():
            clone._game.headers[header] = value
        for move in self._board.move_stack:
            clone.push_move(move)
        return clone

    # ------------------------------------------------------------------ #
    # Game-over info                                                      #
    # ------------------------------------------------------------------ #

    def result(self) -> GameResult:
        outcome = self._board.outcome(claim_draw=True)
        if outcome is None:
            return "*"
        return outcome.result()  # type: ignore[return-value]

    # ------------------------------------------------------------------ #
    # PGN                                                                 #
    # ------------------------------------------------------------------ #

    def set_players(self, white_name: str, black_name: str) -> None:
        self._game.headers["White"] = white_name
        self._game.headers["Black"] = black_name

    def set_result(self, result: str) -> None:
        self._game.headers["Result"] = result

    def to_pgn(self) -> str:
        exporter = chess.pgn.StringExporter(headers=True, variations=False, comments=False)
        return self._game.accept(exporter)


def apply_move(fen: str, move: str) -> MoveOutcome:
    """Apply one move to a position given as FEN, without keeping any state."""
    return ChessBoard(fen).apply(move)


def replay(moves: Iterable[str], fen: str | None = None) -> ChessBoard:
    """
    Rebuild a board by replaying recorded moves from the start position.

    Raises:
        ValueError: a move cannot be applied; the message names the ply.
    """
    board = ChessBoard(fen)
    for ply, move in enumerate(moves):
        outcome = board.apply(move)
        if not outcome.legal:
            raise ValueError(f"ply {ply + 1}: '{move}' is {outcome.error}")
    return board
