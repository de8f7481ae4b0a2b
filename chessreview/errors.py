"""
Exception hierarchy shared by the engine layer, the game service and the web API.

Engine-level errors are deliberately generic in their messages: the raw engine
output that caused them is logged where they are raised, never attached to the
exception text that reaches an end user.
"""

from __future__ import annotations


class ChessReviewError(Exception):
    """Base class for every error raised by chessreview."""


# --------------------------------------------------------------------------- #
# Engine / protocol                                                            #
# --------------------------------------------------------------------------- #

class EngineError(ChessReviewError):
    """Something went wrong talking to an engine process."""


class EngineTimeout(EngineError):
    """A command's terminator did not appear before its deadline."""

    def __init__(self, command: str, timeout: float) -> None:
        super().__init__(f"Engine command timed out after {timeout:g}s: {command}")
        self.command = command
        self.timeout = timeout


class SearchTimeout(EngineTimeout):
    """No bestmove line arrived within the search deadline plus the stop grace window."""


class EngineProcessExited(EngineError):
    """The engine closed its output stream while a request was pending."""


class EngineInitError(EngineError):
    """Spawn or handshake failed. The message never carries engine diagnostics."""

    def __init__(self, message: str = "Engine initialization failed") -> None:
        super().__init__(message)


class EngineMoveError(EngineError):
    """The engine proposed no move, or a move the rules engine rejects."""


class InvalidDifficulty(ChessReviewError, ValueError):
    def __init__(self, level: object) -> None:
        super().__init__(f"Invalid difficulty level: {level!r}. Must be between 1 and 10.")
        self.level = level


# --------------------------------------------------------------------------- #
# Game logic                                                                   #
# --------------------------------------------------------------------------- #

class GameError(ChessReviewError):
    """Errors the caller can act on (which game, which move)."""


class GameNotFound(GameError):
    def __init__(self, game_id: str) -> None:
        super().__init__(f"Game not found: {game_id}")
        self.game_id = game_id


class SessionNotFound(GameError):
    """No live engine session / active game for this id. Never created implicitly."""

    def __init__(self, game_id: str) -> None:
        super().__init__(f"No active session for game {game_id}")
        self.game_id = game_id


class InvalidGameState(GameError):
    pass


class IllegalMove(GameError):
    def __init__(self, game_id: str, move: str, reason: str = "illegal") -> None:
        super().__init__(f"Invalid move '{move}' in game {game_id} ({reason})")
        self.game_id = game_id
        self.move = move
        self.reason = reason


class ReplayCorruption(GameError):
    """A recorded move could not be replayed during analysis."""

    def __init__(self, game_id: str, ply: int, move: str) -> None:
        super().__init__(
            f"Analysis of game {game_id} failed at ply {ply + 1}: "
            f"recorded move '{move}' cannot be replayed"
        )
        self.game_id = game_id
        self.ply = ply
        self.move = move
