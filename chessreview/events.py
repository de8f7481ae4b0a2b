"""
Typed event dataclasses, the shared language between the game service and any consumer.

The game service (game.py) publishes these through the broadcaster. The WebSocket
endpoint, the CLI and the tests consume them. All events are frozen (immutable) so
they're safe to pass across async boundaries and can be trivially serialized to
JSON via dataclasses.asdict().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

Color = Literal["white", "black"]
GameResult = Literal["1-0", "0-1", "1/2-1/2", "*"]
GameStatus = Literal["playing", "finished", "analyzing", "terminated"]
GameOverKind = Literal["none", "checkmate", "draw"]


@dataclass(frozen=True)
class GameStateUpdateEvent:
    """Emitted after a completed turn (human ply and, if any, the engine reply)."""

    game_id: str
    fen: str
    pgn: str
    moves: list[str]
    status: GameStatus
    result: GameResult
    ai_move: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class AnalysisCompleteEvent:
    game_id: str
    total_plies: int
    mistakes: int
    blunders: int
    timestamp: datetime = field(default_factory=datetime.now)


# Union type for type-safe pattern matching in consumers
GameEvent = GameStateUpdateEvent | AnalysisCompleteEvent
