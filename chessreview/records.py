"""
Persistent record types: a game and its per-ply analysis.

Plain mutable dataclasses with explicit to_dict / from_dict so the JSON store
stays schema-less but the rest of the app works with typed objects.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from chessreview.engine.parser import Evaluation
from chessreview.events import Color, GameResult, GameStatus

HUMAN = "Human"
COMPUTER = "Computer"

START_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"


@dataclass(frozen=True)
class AnalysisEntry:
    move_number: int           # full-move number the ply belongs to
    color: Color               # side that played the move
    move: str                  # as recorded in the game
    fen: str                   # position after the move
    evaluation: Evaluation     # before the move, from the mover's side
    best_move: str | None      # engine recommendation before the move
    principal_variation: str = ""
    is_mistake: bool = False
    is_blunder: bool = False
    comment: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnalysisEntry:
        ev = data["evaluation"]
        return cls(
            move_number=int(data["move_number"]),
            color=data["color"],
            move=data["move"],
            fen=data["fen"],
            evaluation=Evaluation(ev["kind"], int(ev["value"])),
            best_move=data.get("best_move"),
            principal_variation=data.get("principal_variation", ""),
            is_mistake=bool(data.get("is_mistake", False)),
            is_blunder=bool(data.get("is_blunder", False)),
            comment=data.get("comment", ""),
        )


@dataclass
class GameRecord:
    game_id: str
    user_id: str
    human_color: Color
    difficulty: int
    players: dict[str, str] = field(default_factory=dict)  # {"white": "Human", "black": "Computer"}
    fen: str = START_FEN
    pgn: str = ""
    moves: list[str] = field(default_factory=list)        # UCI
    status: GameStatus = "playing"
    result: GameResult = "*"
    analysis: list[AnalysisEntry] = field(default_factory=list)
    analysis_complete: bool = False
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def computer_color(self) -> Color:
        return "black" if self.human_color == "white" else "white"

    def summary(self) -> dict[str, Any]:
        """Fields for a history list view."""
        return {
            "game_id": self.game_id,
            "status": self.status,
            "result": self.result,
            "difficulty": self.difficulty,
            "human_color": self.human_color,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["analysis"] = [e.to_dict() for e in self.analysis]
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = self.updated_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameRecord:
        return cls(
            game_id=data["game_id"],
            user_id=data["user_id"],
            human_color=data["human_color"],
            difficulty=int(data["difficulty"]),
            players=dict(data.get("players") or {}),
            fen=data.get("fen", START_FEN),
            pgn=data.get("pgn", ""),
            moves=list(data.get("moves") or []),
            status=data.get("status", "playing"),
            result=data.get("result", "*"),
            analysis=[AnalysisEntry.from_dict(e) for e in data.get("analysis") or []],
            analysis_complete=bool(data.get("analysis_complete", False)),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )
