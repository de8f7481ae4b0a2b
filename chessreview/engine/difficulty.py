"""
Fixed difficulty table for levels 1-10.

Each level combines the engine's Skill Level (0-20), a target Elo enforced
through UCI_LimitStrength, a Contempt (draw-avoidance) bias and a search budget
of depth ceiling plus move time in milliseconds.
"""

from __future__ import annotations

from dataclasses import dataclass

from chessreview.errors import InvalidDifficulty

MIN_LEVEL = 1
MAX_LEVEL = 10


@dataclass(frozen=True)
class SearchBudget:
    """Arguments of one `go` command."""

    depth: int
    movetime_ms: int | None = None

    def go_command(self) -> str:
        if self.movetime_ms is None:
            return f"go depth {self.depth}"
        return f"go depth {self.depth} movetime {self.movetime_ms}"


@dataclass(frozen=True)
class DifficultySettings:
    level: int
    skill_level: int
    elo: int
    contempt: int
    budget: SearchBudget

    def options(self) -> list[str]:
        """setoption lines sent once during the handshake."""
        return [
            f"setoption name Skill Level value {self.skill_level}",
            "setoption name UCI_LimitStrength value true",
            f"setoption name UCI_Elo value {self.elo}",
            f"setoption name Contempt value {self.contempt}",
        ]


# level: (skill, elo, contempt, depth, movetime_ms)
_LEVELS: dict[int, tuple[int, int, int, int, int]] = {
    1: (0, 800, -100, 1, 1000),
    2: (2, 1000, -75, 2, 100),
    3: (4, 1200, -50, 3, 150),
    4: (6, 1400, -25, 4, 200),
    5: (8, 1600, 0, 5, 250),
    6: (10, 1800, 25, 6, 300),
    7: (12, 2000, 50, 8, 400),
    8: (14, 2200, 75, 10, 500),
    9: (16, 2400, 100, 12, 750),
    10: (20, 3000, 100, 15, 1000),
}


def configuration_for(level: int) -> DifficultySettings:
    """Look up a difficulty level. Raises InvalidDifficulty outside 1-10."""
    if isinstance(level, bool) or not isinstance(level, int) or level not in _LEVELS:
        raise InvalidDifficulty(level)
    skill, elo, contempt, depth, movetime = _LEVELS[level]
    return DifficultySettings(
        level=level,
        skill_level=skill,
        elo=elo,
        contempt=contempt,
        budget=SearchBudget(depth=depth, movetime_ms=movetime),
    )
