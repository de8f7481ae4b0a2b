"""Shared fixtures: a config pointing at the scripted fake engine, and a scripted evaluator."""

from __future__ import annotations

import sys
from pathlib import Path

import chess

from chessreview.config import EngineConfig
from chessreview.engine.parser import Evaluation, SearchResult

FAKE_ENGINE = Path(__file__).with_name("fake_engine.py")


def engine_config(mode: str = "normal", log_path: Path | None = None, **overrides) -> EngineConfig:
    args = [str(FAKE_ENGINE), mode]
    if log_path is not None:
        args.append(str(log_path))
    base = dict(
        path=sys.executable,
        args=args,
        handshake_timeout=5.0,
        search_timeout=5.0,
        stop_grace=1.0,
        analysis_depth=20,
        analysis_timeout=5.0,
    )
    base.update(overrides)
    return EngineConfig(**base)


class ScriptedEvaluator:
    """
    Stand-in for EngineSupervisor.analyze_position.

    Returns a fixed evaluation per call index (falling back to cp 0) and the
    first legal move of the position as the recommendation. Records every FEN.
    """

    def __init__(self, evaluations: list[Evaluation] | None = None) -> None:
        self._evaluations = list(evaluations or [])
        self.fens: list[str] = []

    async def __call__(self, fen: str) -> SearchResult:
        idx = len(self.fens)
        self.fens.append(fen)
        evaluation = self._evaluations[idx] if idx < len(self._evaluations) else Evaluation("cp", 0)
        moves = sorted(m.uci() for m in chess.Board(fen).legal_moves)
        return SearchResult(
            best_move=moves[0] if moves else None,
            evaluation=evaluation,
            principal_variation=" ".join(moves[:2]),
        )
