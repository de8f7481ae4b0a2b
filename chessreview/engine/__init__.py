"""
Engine layer: UCI process supervision, transceiver and search-output parsing.

The rest of the app only talks to EngineSupervisor; sessions are never
shared or reached into from outside this package.
"""

from __future__ import annotations

from chessreview.engine.difficulty import (
    DifficultySettings,
    SearchBudget,
    configuration_for,
)
from chessreview.engine.parser import Evaluation, SearchParser, SearchResult
from chessreview.engine.protocol import EngineSession
from chessreview.engine.supervisor import EngineSupervisor, SessionRegistry

__all__ = [
    "DifficultySettings",
    "SearchBudget",
    "configuration_for",
    "Evaluation",
    "SearchParser",
    "SearchResult",
    "EngineSession",
    "EngineSupervisor",
    "SessionRegistry",
]
