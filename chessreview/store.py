"""Simple local game store.

Keeps every GameRecord in memory and mirrors the whole collection to one JSON
file after each mutation (written via a temp file + rename so a crash never
leaves a half-written file). Pass path=None for a purely in-memory store.

Callers always receive copies: mutating a returned record has no effect until
it is passed back to upsert().
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable

from chessreview.events import GameStatus
from chessreview.records import AnalysisEntry, GameRecord

logger = logging.getLogger(__name__)


class GameStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._lock = asyncio.Lock()
        self._games: dict[str, GameRecord] = self._load()

    # ------------------------------------------------------------------ #
    # Reads                                                                #
    # ------------------------------------------------------------------ #

    async def get(self, game_id: str) -> GameRecord | None:
        record = self._games.get(game_id)
        return _copy(record) if record else None

    async def list_for_user(
        self, user_id: str, statuses: Iterable[GameStatus] | None = None
    ) -> list[GameRecord]:
        """A user's games, most recently updated first."""
        wanted = set(statuses) if statuses is not None else None
        games = [
            _copy(g) for g in self._games.values()
            if g.user_id == user_id and (wanted is None or g.status in wanted)
        ]
        return sorted(games, key=lambda g: g.updated_at, reverse=True)

    # ------------------------------------------------------------------ #
    # Writes                                                               #
    # ------------------------------------------------------------------ #

    async def upsert(self, record: GameRecord) -> GameRecord:
        async with self._lock:
            stored = _copy(record)
            stored.updated_at = datetime.now()
            self._games[stored.game_id] = stored
            await self._flush()
            return _copy(stored)

    async def set_status(self, game_id: str, status: GameStatus) -> None:
        async with self._lock:
            record = self._require(game_id)
            record.status = status
            record.updated_at = datetime.now()
            await self._flush()

    async def replace_analysis(
        self,
        game_id: str,
        entries: list[AnalysisEntry],
        *,
        complete: bool,
        status: GameStatus,
    ) -> None:
        """Swap the whole analysis and set status in a single write."""
        async with self._lock:
            record = self._require(game_id)
            record.analysis = list(entries)
            record.analysis_complete = complete
            record.status = status
            record.updated_at = datetime.now()
            await self._flush()

    async def delete(self, game_id: str) -> None:
        async with self._lock:
            if self._games.pop(game_id, None) is not None:
                await self._flush()

    # ------------------------------------------------------------------ #
    # Internal                                                             #
    # ------------------------------------------------------------------ #

    def _require(self, game_id: str) -> GameRecord:
        try:
            return self._games[game_id]
        except KeyError:
            raise KeyError(f"Unknown game id: {game_id}") from None

    def _load(self) -> dict[str, GameRecord]:
        if self._path is None or not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return {gid: GameRecord.from_dict(data) for gid, data in raw.items()}
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            logger.error("Could not load game store %s: %s", self._path, exc)
            return {}

    async def _flush(self) -> None:
        if self._path is None:
            return
        payload = json.dumps(
            {gid: g.to_dict() for gid, g in self._games.items()}, indent=2
        )
        await asyncio.to_thread(_write_atomic, self._path, payload)


def _write_atomic(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    tmp.replace(path)


def _copy(record: GameRecord) -> GameRecord:
    return GameRecord.from_dict(record.to_dict())
