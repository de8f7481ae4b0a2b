"""
EngineSupervisor owns every engine process the server runs.

Live games get one persistent session each, keyed by game id in a
SessionRegistry that nothing else mutates. One-off position analysis gets a
transient session that is spawned, used for a single search and killed, so it
never contends with a game that is still being played.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Sequence

from chessreview.config import EngineConfig
from chessreview.engine.difficulty import SearchBudget, configuration_for
from chessreview.engine.parser import SearchResult
from chessreview.engine.protocol import EngineSession
from chessreview.errors import EngineError, EngineInitError, SessionNotFound

logger = logging.getLogger(__name__)


class SessionRegistry:
    """game id -> live EngineSession. At most one entry per game id."""

    def __init__(self) -> None:
        self._sessions: dict[str, EngineSession] = {}

    def get(self, game_id: str) -> EngineSession | None:
        return self._sessions.get(game_id)

    def add(self, game_id: str, session: EngineSession) -> EngineSession | None:
        """Register a session, returning whatever it displaced."""
        previous = self._sessions.get(game_id)
        self._sessions[game_id] = session
        return previous if previous is not session else None

    def discard(self, game_id: str, session: EngineSession | None = None) -> EngineSession | None:
        """
        Remove the entry for game_id. When `session` is given, only remove it if
        it is still the registered one (a newer start may have replaced it).
        """
        current = self._sessions.get(game_id)
        if current is None or (session is not None and current is not session):
            return None
        del self._sessions[game_id]
        return current

    def game_ids(self) -> list[str]:
        return list(self._sessions)

    def __contains__(self, game_id: object) -> bool:
        return game_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


class EngineSupervisor:
    def __init__(self, config: EngineConfig, registry: SessionRegistry | None = None) -> None:
        self._config = config
        self._registry = registry if registry is not None else SessionRegistry()

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    def has_session(self, game_id: str) -> bool:
        return game_id in self._registry

    # ------------------------------------------------------------------ #
    # Lifecycle                                                            #
    # ------------------------------------------------------------------ #

    async def start(self, game_id: str, difficulty: int) -> None:
        """
        Spawn and configure the engine for a game.

        Raises:
            InvalidDifficulty: level outside 1-10 (nothing is spawned).
            EngineInitError: spawn or any handshake step failed; the process
                has been killed and unregistered.
        """
        settings = configuration_for(difficulty)

        if game_id in self._registry:
            logger.warning("Engine already exists for game %s. Terminating old instance.", game_id)
            await self.terminate(game_id)

        session: EngineSession | None = None
        ok = False
        try:
            session = await self._spawn(f"game:{game_id}")
            displaced = self._registry.add(game_id, session)
            if displaced is not None:
                logger.warning("Concurrent start for game %s; killing displaced engine", game_id)
                await displaced.kill()
            await self._handshake(session, settings.options())
            ok = True
        except (EngineError, OSError) as exc:
            logger.error("Error initializing engine for game %s: %s", game_id, exc)
            raise EngineInitError() from exc
        finally:
            if not ok and session is not None:
                await session.kill()
                self._registry.discard(game_id, session)

        logger.info("Engine for game %s ready (difficulty %d).", game_id, difficulty)

    async def terminate(self, game_id: str) -> None:
        """Kill the game's engine. A game without a session is a no-op."""
        session = self._registry.discard(game_id)
        if session is None:
            return
        await session.kill()
        logger.info("Engine for game %s terminated.", game_id)

    async def shutdown(self) -> None:
        """Kill every live engine (server shutdown)."""
        ids = self._registry.game_ids()
        await asyncio.gather(*(self.terminate(gid) for gid in ids))
        if ids:
            logger.info("Terminated %d engine(s) on shutdown.", len(ids))

    # ------------------------------------------------------------------ #
    # Searches                                                             #
    # ------------------------------------------------------------------ #

    async def best_move(self, game_id: str, fen: str, difficulty: int) -> SearchResult:
        """Search the game's current position with the difficulty's budget."""
        session = self._registry.get(game_id)
        if session is None:
            raise SessionNotFound(game_id)
        budget = configuration_for(difficulty).budget
        return await session.search(
            fen,
            budget,
            timeout=self._config.search_timeout,
            grace=self._config.stop_grace,
        )

    async def analyze_position(self, fen: str) -> SearchResult:
        """Deep fixed-depth search on a fresh engine; independent of any game's difficulty."""
        budget = SearchBudget(depth=self._config.analysis_depth)
        async with self.transient_session() as session:
            return await session.search(
                fen,
                budget,
                timeout=self._config.analysis_timeout,
                grace=self._config.stop_grace,
            )

    @asynccontextmanager
    async def transient_session(self) -> AsyncIterator[EngineSession]:
        """Spawn an unconfigured engine for single use; always killed on exit."""
        session: EngineSession | None = None
        try:
            try:
                session = await self._spawn("analysis")
                await self._handshake(session, ())
            except (EngineError, OSError) as exc:
                logger.error("Failed to start analysis engine: %s", exc)
                raise EngineInitError() from exc
            yield session
        finally:
            if session is not None:
                await session.kill()

    # ------------------------------------------------------------------ #
    # Internal                                                             #
    # ------------------------------------------------------------------ #

    async def _spawn(self, label: str) -> EngineSession:
        return await EngineSession.spawn(self._config.command, label)

    async def _handshake(self, session: EngineSession, options: Sequence[str]) -> None:
        timeout = self._config.handshake_timeout
        await session.request("uci", "uciok", timeout)
        for option in options:
            await session.write(option)
        await session.request("isready", "readyok", timeout)
        await session.write("ucinewgame")
        await session.request("isready", "readyok", timeout)
        session.ready = True
