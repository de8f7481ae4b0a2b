"""
Game service: the orchestrator behind every API call.

This module is UI-agnostic. It never prints and never touches HTTP; it raises
typed errors from chessreview.errors and publishes typed events through the
broadcaster.

Consumers:
  Web   → chessreview/web/app.py
  CLI   → main.py
  Tests → await service.make_move(...); assert ...

A turn (human ply plus the engine reply) is computed on a copy of the board and
only committed to memory and the store once it has fully succeeded, so a failed
request leaves the game exactly as it was.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass

from chessreview.analysis import GameAnalyzer
from chessreview.board import ChessBoard
from chessreview.broadcast import GameBroadcaster
from chessreview.engine.difficulty import configuration_for
from chessreview.engine.supervisor import EngineSupervisor
from chessreview.errors import (
    EngineMoveError,
    GameNotFound,
    IllegalMove,
    InvalidGameState,
    SessionNotFound,
)
from chessreview.events import (
    AnalysisCompleteEvent,
    Color,
    GameStateUpdateEvent,
    GameStatus,
)
from chessreview.records import COMPUTER, HUMAN, AnalysisEntry, GameRecord
from chessreview.store import GameStore

logger = logging.getLogger(__name__)

HISTORY_STATUSES: tuple[GameStatus, ...] = ("finished", "analyzing", "terminated")


@dataclass
class _ActiveGame:
    board: ChessBoard
    difficulty: int
    human_color: Color


class GameService:
    def __init__(
        self,
        store: GameStore,
        supervisor: EngineSupervisor,
        broadcaster: GameBroadcaster | None = None,
        analyzer: GameAnalyzer | None = None,
    ) -> None:
        self.store = store
        self.supervisor = supervisor
        self.broadcaster = broadcaster or GameBroadcaster()
        self.analyzer = analyzer or GameAnalyzer(store, supervisor.analyze_position)
        self._active: dict[str, _ActiveGame] = {}
        self._turn_locks: dict[str, asyncio.Lock] = {}

    def is_active(self, game_id: str) -> bool:
        return game_id in self._active

    # ------------------------------------------------------------------ #
    # Play                                                                 #
    # ------------------------------------------------------------------ #

    async def create_game(
        self, user_id: str, difficulty: int, player_color: str
    ) -> tuple[GameRecord, str | None]:
        """
        Start a game against the engine. If the human plays black the engine
        moves first and its move is returned alongside the record.

        Raises:
            ValueError / InvalidDifficulty: bad color or level.
            EngineInitError: the engine could not be started; nothing is stored.
        """
        if player_color not in ("white", "black"):
            raise ValueError(f'player_color must be "white" or "black", got {player_color!r}')
        configuration_for(difficulty)
        human_color: Color = "white" if player_color == "white" else "black"

        game_id = str(uuid.uuid4())
        await self.supervisor.start(game_id, difficulty)

        players = {
            "white": HUMAN if human_color == "white" else COMPUTER,
            "black": HUMAN if human_color == "black" else COMPUTER,
        }
        board = ChessBoard()
        board.set_players(players["white"], players["black"])
        record = GameRecord(
            game_id=game_id,
            user_id=user_id,
            human_color=human_color,
            difficulty=difficulty,
            players=players,
        )

        ai_move: str | None = None
        try:
            if human_color == "black":
                logger.info("Computer (White) making first move for game %s...", game_id)
                ai_move = await self._engine_reply(game_id, board, difficulty)
            _sync_record(record, board)
            record = await self.store.upsert(record)
        except BaseException:
            await self.supervisor.terminate(game_id)
            raise

        self._active[game_id] = _ActiveGame(board, difficulty, human_color)
        logger.info(
            "New game created: %s (Difficulty: %d, Player Color: %s, User: %s)",
            game_id, difficulty, human_color, user_id,
        )
        if ai_move:
            self._publish_state(record, ai_move)
        return record, ai_move

    async def make_move(self, game_id: str, move: str) -> tuple[GameRecord, str | None]:
        """
        Apply the human's move and, unless the game ended, the engine's reply.

        Raises:
            SessionNotFound: the game is not being played on this server.
            InvalidGameState: game not playing, or not the human's turn.
            IllegalMove: the move is illegal or unparsable.
            EngineMoveError / SearchTimeout: the engine reply failed.
        """
        async with self._turn_lock(game_id):
            active = self._active.get(game_id)
            if active is None:
                raise SessionNotFound(game_id)
            record = await self.store.get(game_id)
            if record is None:
                raise GameNotFound(game_id)
            if record.status != "playing":
                raise InvalidGameState(f"Game {game_id} is not active ({record.status}).")
            if active.board.turn != active.human_color:
                raise InvalidGameState(
                    f"It's not the human's turn. Current turn: {active.board.turn}"
                )

            board = active.board.copy()
            outcome = board.apply(move)
            if not outcome.legal:
                raise IllegalMove(game_id, move, outcome.error)

            ai_move: str | None = None
            if not board.is_game_over:
                logger.info("Computer making move for game %s...", game_id)
                ai_move = await self._engine_reply(game_id, board, active.difficulty)

            _sync_record(record, board)
            record = await self.store.upsert(record)
            active.board = board

            if record.status == "finished":
                logger.info("Game %s finished. Result: %s", game_id, record.result)
                await self.supervisor.terminate(game_id)
                self._active.pop(game_id, None)

        if record.status == "finished":
            self._turn_locks.pop(game_id, None)
        self._publish_state(record, ai_move)
        return record, ai_move

    async def terminate_game(self, game_id: str) -> GameRecord:
        """Stop the engine and abandon the game (e.g. the user left)."""
        # Waits for a turn in progress so its moves are not overwritten.
        try:
            async with self._turn_lock(game_id):
                await self.supervisor.terminate(game_id)
                self._active.pop(game_id, None)

                record = await self.store.get(game_id)
                if record is None:
                    raise GameNotFound(game_id)
                if record.status == "playing":
                    record.status = "terminated"
                    record.result = "*"
                    record = await self.store.upsert(record)
                    self._publish_state(record, None)
        finally:
            self._turn_locks.pop(game_id, None)
        logger.info("Game %s and its engine terminated.", game_id)
        return record

    async def shutdown(self) -> None:
        await self.supervisor.shutdown()
        self._active.clear()
        self._turn_locks.clear()

    # ------------------------------------------------------------------ #
    # Queries                                                              #
    # ------------------------------------------------------------------ #

    async def get_game(self, game_id: str) -> GameRecord:
        record = await self.store.get(game_id)
        if record is None:
            raise GameNotFound(game_id)
        return record

    async def game_history(self, user_id: str) -> list[GameRecord]:
        return await self.store.list_for_user(user_id, HISTORY_STATUSES)

    # ------------------------------------------------------------------ #
    # Review                                                               #
    # ------------------------------------------------------------------ #

    async def analyze_game(self, game_id: str) -> list[AnalysisEntry]:
        entries = await self.analyzer.analyze(game_id)
        self.broadcaster.publish(
            game_id,
            AnalysisCompleteEvent(
                game_id=game_id,
                total_plies=len(entries),
                mistakes=sum(1 for e in entries if e.is_mistake),
                blunders=sum(1 for e in entries if e.is_blunder),
            ),
        )
        return entries

    # ------------------------------------------------------------------ #
    # Internal                                                             #
    # ------------------------------------------------------------------ #

    async def _engine_reply(self, game_id: str, board: ChessBoard, difficulty: int) -> str:
        result = await self.supervisor.best_move(game_id, board.fen, difficulty)
        if result.best_move is None:
            logger.error("Engine failed to make a move for game %s", game_id)
            raise EngineMoveError("AI failed to make a move.")
        fen_before = board.fen
        outcome = board.apply(result.best_move)
        if not outcome.legal:
            logger.error(
                "Engine generated an invalid move: %s for FEN: %s", result.best_move, fen_before
            )
            raise EngineMoveError("AI generated an invalid move.")
        logger.info("Computer played: %s for game %s", outcome.uci, game_id)
        return outcome.uci

    def _turn_lock(self, game_id: str) -> asyncio.Lock:
        lock = self._turn_locks.get(game_id)
        if lock is None:
            lock = self._turn_locks[game_id] = asyncio.Lock()
        return lock

    def _publish_state(self, record: GameRecord, ai_move: str | None) -> None:
        self.broadcaster.publish(record.game_id, state_event(record, ai_move))


def state_event(record: GameRecord, ai_move: str | None = None) -> GameStateUpdateEvent:
    return GameStateUpdateEvent(
        game_id=record.game_id,
        fen=record.fen,
        pgn=record.pgn,
        moves=list(record.moves),
        status=record.status,
        result=record.result,
        ai_move=ai_move,
    )


def _sync_record(record: GameRecord, board: ChessBoard) -> None:
    """Copy the board's position, moves and (if over) result into the record."""
    if board.is_game_over:
        record.status = "finished"
        record.result = board.result()
        board.set_result(record.result)
    record.moves = board.moves_uci()
    record.fen = board.fen
    record.pgn = board.to_pgn()
