"""
FastAPI application: the HTTP/WebSocket front of the game service.

Exposes:
  POST /api/games                    Create a game against the engine
  POST /api/games/{id}/move          Play a move (the engine replies in the same call)
  GET  /api/games/history            Finished / analyzed / terminated games of a user
  GET  /api/games/{id}               Full game record
  POST /api/games/{id}/analyze       Review a finished game
  POST /api/games/{id}/terminate     Abandon a game and kill its engine
  WS   /ws/game/{id}                 Current state on connect, then live updates

create_app() takes a ready GameService (tests pass one wired to a fake engine);
app_from_config() is the uvicorn factory used by web_main.py.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import os
from datetime import date, datetime
from typing import Any

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect

from chessreview.broadcast import GameBroadcaster
from chessreview.config import load_config, setup_logging
from chessreview.engine.supervisor import EngineSupervisor
from chessreview.errors import (
    ChessReviewError,
    EngineError,
    EngineInitError,
    EngineMoveError,
    GameNotFound,
    IllegalMove,
    InvalidDifficulty,
    InvalidGameState,
    ReplayCorruption,
    SearchTimeout,
    SessionNotFound,
)
from chessreview.game import GameService, state_event
from chessreview.store import GameStore

logger = logging.getLogger(__name__)


def _to_json_dict(event: Any) -> dict:
    """Event dataclass → JSON-ready dict tagged with its type name."""
    return {"type": type(event).__name__, **dataclasses.asdict(event)}


def _to_json(data: dict) -> str:
    """json.dumps with datetime → ISO-string support."""
    def _default(obj: object) -> str:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
    return json.dumps(data, default=_default)


def _http_error(exc: ChessReviewError) -> HTTPException:
    """Map a service error to an HTTP status. Engine details stay in the log."""
    match exc:
        case GameNotFound() | SessionNotFound():
            return HTTPException(status_code=404, detail=str(exc))
        case IllegalMove() | InvalidGameState() | InvalidDifficulty():
            return HTTPException(status_code=400, detail=str(exc))
        case ReplayCorruption():
            return HTTPException(status_code=422, detail=str(exc))
        case EngineInitError():
            return HTTPException(status_code=503, detail="Engine initialization failed")
        case SearchTimeout():
            return HTTPException(status_code=504, detail="Engine move calculation timed out")
        case EngineMoveError():
            return HTTPException(status_code=502, detail=str(exc))
        case EngineError():
            return HTTPException(status_code=502, detail="Engine error")
        case _:
            return HTTPException(status_code=500, detail="Internal error")


def _int_field(payload: dict, name: str) -> int:
    value = payload.get(name)
    if isinstance(value, bool):
        raise HTTPException(status_code=400, detail=f"{name} must be an integer")
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail=f"{name} must be an integer") from None


def create_app(service: GameService) -> FastAPI:
    app = FastAPI(title="chessreview")
    app.state.service = service

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await service.shutdown()

    # ----------------------------------------------------------------------- #
    # REST                                                                     #
    # ----------------------------------------------------------------------- #

    @app.post("/api/games", status_code=201)
    async def create_game(payload: dict):
        user_id = str(payload.get("user_id", "")).strip()
        player_color = str(payload.get("player_color", "")).strip()
        if not user_id or payload.get("difficulty") is None or not player_color:
            raise HTTPException(
                status_code=400, detail="user_id, difficulty and player_color are required"
            )
        difficulty = _int_field(payload, "difficulty")
        if not 1 <= difficulty <= 10:
            raise HTTPException(status_code=400, detail="difficulty must be between 1 and 10")
        if player_color not in ("white", "black"):
            raise HTTPException(status_code=400, detail='player_color must be "white" or "black"')

        try:
            record, ai_move = await service.create_game(user_id, difficulty, player_color)
        except ChessReviewError as exc:
            logger.error("Error creating game: %s", exc)
            raise _http_error(exc) from exc

        return {
            "message": "Game created successfully",
            "game_id": record.game_id,
            "fen": record.fen,
            "player_color": player_color,
            "ai_move": ai_move,
        }

    @app.post("/api/games/{game_id}/move")
    async def make_move(game_id: str, payload: dict):
        move = str(payload.get("move", "")).strip()
        if not move:
            raise HTTPException(status_code=400, detail="move is required")
        try:
            record, ai_move = await service.make_move(game_id, move)
        except ChessReviewError as exc:
            logger.error("Error making move for game %s: %s", game_id, exc)
            raise _http_error(exc) from exc
        return {
            "message": "Move successful",
            "game_id": record.game_id,
            "fen": record.fen,
            "pgn": record.pgn,
            "moves": record.moves,
            "status": record.status,
            "result": record.result,
            "ai_move": ai_move,
        }

    # Declared before /api/games/{game_id} so "history" is not taken as an id.
    @app.get("/api/games/history")
    async def game_history(user_id: str):
        games = await service.game_history(user_id)
        return [g.summary() for g in games]

    @app.get("/api/games/{game_id}")
    async def get_game(game_id: str):
        try:
            record = await service.get_game(game_id)
        except GameNotFound as exc:
            raise _http_error(exc) from exc
        return json.loads(_to_json(record.to_dict()))

    @app.post("/api/games/{game_id}/analyze")
    async def analyze_game(game_id: str):
        try:
            entries = await service.analyze_game(game_id)
        except ChessReviewError as exc:
            logger.error("Error analyzing game %s: %s", game_id, exc)
            raise _http_error(exc) from exc
        return {
            "message": "Game analysis complete",
            "game_id": game_id,
            "analysis": [e.to_dict() for e in entries],
        }

    @app.post("/api/games/{game_id}/terminate")
    async def terminate_game(game_id: str):
        try:
            await service.terminate_game(game_id)
        except GameNotFound as exc:
            raise _http_error(exc) from exc
        return {"message": f"Game {game_id} terminated successfully."}

    # ----------------------------------------------------------------------- #
    # WebSocket viewers                                                        #
    # ----------------------------------------------------------------------- #

    @app.websocket("/ws/game/{game_id}")
    async def game_ws(ws: WebSocket, game_id: str) -> None:
        await ws.accept()
        try:
            record = await service.get_game(game_id)
        except GameNotFound as exc:
            await ws.send_text(_to_json({"type": "error", "message": str(exc)}))
            await ws.close()
            return

        queue = service.broadcaster.subscribe(game_id)
        try:
            await ws.send_text(_to_json(_to_json_dict(state_event(record))))

            async def _send_loop() -> None:
                while True:
                    event = await queue.get()
                    await ws.send_text(_to_json(_to_json_dict(event)))

            async def _receive_loop() -> None:
                # Viewers don't send anything meaningful; this only notices disconnects.
                try:
                    while True:
                        await ws.receive_text()
                except (WebSocketDisconnect, RuntimeError):
                    pass

            send_task = asyncio.create_task(_send_loop())
            recv_task = asyncio.create_task(_receive_loop())
            done, pending = await asyncio.wait(
                {send_task, recv_task}, return_when=asyncio.FIRST_COMPLETED
            )
            for task in pending:
                task.cancel()
                try:
                    await task
                except (asyncio.CancelledError, WebSocketDisconnect):
                    pass
            for task in done:
                exc = task.exception()
                if exc is not None and not isinstance(exc, WebSocketDisconnect):
                    logger.warning("Viewer socket for game %s closed: %s", game_id, exc)
        except WebSocketDisconnect:
            pass
        finally:
            service.broadcaster.unsubscribe(game_id, queue)

    return app


def app_from_config() -> FastAPI:
    """uvicorn factory: config.yaml → logging → store + supervisor → app."""
    config = load_config(os.environ.get("CHESSREVIEW_CONFIG", "config.yaml"))
    setup_logging(config.logging)
    service = GameService(
        store=GameStore(config.storage.games_path),
        supervisor=EngineSupervisor(config.engine),
        broadcaster=GameBroadcaster(),
    )
    return create_app(service)
