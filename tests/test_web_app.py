"""
HTTP and WebSocket tests for the FastAPI app, wired to the fake engine.

TestClient is always used as a context manager so every request runs on one
event loop, the one the engine subprocesses were spawned on.
"""

import unittest

from fastapi.testclient import TestClient

from chessreview.engine.supervisor import EngineSupervisor
from chessreview.game import GameService
from chessreview.store import GameStore
from chessreview.web import app as web_app
from helpers import engine_config


def _client(mode: str = "normal", **overrides) -> TestClient:
    service = GameService(GameStore(), EngineSupervisor(engine_config(mode, **overrides)))
    return TestClient(web_app.create_app(service))


class GameApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = _client()
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)

    def _create(self, color: str = "white") -> dict:
        res = self.client.post(
            "/api/games", json={"user_id": "u1", "difficulty": 4, "player_color": color}
        )
        self.assertEqual(res.status_code, 201, res.text)
        return res.json()

    def test_create_game(self) -> None:
        body = self._create()
        self.assertEqual(body["message"], "Game created successfully")
        self.assertEqual(body["player_color"], "white")
        self.assertIsNone(body["ai_move"])
        self.assertTrue(body["fen"].startswith("rnbqkbnr/pppppppp"))

    def test_create_as_black_returns_engine_move(self) -> None:
        body = self._create("black")
        self.assertEqual(body["ai_move"], "a2a3")

    def test_create_validation(self) -> None:
        for payload in (
            {"difficulty": 4, "player_color": "white"},
            {"user_id": "u1", "player_color": "white"},
            {"user_id": "u1", "difficulty": 11, "player_color": "white"},
            {"user_id": "u1", "difficulty": "hard", "player_color": "white"},
            {"user_id": "u1", "difficulty": True, "player_color": "white"},
            {"user_id": "u1", "difficulty": 4, "player_color": "green"},
        ):
            with self.subTest(payload=payload):
                res = self.client.post("/api/games", json=payload)
                self.assertEqual(res.status_code, 400)

    def test_move_and_fetch(self) -> None:
        game_id = self._create()["game_id"]

        res = self.client.post(f"/api/games/{game_id}/move", json={"move": "e2e4"})
        self.assertEqual(res.status_code, 200, res.text)
        body = res.json()
        self.assertEqual(body["ai_move"], "a7a5")
        self.assertEqual(body["moves"], ["e2e4", "a7a5"])
        self.assertEqual(body["status"], "playing")

        game = self.client.get(f"/api/games/{game_id}").json()
        self.assertEqual(game["moves"], ["e2e4", "a7a5"])
        self.assertEqual(game["players"]["white"], "Human")

    def test_move_errors(self) -> None:
        game_id = self._create()["game_id"]
        self.assertEqual(
            self.client.post(f"/api/games/{game_id}/move", json={"move": "e2e5"}).status_code, 400
        )
        self.assertEqual(
            self.client.post(f"/api/games/{game_id}/move", json={}).status_code, 400
        )
        self.assertEqual(
            self.client.post("/api/games/missing/move", json={"move": "e2e4"}).status_code, 404
        )

    def test_unknown_game(self) -> None:
        self.assertEqual(self.client.get("/api/games/missing").status_code, 404)
        self.assertEqual(self.client.post("/api/games/missing/terminate").status_code, 404)
        self.assertEqual(self.client.post("/api/games/missing/analyze").status_code, 404)

    def test_terminate_then_history(self) -> None:
        game_id = self._create()["game_id"]
        self.assertEqual(self.client.get("/api/games/history", params={"user_id": "u1"}).json(), [])

        res = self.client.post(f"/api/games/{game_id}/terminate")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["message"], f"Game {game_id} terminated successfully.")

        history = self.client.get("/api/games/history", params={"user_id": "u1"}).json()
        self.assertEqual([g["game_id"] for g in history], [game_id])
        self.assertEqual(history[0]["status"], "terminated")

        # Terminated games are not reviewable.
        self.assertEqual(self.client.post(f"/api/games/{game_id}/analyze").status_code, 400)

    def test_websocket_sends_state_then_updates(self) -> None:
        game_id = self._create()["game_id"]
        with self.client.websocket_connect(f"/ws/game/{game_id}") as ws:
            initial = ws.receive_json()
            self.assertEqual(initial["type"], "GameStateUpdateEvent")
            self.assertEqual(initial["moves"], [])

            self.client.post(f"/api/games/{game_id}/move", json={"move": "e2e4"})

            update = ws.receive_json()
            self.assertEqual(update["type"], "GameStateUpdateEvent")
            self.assertEqual(update["ai_move"], "a7a5")
            self.assertEqual(update["moves"], ["e2e4", "a7a5"])

    def test_websocket_for_unknown_game(self) -> None:
        with self.client.websocket_connect("/ws/game/missing") as ws:
            msg = ws.receive_json()
        self.assertEqual(msg["type"], "error")


class EngineUnavailableTests(unittest.TestCase):
    def test_create_reports_init_failure(self) -> None:
        with _client("no-uciok", handshake_timeout=0.3) as client:
            res = client.post(
                "/api/games", json={"user_id": "u1", "difficulty": 4, "player_color": "white"}
            )
            self.assertEqual(res.status_code, 503)
            self.assertEqual(res.json()["detail"], "Engine initialization failed")
            self.assertEqual(client.get("/api/games/history", params={"user_id": "u1"}).json(), [])
