import json
import tempfile
import unittest
from pathlib import Path

from chessreview.engine.parser import Evaluation
from chessreview.records import AnalysisEntry, GameRecord
from chessreview.store import GameStore


def _record(game_id: str, user_id: str = "u1", status: str = "playing") -> GameRecord:
    return GameRecord(
        game_id=game_id,
        user_id=user_id,
        human_color="white",
        difficulty=3,
        players={"white": "Human", "black": "Computer"},
        status=status,  # type: ignore[arg-type]
    )


class GameStoreTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.path = Path(tmp.name) / "data" / "games.json"

    async def test_persists_and_reloads(self) -> None:
        store = GameStore(self.path)
        record = _record("g1")
        record.moves = ["e2e4"]
        await store.upsert(record)

        self.assertTrue(self.path.exists())
        self.assertFalse(self.path.with_suffix(".json.tmp").exists())
        reloaded = await GameStore(self.path).get("g1")
        self.assertEqual(reloaded.moves, ["e2e4"])
        self.assertEqual(reloaded.players, {"white": "Human", "black": "Computer"})

    async def test_returned_records_are_copies(self) -> None:
        store = GameStore()
        await store.upsert(_record("g1"))
        fetched = await store.get("g1")
        fetched.moves.append("e2e4")
        self.assertEqual((await store.get("g1")).moves, [])

    async def test_analysis_survives_a_round_trip(self) -> None:
        store = GameStore(self.path)
        await store.upsert(_record("g1", status="finished"))
        entry = AnalysisEntry(
            move_number=1, color="white", move="e2e4", fen="fen-after",
            evaluation=Evaluation("mate", -2), best_move=None, is_blunder=True,
            comment="Blunder. You lost significant advantage. Best was unknown.",
        )
        await store.replace_analysis("g1", [entry], complete=True, status="finished")

        reloaded = await GameStore(self.path).get("g1")
        self.assertEqual(reloaded.analysis, [entry])
        self.assertTrue(reloaded.analysis_complete)

    async def test_history_filters_by_user_and_status(self) -> None:
        store = GameStore()
        await store.upsert(_record("a", status="finished"))
        await store.upsert(_record("b", status="playing"))
        await store.upsert(_record("c", user_id="u2", status="finished"))
        await store.upsert(_record("d", status="terminated"))

        games = await store.list_for_user("u1", ("finished", "terminated"))

        self.assertEqual([g.game_id for g in games], ["d", "a"])

    async def test_set_status_and_delete(self) -> None:
        store = GameStore(self.path)
        await store.upsert(_record("g1"))
        await store.set_status("g1", "terminated")
        self.assertEqual((await store.get("g1")).status, "terminated")

        await store.delete("g1")
        self.assertIsNone(await store.get("g1"))
        self.assertEqual(json.loads(self.path.read_text(encoding="utf-8")), {})
        with self.assertRaises(KeyError):
            await store.set_status("g1", "finished")

    async def test_unreadable_file_starts_empty(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{bad json", encoding="utf-8")
        with self.assertLogs("chessreview.store", "ERROR"):
            store = GameStore(self.path)
        self.assertIsNone(await store.get("g1"))
