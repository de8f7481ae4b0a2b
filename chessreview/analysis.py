"""
Post-game review: replay a finished game and classify every human move.

Scoring works on a single "advantage to the side who just moved" integer scale:

  - a centipawn score is used as is;
  - a mate score becomes ±(MATE_VALUE - moves_to_mate), so a faster mate beats a
    slower one and every mate beats every centipawn score;
  - the engine scores the position *after* a move from the opponent's side, so
    that score is negated before being compared with the pre-move score;
  - a move that checkmates is worth exactly MATE_VALUE and is never flagged.

A human move is a blunder when it gives up more than BLUNDER_THRESHOLD, a
mistake when it gives up more than MISTAKE_THRESHOLD, and also a mistake when
it throws away a forced mate even if the numbers alone look harmless.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from chessreview.board import ChessBoard
from chessreview.engine.parser import Evaluation, SearchResult
from chessreview.errors import (
    EngineError,
    GameNotFound,
    InvalidGameState,
    ReplayCorruption,
)
from chessreview.records import AnalysisEntry, GameRecord
from chessreview.store import GameStore

logger = logging.getLogger(__name__)

MATE_VALUE = 10000
MISTAKE_THRESHOLD = 150   # 1.5 pawns
BLUNDER_THRESHOLD = 300   # 3 pawns

CHECKMATED = Evaluation("mate", 0)   # side to move has been mated
DRAWN = Evaluation("cp", 0)

Evaluator = Callable[[str], Awaitable[SearchResult]]


@dataclass(frozen=True)
class MoveQuality:
    is_mistake: bool = False
    is_blunder: bool = False
    comment: str = ""


def advantage(evaluation: Evaluation) -> int:
    """Map an evaluation onto the centipawn-like scale for the side to move."""
    if evaluation.kind == "cp":
        return evaluation.value
    if evaluation.value == 0:
        return -MATE_VALUE
    sign = 1 if evaluation.value > 0 else -1
    return sign * (MATE_VALUE - abs(evaluation.value))


def advantage_after_move(post: Evaluation, delivered_mate: bool) -> int:
    """Advantage for the side that just moved, given the opponent-side evaluation."""
    if delivered_mate:
        return MATE_VALUE
    return -advantage(post)


def classify_move(
    pre: Evaluation,
    post: Evaluation,
    best_move: str | None,
    *,
    delivered_mate: bool = False,
) -> MoveQuality:
    if delivered_mate:
        return MoveQuality()

    drop = advantage(pre) - advantage_after_move(post, delivered_mate)
    best = best_move or "unknown"

    if drop > BLUNDER_THRESHOLD:
        return MoveQuality(
            is_blunder=True,
            comment=f"Blunder. You lost significant advantage. Best was {best}.",
        )
    if drop > MISTAKE_THRESHOLD:
        return MoveQuality(is_mistake=True, comment=f"Mistake. Best move was {best}.")
    if pre.is_mate and pre.value > 0 and not post.is_mate:
        return MoveQuality(is_mistake=True, comment=f"Missed Mate. Best move was {best}.")
    return MoveQuality()


class GameAnalyzer:
    """
    Runs the review for one game at a time against the store.

    `evaluate` searches a single FEN and is expected to use a fresh engine per
    call (EngineSupervisor.analyze_position), never a live game's session.
    """

    def __init__(self, store: GameStore, evaluate: Evaluator) -> None:
        self._store = store
        self._evaluate = evaluate

    async def analyze(self, game_id: str) -> list[AnalysisEntry]:
        """
        Raises:
            GameNotFound, InvalidGameState: preconditions.
            ReplayCorruption: a recorded move could not be replayed. Entries
                produced before it are persisted as an incomplete analysis.
            EngineError: an evaluation failed; same partial persistence.

        Whatever ends the run early, including cancellation, the status goes
        back to "finished" so the game can be reviewed again.
        """
        record = await self._store.get(game_id)
        if record is None:
            raise GameNotFound(game_id)
        if record.analysis_complete:
            logger.info("Game %s already analyzed. Returning existing analysis.", game_id)
            return record.analysis
        if record.status != "finished":
            raise InvalidGameState(
                f"Game {game_id} is {record.status} and cannot be analyzed."
            )

        logger.info("Starting analysis for game %s (%d plies)...", game_id, len(record.moves))
        await self._store.set_status(game_id, "analyzing")

        entries: list[AnalysisEntry] = []
        try:
            await self._run(record, entries)
        except (ReplayCorruption, EngineError) as exc:
            logger.error("Analysis of game %s aborted after %d plies: %s", game_id, len(entries), exc)
            await self._store.replace_analysis(game_id, entries, complete=False, status="finished")
            raise
        except BaseException:
            # Cancellation or an unexpected failure must not leave the game stuck in "analyzing".
            logger.warning("Analysis of game %s interrupted after %d plies", game_id, len(entries))
            await self._store.replace_analysis(game_id, entries, complete=False, status="finished")
            raise

        await self._store.replace_analysis(game_id, entries, complete=True, status="finished")
        logger.info("Game %s analysis complete.", game_id)
        return entries

    async def _run(self, record: GameRecord, entries: list[AnalysisEntry]) -> None:
        board = ChessBoard()
        current = await self._evaluate(board.fen)

        for ply, move in enumerate(record.moves):
            mover = board.turn
            move_number = board.fullmove_number
            pre = current

            outcome = board.apply(move)
            if not outcome.legal:
                raise ReplayCorruption(record.game_id, ply, move)

            if outcome.game_over == "checkmate":
                post = CHECKMATED
            elif outcome.game_over == "draw":
                post = DRAWN
            else:
                current = await self._evaluate(outcome.fen)
                post = current.evaluation

            quality = MoveQuality()
            if mover == record.human_color:
                quality = classify_move(
                    pre.evaluation,
                    post,
                    pre.best_move,
                    delivered_mate=outcome.game_over == "checkmate",
                )

            entries.append(
                AnalysisEntry(
                    move_number=move_number,
                    color=mover,
                    move=move,
                    fen=outcome.fen,
                    evaluation=pre.evaluation,
                    best_move=pre.best_move,
                    principal_variation=pre.principal_variation,
                    is_mistake=quality.is_mistake,
                    is_blunder=quality.is_blunder,
                    comment=quality.comment,
                )
            )
