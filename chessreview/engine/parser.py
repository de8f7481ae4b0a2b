"""
Incremental parser for UCI search output.

Engines print many `info` progress lines per search and finish with a single
`bestmove` line. SearchParser is fed one line at a time and keeps only the most
recent scored info record, so nothing is re-scanned as output accumulates.

    info depth 14 seldepth 20 multipv 1 score cp 23 nodes 123456 pv e2e4 e7e5
    bestmove e2e4 ponder e7e5
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

EvaluationKind = Literal["cp", "mate"]


@dataclass(frozen=True)
class Evaluation:
    """Engine score, signed relative to the side to move."""

    kind: EvaluationKind
    value: int

    @property
    def is_mate(self) -> bool:
        return self.kind == "mate"


@dataclass(frozen=True)
class InfoLine:
    depth: int | None
    evaluation: Evaluation
    pv: str


@dataclass(frozen=True)
class SearchResult:
    best_move: str | None          # None when the engine answers "bestmove (none)"
    evaluation: Evaluation
    principal_variation: str = ""
    ponder_move: str | None = None


_NO_SCORE = Evaluation("cp", 0)
# Tokens that take one argument and are irrelevant here.
_SKIPPED_WITH_ARG = {
    "seldepth", "time", "nodes", "nps", "hashfull", "tbhits",
    "cpuload", "currmove", "currmovenumber", "sbhits",
}


def parse_info_line(line: str) -> InfoLine | None:
    """
    Parse a scored `info` line. Returns None for anything else, including
    `info string ...`, unscored lines and secondary multipv lines.
    """
    parts = line.split()
    if not parts or parts[0] != "info":
        return None

    depth: int | None = None
    evaluation: Evaluation | None = None
    pv: list[str] = []
    i = 1
    try:
        while i < len(parts):
            tok = parts[i]
            if tok == "string":
                return None
            if tok == "depth":
                depth = int(parts[i + 1])
                i += 2
            elif tok == "multipv":
                if int(parts[i + 1]) != 1:
                    return None
                i += 2
            elif tok == "score":
                kind = parts[i + 1]
                if kind not in ("cp", "mate"):
                    return None
                evaluation = Evaluation(kind, int(parts[i + 2]))  # type: ignore[arg-type]
                i += 3
                if i < len(parts) and parts[i] in ("lowerbound", "upperbound"):
                    i += 1
            elif tok == "pv":
                pv = parts[i + 1:]
                break
            elif tok in _SKIPPED_WITH_ARG:
                i += 2
            else:
                i += 1
    except (IndexError, ValueError):
        return None

    if evaluation is None:
        return None
    return InfoLine(depth=depth, evaluation=evaluation, pv=" ".join(pv))


def parse_bestmove(line: str) -> tuple[str | None, str | None] | None:
    """Parse `bestmove <move> [ponder <move>]` into (move, ponder)."""
    parts = line.split()
    if len(parts) < 2 or parts[0] != "bestmove":
        return None
    move: str | None = parts[1]
    if move in ("(none)", "0000"):
        move = None
    ponder: str | None = None
    if len(parts) >= 4 and parts[2] == "ponder":
        ponder = parts[3]
    return move, ponder


class SearchParser:
    """
    Per-search state machine: awaiting -> (info seen, stay) -> resolved.

    The bestmove line is the only terminator. A search that resolves without
    any scored info line reports a neutral evaluation and an empty line.
    """

    def __init__(self) -> None:
        self._latest: InfoLine | None = None
        self._result: SearchResult | None = None

    @property
    def state(self) -> str:
        return "resolved" if self._result is not None else "awaiting"

    @property
    def latest(self) -> InfoLine | None:
        return self._latest

    @property
    def result(self) -> SearchResult | None:
        return self._result

    def feed(self, line: str) -> SearchResult | None:
        if self._result is not None:
            return self._result

        info = parse_info_line(line)
        if info is not None:
            # A score update without a pv keeps the last known line.
            if not info.pv and self._latest is not None:
                info = InfoLine(info.depth, info.evaluation, self._latest.pv)
            self._latest = info
            return None

        best = parse_bestmove(line)
        if best is None:
            return None
        move, ponder = best
        latest = self._latest
        self._result = SearchResult(
            best_move=move,
            ponder_move=ponder,
            evaluation=latest.evaluation if latest else _NO_SCORE,
            principal_variation=latest.pv if latest else "",
        )
        return self._result
