"""
Scripted UCI engine used by the tests as a real subprocess.

    python fake_engine.py <mode> [command-log-path]

Modes:
  normal      well-behaved engine; plays the first legal move (sorted UCI)
  no-uciok    never answers "uci"
  die-ready   exits as soon as it sees "isready"
  slow        answers "go" only after "stop"
  hang        never answers "go", ignores "stop"
  illegal     always answers with an illegal move
  none        answers "bestmove (none)"
  noisy       like normal, plus stderr chatter and bare bestmove lines

Every received command is appended to the log file when one is given.
"""

from __future__ import annotations

import sys

import chess


def _out(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


def _bestmove(board: chess.Board, mode: str) -> str:
    if mode == "illegal":
        return "bestmove e2e5"
    moves = sorted(m.uci() for m in board.legal_moves)
    if mode == "none" or not moves:
        return "bestmove (none)"
    if mode == "noisy" or len(moves) < 2:
        return f"bestmove {moves[0]}"
    return f"bestmove {moves[0]} ponder {moves[1]}"


def _info(board: chess.Board) -> list[str]:
    moves = sorted(m.uci() for m in board.legal_moves)
    if not moves:
        return []
    return [
        "info string fake engine thinking",
        "info depth 1 seldepth 1 multipv 1 score cp 10 nodes 20 nps 2000 time 1 pv " + moves[0],
        "info depth 2 seldepth 3 multipv 1 score cp 25 nodes 80 nps 4000 time 2 pv "
        + " ".join(moves[:2]),
    ]


def main() -> None:
    mode = sys.argv[1] if len(sys.argv) > 1 else "normal"
    log = open(sys.argv[2], "a", encoding="utf-8") if len(sys.argv) > 2 else None
    board = chess.Board()
    searching = False

    while True:
        raw = sys.stdin.readline()
        if not raw:
            return
        cmd = raw.strip()
        if log:
            log.write(cmd + "\n")
            log.flush()

        if cmd == "uci":
            _out("id name FakeFish")
            _out("id author tests")
            if mode == "noisy":
                sys.stderr.write("warning: running without NNUE\n")
                sys.stderr.flush()
            if mode != "no-uciok":
                _out("uciok")
        elif cmd == "isready":
            if mode == "die-ready":
                sys.exit(3)
            _out("readyok")
        elif cmd == "ucinewgame":
            board = chess.Board()
        elif cmd.startswith("position fen "):
            board = chess.Board(cmd[len("position fen "):])
        elif cmd.startswith("position startpos"):
            board = chess.Board()
            if " moves " in cmd:
                for uci in cmd.split(" moves ", 1)[1].split():
                    board.push_uci(uci)
        elif cmd.startswith("go"):
            for line in _info(board):
                _out(line)
            if mode in ("slow", "hang"):
                searching = True
                continue
            _out(_bestmove(board, mode))
        elif cmd == "stop":
            if searching and mode == "slow":
                _out(_bestmove(board, mode))
            searching = False
        elif cmd == "quit":
            return


if __name__ == "__main__":
    main()
