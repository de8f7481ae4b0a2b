"""
Rich-based terminal output for the CLI client.

This is the ONLY place where terminal output happens. It renders published
events and the post-game review; the game service stays UI-agnostic.
"""

from __future__ import annotations

import chess
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from chessreview.engine.parser import Evaluation
from chessreview.events import AnalysisCompleteEvent, GameEvent, GameStateUpdateEvent
from chessreview.records import AnalysisEntry

console = Console(legacy_windows=False)

_RESULT_STYLES: dict[str, str] = {
    "1-0": "bold green",
    "0-1": "bold red",
    "1/2-1/2": "bold yellow",
    "*": "dim",
}


def display_event(event: GameEvent) -> None:
    """Dispatch a GameEvent to the appropriate display function."""
    match event:
        case GameStateUpdateEvent():
            _state_update(event)
        case AnalysisCompleteEvent():
            console.print(
                f"[dim]Review done:[/] {event.total_plies} plies, "
                f"[yellow]{event.mistakes} mistake(s)[/], [red]{event.blunders} blunder(s)[/]"
            )


def display_board(fen: str) -> None:
    console.print(
        Panel(
            f"[green]{chess.Board(fen)}[/]",
            subtitle=f"[dim]{fen}[/]",
            border_style="dim",
            padding=(0, 1),
            expand=False,
        )
    )


def display_review(entries: list[AnalysisEntry]) -> None:
    table = Table(
        title="Game Review",
        show_header=True,
        header_style="bold",
        border_style="dim",
    )
    table.add_column("#", style="dim", justify="right")
    table.add_column("Side")
    table.add_column("Move", style="bold")
    table.add_column("Eval before", justify="right")
    table.add_column("Engine best", style="dim")
    table.add_column("Verdict")

    for entry in entries:
        if entry.is_blunder:
            verdict = f"[bold red]{entry.comment}[/]"
        elif entry.is_mistake:
            verdict = f"[yellow]{entry.comment}[/]"
        else:
            verdict = ""
        table.add_row(
            str(entry.move_number),
            entry.color,
            entry.move,
            format_evaluation(entry.evaluation),
            entry.best_move or "-",
            verdict,
        )

    console.print()
    console.print(table)


def format_evaluation(evaluation: Evaluation) -> str:
    """'+0.35' for centipawns, '#3' / '#-2' for mates (side-to-move relative)."""
    if evaluation.kind == "mate":
        return f"#{evaluation.value}"
    return f"{evaluation.value / 100:+.2f}"


def _state_update(event: GameStateUpdateEvent) -> None:
    if event.ai_move:
        console.print(f"  [green]✓[/] Computer played [bold]{event.ai_move}[/]")
    display_board(event.fen)
    if event.status == "playing":
        return

    style = _RESULT_STYLES.get(event.result, "white")
    console.print()
    console.print(
        Panel(
            f"[{style}]{event.result}[/]  —  {event.status.title()}\n"
            f"[dim]Total plies: {len(event.moves)}[/]",
            title="[bold]Game Over[/]",
            border_style=style.replace("bold ", ""),
            expand=False,
        )
    )
    console.print()
    console.rule("[dim]PGN[/]")
    console.print(event.pgn)
    console.rule()
