"""
Interactive game setup for the terminal client.

Shows the difficulty table and prompts for a level and the human's colour.
"""

from __future__ import annotations

from rich.console import Console
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from chessreview.engine.difficulty import MAX_LEVEL, MIN_LEVEL, configuration_for

console = Console(legacy_windows=False)


def select_game_settings() -> tuple[int, str]:
    """Return (difficulty, player_color)."""
    _print_difficulty_table()

    difficulty = IntPrompt.ask(
        "\n[bold]Difficulty[/]",
        choices=[str(i) for i in range(MIN_LEVEL, MAX_LEVEL + 1)],
        show_choices=False,
        default=5,
    )
    color = Prompt.ask(
        "[bold]Play as[/]",
        choices=["white", "black"],
        default="white",
    )
    console.print(f"\n  You play [bold]{color}[/] at level [bold]{difficulty}[/]\n")
    return difficulty, color


def _print_difficulty_table() -> None:
    table = Table(
        title="Difficulty Levels",
        show_header=True,
        header_style="bold",
        border_style="dim",
    )
    table.add_column("Level", style="dim", width=5, justify="right")
    table.add_column("Elo", justify="right")
    table.add_column("Skill", justify="right", style="dim")
    table.add_column("Search", style="dim")

    for level in range(MIN_LEVEL, MAX_LEVEL + 1):
        settings = configuration_for(level)
        table.add_row(
            str(level),
            str(settings.elo),
            str(settings.skill_level),
            settings.budget.go_command().removeprefix("go "),
        )

    console.print()
    console.print(table)
