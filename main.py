"""
chessreview terminal client: play the engine, then review the game.

Wires together:  config → selector → store + supervisor → game service → CLI display
"""

from __future__ import annotations

import asyncio
import os
import sys

from rich.prompt import Confirm, Prompt

from chessreview.broadcast import GameBroadcaster
from chessreview.cli.display import console, display_board, display_event, display_review
from chessreview.cli.selector import select_game_settings
from chessreview.config import load_config, setup_logging
from chessreview.engine.supervisor import EngineSupervisor
from chessreview.errors import ChessReviewError, EngineInitError, IllegalMove
from chessreview.game import GameService
from chessreview.store import GameStore

_CLI_USER = "cli"


async def _main() -> None:
    try:
        config = load_config(os.environ.get("CHESSREVIEW_CONFIG", "config.yaml"))
    except FileNotFoundError as exc:
        console.print(f"[red]Error:[/] {exc}")
        sys.exit(1)
    except ValueError as exc:
        console.print(f"[red]Config error:[/] {exc}")
        sys.exit(1)

    # Engine chatter goes to the log file only; the terminal belongs to Rich.
    setup_logging(config.logging, console=False)

    service = GameService(
        store=GameStore(config.storage.games_path),
        supervisor=EngineSupervisor(config.engine),
        broadcaster=GameBroadcaster(),
    )
    difficulty, color = select_game_settings()

    try:
        try:
            record, ai_move = await service.create_game(_CLI_USER, difficulty, color)
        except EngineInitError:
            console.print(
                f"[red]Could not start the engine[/] ([dim]{config.engine.path}[/]). "
                f"See {config.logging.file} for details."
            )
            sys.exit(1)

        game_id = record.game_id
        updates = service.broadcaster.subscribe(game_id)
        if ai_move:
            console.print(f"  [green]✓[/] Computer played [bold]{ai_move}[/]")
        display_board(record.fen)

        while record.status == "playing":
            move = await asyncio.to_thread(
                Prompt.ask, "[bold]Your move[/] [dim](UCI or SAN, 'resign' to quit)[/]"
            )
            if move.strip().lower() == "resign":
                record = await service.terminate_game(game_id)
                break
            try:
                record, _ = await service.make_move(game_id, move)
            except IllegalMove as exc:
                console.print(f"  [red]✗[/] {exc}")
                continue
            except ChessReviewError as exc:
                console.print(f"  [red]Engine problem:[/] {exc}")
                record = await service.terminate_game(game_id)
                break
            while not updates.empty():
                display_event(updates.get_nowait())

        if record.status == "finished" and await asyncio.to_thread(
            Confirm.ask, "Review the game now?", default=True
        ):
            console.print("[dim]Analyzing every position, this can take a while…[/]")
            entries = await service.analyze_game(game_id)
            display_review(entries)
            while not updates.empty():
                display_event(updates.get_nowait())
    finally:
        await service.shutdown()


def main() -> None:
    try:
        asyncio.run(_main())
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/]")


if __name__ == "__main__":
    main()
