"""gambit command line entry point."""

import asyncio
import sys

import typer
from loguru import logger
from rich.console import Console

from gambit import __version__
from gambit.cli.engine_commands import engine_app
from gambit.cli.match_commands import matches_app
from gambit.config import load_config
from gambit.match.errors import IllegalMove, MatchError
from gambit.match.orchestrator import MatchOrchestrator, MoveOutcome
from gambit.service import build_orchestrator

app = typer.Typer(
    name="gambit",
    help="Chess matches between chat participants and a tunable engine",
    no_args_is_help=True,
)
app.add_typer(matches_app, name="matches")
app.add_typer(engine_app, name="engine")

console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log to stderr (silent otherwise)"),
) -> None:
    logger.remove()
    if verbose:
        logger.add(sys.stderr, level="DEBUG")


@app.command()
def version() -> None:
    """Show the installed version."""
    console.print(f"gambit {__version__}")


@app.command()
def play(
    difficulty: str | None = typer.Option(None, "--difficulty", "-d", help="Engine difficulty tier"),
    player: str = typer.Option("you", "--player", "-p", help="Your participant id"),
) -> None:
    """Play against the engine in the terminal. Unfinished matches are resumed."""
    config = load_config()
    if not config.automated_participants:
        console.print("[red]No automated participant configured[/red]")
        raise typer.Exit(1)
    bot = config.automated_participants[0]
    if player == bot:
        raise typer.BadParameter(f"'{bot}' is the engine's id")

    orchestrator = build_orchestrator(config)
    try:
        asyncio.run(_play_session(orchestrator, player, bot, difficulty))
    except (MatchError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


async def _play_session(
    orchestrator: MatchOrchestrator,
    player: str,
    bot: str,
    difficulty: str | None,
) -> None:
    record = orchestrator.get_match(player)
    if record is None:
        start = await orchestrator.create_match(player, bot, difficulty)
        console.print(
            f"New match vs {bot} ({start.difficulty}). "
            f"You play {'White' if start.first_id == player else 'Black'}."
        )
        if start.opening_move:
            _print_move(start.opening_move, player)
    else:
        if record.opponent != bot:
            console.print(f"[red]{player} is playing {record.opponent}, not {bot}[/red]")
            return
        console.print(f"Resuming match vs {bot} ({record.difficulty}).")
        if orchestrator.query_turn(player) != record.color:
            _print_move(await orchestrator.apply_automated_move(player), player)

    console.print("Enter moves in SAN or coordinates. Commands: moves, resign, quit.")
    while True:
        text = typer.prompt("Your move").strip()
        if text in ("quit", "exit"):
            console.print("Match saved.")
            return
        if text == "resign":
            outcome = await orchestrator.resign(player)
            console.print(f"You resigned. {outcome.winner_id} wins.")
            return
        if text == "moves":
            console.print(" ".join(m.san for m in orchestrator.legal_moves(player)))
            continue

        try:
            turn = await orchestrator.play_turn(player, text)
        except IllegalMove:
            console.print(f"[yellow]Illegal move: {text}[/yellow]")
            continue

        _print_move(turn.move, player)
        if turn.reply_error is not None:
            console.print(f"[red]{bot} could not move: {turn.reply_error}[/red]")
            console.print("Run `gambit play` again to resume.")
            return
        if turn.reply is not None:
            _print_move(turn.reply, player)
        final = turn.reply or turn.move
        if final.is_over:
            return


def _print_move(outcome: MoveOutcome, player: str) -> None:
    who = "You" if outcome.participant_id == player else outcome.participant_id
    suffix = " Check!" if outcome.status.in_check and not outcome.is_over else ""
    console.print(f"{who} played [bold]{outcome.move.san}[/bold].{suffix}")
    if outcome.over_reason is not None:
        if outcome.winner_id:
            console.print(f"[bold]Game over by {outcome.over_reason.value}. {outcome.winner_id} wins.[/bold]")
        else:
            console.print(f"[bold]Game over by {outcome.over_reason.value}. Draw.[/bold]")


if __name__ == "__main__":
    app()
