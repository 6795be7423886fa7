"""CLI commands for inspecting and managing stored matches."""

import asyncio
import json

import typer
from rich.console import Console
from rich.table import Table

from gambit.config import load_config
from gambit.match.errors import MatchError
from gambit.match.journal import MoveJournal
from gambit.match.rules import ChessRules
from gambit.match.store import MatchStore
from gambit.service import build_orchestrator

matches_app = typer.Typer(
    name="matches",
    help="Inspect, resign, and review stored matches",
)

console = Console()


def _open_store() -> MatchStore:
    return MatchStore(load_config().store.path)


@matches_app.command("list")
def matches_list(
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List active matches, one row per pair."""
    store = _open_store()
    rules = ChessRules()

    rows = []
    seen: set[str] = set()
    for pid, record in sorted(store.records().items()):
        if pid in seen:
            continue
        seen.update({pid, record.opponent})
        turn = rules.status(record.position_key).turn
        rows.append({
            "participant": pid,
            "opponent": record.opponent,
            "color": record.color.value,
            "turn": turn.value,
            "difficulty": record.difficulty,
            "last_move": record.last_move_san,
            "last_move_at": record.last_move_at,
        })

    if json_output:
        console.print_json(json.dumps(rows))
        return

    if not rows:
        console.print("[yellow]No active matches[/yellow]")
        return

    table = Table(title="Active Matches")
    table.add_column("Participant")
    table.add_column("Color")
    table.add_column("Opponent")
    table.add_column("Turn")
    table.add_column("Difficulty")
    table.add_column("Last Move")
    for row in rows:
        table.add_row(
            row["participant"],
            row["color"],
            row["opponent"],
            row["turn"],
            row["difficulty"],
            row["last_move"] or "-",
        )
    console.print(table)


@matches_app.command("show")
def matches_show(
    participant_id: str = typer.Argument(..., help="Participant id"),
) -> None:
    """Show one participant's match."""
    store = _open_store()
    record = store.get(participant_id)
    if record is None:
        console.print(f"[red]No active match for {participant_id}[/red]")
        raise typer.Exit(1)

    status = ChessRules().status(record.position_key)
    console.print(f"\n[bold cyan]Match: {participant_id} vs {record.opponent}[/bold cyan]")
    console.print(f"[bold]Color:[/bold] {record.color.value}")
    console.print(f"[bold]Turn:[/bold] {status.turn.value}{' (check)' if status.in_check else ''}")
    console.print(f"[bold]Difficulty:[/bold] {record.difficulty}")
    console.print(f"[bold]Position:[/bold] {record.position_key}")
    if record.last_move_san:
        console.print(f"[bold]Last Move:[/bold] {record.last_move_san} at {record.last_move_at}")
    if record.channel_ref:
        console.print(f"[bold]Channel:[/bold] {record.channel_ref}")


@matches_app.command("resign")
def matches_resign(
    participant_id: str = typer.Argument(..., help="Participant id"),
) -> None:
    """Resign a participant's match."""
    orchestrator = build_orchestrator()
    try:
        outcome = asyncio.run(orchestrator.resign(participant_id))
    except MatchError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print(f"{participant_id} resigned. {outcome.winner_id} wins.")


@matches_app.command("history")
def matches_history(
    participant_id: str | None = typer.Argument(None, help="Only events for this participant"),
    limit: int = typer.Option(50, "--limit", "-l", help="Number of entries"),
) -> None:
    """Print journal entries."""
    log_dir = load_config().journal.log_dir
    if log_dir is None:
        console.print("[yellow]Journal is disabled (journal.logDir not set)[/yellow]")
        return
    for event in MoveJournal(log_dir).read(participant_id=participant_id, limit=limit):
        console.print(event.model_dump_json())
