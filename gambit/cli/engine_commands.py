"""CLI commands for the engine bridge."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from gambit.config import load_config
from gambit.engines.bridge import EngineBridge, resolve_engine_path
from gambit.engines.difficulty import TIERS, resolve_tier
from gambit.match.errors import EngineError
from gambit.match.rules import ChessRules

engine_app = typer.Typer(
    name="engine",
    help="Check the move-search engine",
)

console = Console()


@engine_app.command("check")
def engine_check(
    difficulty: str = typer.Option("master", "--difficulty", "-d", help="Tier to search with"),
) -> None:
    """Run one search from the start position."""
    try:
        tier = resolve_tier(difficulty)
    except ValueError as e:
        raise typer.BadParameter(str(e))

    config = load_config()
    try:
        path = resolve_engine_path(config.engine.path)
    except EngineError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print(f"[bold]Engine:[/bold] {path}")

    rules = ChessRules()
    bridge = EngineBridge(
        rules,
        engine_path=path,
        timeout_grace_s=config.engine.timeout_grace_s,
        quit_timeout_s=config.engine.quit_timeout_s,
    )
    # No randomisation so the engine is actually started
    search_tier = tier.model_copy(update={"randomize_probability": 0.0})
    try:
        move = asyncio.run(bridge.best_move(rules.new_position(), search_tier))
    except EngineError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]OK[/green] {tier.name} plays {move.san} ({move.uci})")


@engine_app.command("tiers")
def engine_tiers() -> None:
    """List difficulty tiers."""
    table = Table(title="Difficulty Tiers")
    table.add_column("Name")
    table.add_column("Depth", justify="right")
    table.add_column("Think (ms)", justify="right")
    table.add_column("Skill", justify="right")
    table.add_column("Random", justify="right")
    for tier in TIERS.values():
        table.add_row(
            tier.name,
            str(tier.search_depth),
            str(tier.think_time_ms),
            str(tier.skill_level),
            f"{tier.randomize_probability:.0%}",
        )
    console.print(table)
