"""CLI commands for matchmaking."""

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from cardarena.cli.commands.battle import read_json_file
from cardarena.cli.ui.displays import display_matches
from cardarena.core.errors import CardArenaError
from cardarena.core.rating import find_best_matches
from cardarena.utils.config import config

app = typer.Typer(name="match", help="Find well-matched opponents")
console = Console()


@app.command("find")
def find(
    rating: float = typer.Argument(..., help="Your team's rating"),
    pool: Path = typer.Argument(..., help="JSON file with candidate teams"),
    limit: int = typer.Option(config.matchmaking_limit, "--limit", "-n", min=0, help="Number of matches to show"),
) -> None:
    """List the opponents closest to a rating."""
    candidates = read_json_file(pool, "pool")
    if not isinstance(candidates, list):
        console.print("[red]Pool file must contain a JSON list of teams.[/red]")
        raise typer.Exit(1)

    try:
        results = find_best_matches(rating, candidates, limit)
    except CardArenaError as e:
        console.print(f"[red]Matchmaking failed:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    display_matches(results, rating)
