"""CLI commands for the team leaderboard."""

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from cardarena.cli.commands.battle import read_json_file
from cardarena.cli.ui.displays import display_leaderboard
from cardarena.core.errors import CardArenaError
from cardarena.core.rating import LeaderboardOrder, rank_leaderboard
from cardarena.utils.config import config

app = typer.Typer(name="leaderboard", help="Team rankings")
console = Console()


@app.command("show")
def show_leaderboard(
    teams_file: Path = typer.Argument(..., help="JSON file with team rating records"),
    order: LeaderboardOrder = typer.Option(LeaderboardOrder.RATING, "--by", "-b", help="Rank by: rating, win_rate"),
    limit: int = typer.Option(config.leaderboard_limit, "--limit", "-n", min=0, help="Number of entries to show"),
) -> None:
    """Rank teams that have played at least one battle."""
    teams = read_json_file(teams_file, "teams")
    if not isinstance(teams, list):
        console.print("[red]Teams file must contain a JSON list of teams.[/red]")
        raise typer.Exit(1)

    try:
        entries = rank_leaderboard(teams, limit, order)
    except CardArenaError as e:
        console.print(f"[red]Leaderboard failed:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    display_leaderboard(entries, order)
