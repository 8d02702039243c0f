"""CLI commands for ELO ratings."""

from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from cardarena.cli.ui.displays import display_rating_update, format_tier
from cardarena.core.battle import Team
from cardarena.core.errors import CardArenaError
from cardarena.core.rating import (
    elo_tier,
    k_factor,
    matchmaking_range,
    update_ratings,
    win_probability,
)

app = typer.Typer(name="rating", help="ELO ratings and win odds")
console = Console()


@app.command("update")
def update(
    winner: Team = typer.Option(..., "--winner", "-w", help="Winning side: A or B"),
    rating_a: Optional[float] = typer.Option(None, "--rating-a", help="Team A rating (default 1000)"),
    wins_a: int = typer.Option(0, "--wins-a", min=0),
    losses_a: int = typer.Option(0, "--losses-a", min=0),
    rating_b: Optional[float] = typer.Option(None, "--rating-b", help="Team B rating (default 1000)"),
    wins_b: int = typer.Option(0, "--wins-b", min=0),
    losses_b: int = typer.Option(0, "--losses-b", min=0),
) -> None:
    """Show the new ratings of both teams after a battle."""
    try:
        result = update_ratings(
            {"rating": rating_a, "wins": wins_a, "losses": losses_a},
            {"rating": rating_b, "wins": wins_b, "losses": losses_b},
            winner,
        )
    except CardArenaError as e:
        console.print(f"[red]Rating update failed:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    display_rating_update(result)


@app.command("odds")
def odds(
    rating_a: float = typer.Argument(..., help="Team A rating"),
    rating_b: float = typer.Argument(..., help="Team B rating"),
) -> None:
    """Show the win probability of Team A against Team B."""
    try:
        probability = win_probability(rating_a, rating_b)
    except CardArenaError as e:
        console.print(f"[red]Invalid rating:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    console.print(Panel(
        f"Team A ({rating_a:g}, {format_tier(rating_a)}) vs Team B ({rating_b:g}, {format_tier(rating_b)})\n"
        f"Team A wins: [bold cyan]{probability}%[/bold cyan] | "
        f"Team B wins: [bold magenta]{100 - probability}%[/bold magenta]",
        title="Win Probability",
        border_style="yellow",
    ))


@app.command("tier")
def tier(
    rating: float = typer.Argument(..., help="Rating to classify"),
    games: int = typer.Option(0, "--games", "-g", min=0, help="Games played, for the K-factor"),
) -> None:
    """Show the tier, K-factor and fair matchmaking range for a rating."""
    try:
        low, high = matchmaking_range(rating)
    except CardArenaError as e:
        console.print(f"[red]Invalid rating:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    console.print(Panel(
        f"Tier: {format_tier(rating)} ({elo_tier(rating).color})\n"
        f"K-factor: {k_factor(games)}\n"
        f"Fair opponents: {low:g} - {high:g}",
        title=f"Rating {rating:g}",
        border_style="cyan",
    ))
