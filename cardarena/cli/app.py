"""Main CLI application for CardArena."""

import typer
from rich.console import Console

from cardarena import __version__
from cardarena.cli.commands import battle, leaderboard, match, rating
from cardarena.utils.config import config
from cardarena.utils.helpers import configure_logging

# Create main app
app = typer.Typer(
    name="cardarena",
    help="CardArena - card battle simulator, ELO ratings and matchmaking",
    no_args_is_help=True,
)

# Register sub-commands
app.add_typer(battle.app, name="battle", help="Simulate battles")
app.add_typer(rating.app, name="rating", help="ELO ratings")
app.add_typer(match.app, name="match", help="Matchmaking")
app.add_typer(leaderboard.app, name="leaderboard", help="Team rankings")

console = Console()


@app.command("version")
def show_version() -> None:
    """Show version information."""
    console.print(f"CardArena v{__version__}")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs on stderr"),
) -> None:
    """CardArena - battle your card teams!"""
    configure_logging("DEBUG" if verbose else config.log_level)


if __name__ == "__main__":
    app()
