"""CLI commands for running battles locally."""

import json
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.markup import escape

from cardarena.cli.ui.displays import display_battle_log, display_battle_result
from cardarena.core.battle import resolve_battle
from cardarena.core.errors import CardArenaError
from cardarena.utils.helpers import load_json, make_rng

app = typer.Typer(name="battle", help="Simulate battles between rosters")
console = Console()


def read_json_file(path: Path, what: str) -> Any:
    """Load a JSON file or exit with a readable error."""
    try:
        return load_json(path)
    except OSError as e:
        console.print(f"[red]Cannot read {what} file {path}:[/red] {escape(str(e.strerror or e))}")
        raise typer.Exit(1)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON in {what} file {path}:[/red] {escape(e.msg)} (line {e.lineno})")
        raise typer.Exit(1)


@app.command("simulate")
def simulate(
    roster_a: Path = typer.Argument(..., help="JSON file with Team A's cards"),
    roster_b: Path = typer.Argument(..., help="JSON file with Team B's cards"),
    seed: Optional[int] = typer.Option(None, "--seed", "-s", help="Seed for a reproducible battle"),
    as_json: bool = typer.Option(False, "--json", help="Print the battle record as JSON"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Hide individual attacks"),
) -> None:
    """Run a battle between two rosters and show the log."""
    team_a = read_json_file(roster_a, "roster")
    team_b = read_json_file(roster_b, "roster")

    try:
        record = resolve_battle(team_a, team_b, rng=make_rng(seed))
    except CardArenaError as e:
        console.print(f"[red]Battle failed:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if as_json:
        print(record.model_dump_json(indent=2))
        return

    display_battle_log(record, show_attacks=not quiet)
    console.print()
    display_battle_result(record)
