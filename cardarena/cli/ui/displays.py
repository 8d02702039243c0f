"""Rich display components for the CLI."""

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from cardarena.core.battle import (
    AttackEntry,
    BattleRecord,
    CombatUnit,
    EndEntry,
    RoundStartEntry,
    StartEntry,
    Team,
)
from cardarena.core.rating import (
    EloTier,
    LeaderboardEntry,
    LeaderboardOrder,
    MatchResult,
    RatingUpdate,
    elo_tier,
)

console = Console()


TEAM_COLORS = {
    Team.A: "cyan",
    Team.B: "magenta",
}

TIER_STYLES = {
    EloTier.GRANDMASTER: "bold gold1",
    EloTier.MASTER: "bold medium_purple",
    EloTier.EXPERT: "bold blue",
    EloTier.ADVANCED: "green",
    EloTier.INTERMEDIATE: "chartreuse3",
    EloTier.NOVICE: "grey70",
    EloTier.BEGINNER: "grey50",
}


def _hp_bar(current: int, maximum: int, width: int = 10) -> str:
    """Create a health bar."""
    filled = int(width * current / maximum) if maximum else 0
    color = "green" if current * 2 > maximum else "yellow" if current * 4 > maximum else "red"
    return f"[{color}]{'#' * filled}[/{color}][dim]{'-' * (width - filled)}[/dim]"


def format_tier(rating: float) -> str:
    tier = elo_tier(rating)
    style = TIER_STYLES[tier]
    return f"[{style}]{tier.value}[/{style}]"


def display_battle_log(record: BattleRecord, show_attacks: bool = True) -> None:
    """Print the battle log, one line per entry."""
    for entry in record.log:
        if isinstance(entry, StartEntry):
            console.print(f"[bold]{escape(entry.message)}[/bold]")
        elif isinstance(entry, RoundStartEntry):
            console.print(f"\n[bold yellow]{escape(entry.message)}[/bold yellow]")
        elif isinstance(entry, AttackEntry):
            if not show_attacks:
                continue
            color = TEAM_COLORS[entry.attacker.team]
            line = f"  [{color}]{escape(entry.message)}[/{color}]"
            if entry.died:
                line += " [red]x[/red]"
            console.print(line)
        elif isinstance(entry, EndEntry):
            console.print(f"\n[bold green]{escape(entry.message)}[/bold green]")


def _units_table(title: str, units: list[CombatUnit], team: Team) -> Table:
    table = Table(title=title, box=box.ROUNDED, title_style=TEAM_COLORS[team])
    table.add_column("Card", style="bold")
    table.add_column("ATK", justify="right")
    table.add_column("SPD", justify="right")
    table.add_column("HP", justify="right")
    table.add_column("")

    for unit in units:
        status = "" if unit.is_alive else "[red]KO[/red]"
        table.add_row(
            escape(unit.name),
            str(unit.attack),
            str(unit.speed),
            f"{_hp_bar(unit.current_health, unit.max_health)} {unit.current_health}/{unit.max_health}",
            status,
        )
    return table


def display_battle_result(record: BattleRecord) -> None:
    """Display the final state of both rosters and the winner's score."""
    console.print(_units_table("Team A", record.final_units.team_a, Team.A))
    console.print(_units_table("Team B", record.final_units.team_b, Team.B))

    score = record.score
    stats = record.team_stats
    console.print(Panel(
        f"Winner: [bold]Team {record.winner.value}[/bold] ({record.win_condition.value})\n"
        f"Rounds: {record.rounds_played}\n"
        f"Power: A {stats.team_a.total_power} | B {stats.team_b.total_power}\n"
        f"Score: {score.total} (Base: {score.base}, Power Bonus: {score.power_bonus}, "
        f"Speed Bonus: {score.speed_bonus})",
        title="Battle Result",
        border_style="green",
    ))


def display_rating_update(update: RatingUpdate) -> None:
    """Display old/new ratings for both sides."""
    table = Table(title="Rating Update", box=box.ROUNDED)
    table.add_column("Team", style="bold")
    table.add_column("Old", justify="right")
    table.add_column("New", justify="right", style="cyan")
    table.add_column("Change", justify="right")
    table.add_column("Expected", justify="right")
    table.add_column("Tier")

    for label, delta in (("A", update.team_a), ("B", update.team_b)):
        color = "green" if delta.change > 0 else "red" if delta.change < 0 else "white"
        table.add_row(
            label,
            f"{delta.old_rating:g}",
            f"{delta.new_rating:g}",
            f"[{color}]{delta.change:+d}[/{color}]",
            f"{delta.expected_score:.3f}",
            format_tier(delta.new_rating),
        )

    console.print(table)


def display_matches(results: list[MatchResult], rating: float) -> None:
    """Display matchmaking candidates, closest first."""
    if not results:
        console.print("[dim]No opponents found.[/dim]")
        return

    table = Table(title=f"Best Matches for {rating:g}", box=box.ROUNDED)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Team", style="bold")
    table.add_column("Rating", justify="right", style="cyan")
    table.add_column("Diff", justify="right")
    table.add_column("Tier")
    table.add_column("W", justify="right", style="green")
    table.add_column("L", justify="right", style="red")

    for i, result in enumerate(results, start=1):
        candidate = result.candidate
        table.add_row(
            str(i),
            escape(candidate.name or str(candidate.team_id or "?")),
            f"{candidate.effective_rating:g}",
            f"{result.matchmaking_score:g}",
            format_tier(candidate.effective_rating),
            str(candidate.wins),
            str(candidate.losses),
        )

    console.print(table)


RANK_STYLES = {
    1: "bold gold1",
    2: "bold grey82",
    3: "bold dark_orange3",
}


def display_leaderboard(entries: list[LeaderboardEntry], order: LeaderboardOrder) -> None:
    """Display ranked teams, highlighting the top 3."""
    if not entries:
        console.print("[dim]Leaderboard is empty.[/dim]")
        return

    label = "Rating" if order is LeaderboardOrder.RATING else "Win Rate"
    table = Table(title=f"Leaderboard (by {label})", box=box.ROUNDED)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Team", style="bold")
    table.add_column("Rating", justify="right", style="cyan")
    table.add_column("Tier")
    table.add_column("W", justify="right", style="green")
    table.add_column("L", justify="right", style="red")
    table.add_column("Win%", justify="right")

    for entry in entries:
        team = entry.team
        style = RANK_STYLES.get(entry.rank)
        rank = f"[{style}]{entry.rank}[/{style}]" if style else str(entry.rank)
        table.add_row(
            rank,
            escape(team.name or str(team.team_id or "?")),
            f"{entry.rating:g}",
            format_tier(entry.rating),
            str(team.wins),
            str(team.losses),
            f"{entry.win_rate:g}%",
        )

    console.print(table)
    console.print(f"[dim]Showing {len(entries)} teams[/dim]")
