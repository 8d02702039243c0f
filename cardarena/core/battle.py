"""Turn-based battle resolver for card rosters.

Runs a complete battle between two rosters in one call:
    clone rosters -> rounds (speed order, random targets) -> winner -> record

The resolver is pure apart from its random source. Inject a seeded
``random.Random`` to replay a battle exactly.
"""

from __future__ import annotations

import math
import random
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Annotated, Any, Literal, Union

from loguru import logger
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    computed_field,
    field_validator,
    model_validator,
)

from cardarena.core.errors import BattleInvariantError, InvalidRosterError
from cardarena.utils.config import Config, config
from cardarena.utils.helpers import round_half_up


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Team(str, Enum):
    """Side of a battle."""

    A = "A"
    B = "B"

    @property
    def opponent(self) -> Team:
        return Team.B if self is Team.A else Team.A


class WinCondition(str, Enum):
    """How the winner of a battle was decided."""

    ELIMINATION = "elimination"  # Loser has no living units
    SURVIVORS = "survivors"  # Round cap hit, winner has more living units
    HEALTH = "health"  # Equal living units, more total health (A on ties)


# ---------------------------------------------------------------------------
# Combat units
# ---------------------------------------------------------------------------

class CombatUnit(BaseModel):
    """A card prepared for battle with runtime health tracking.

    The resolver only ever works on copies -- the caller's units are
    never mutated.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    # Identity
    name: str = "Unknown"
    card_id: str | None = Field(
        default=None, validation_alias=AliasChoices("card_id", "cardId", "id", "tokenId")
    )
    image: str | None = None

    # Stats (frozen at battle start)
    attack: int = Field(default_factory=lambda: config.default_attack, ge=0)
    max_health: int = Field(
        default_factory=lambda: config.default_health,
        gt=0,
        validation_alias=AliasChoices("max_health", "maxHealth", "health"),
    )
    speed: int = Field(default_factory=lambda: config.default_speed, ge=0)

    # Runtime state
    current_health: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("current_health", "currentHealth")
    )
    team: Team | None = None

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # A null stat means "not set", so the default applies
        if isinstance(data, Mapping):
            return {k: v for k, v in data.items() if v is not None}
        return data

    @field_validator("card_id", mode="before")
    @classmethod
    def _card_id_to_str(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @model_validator(mode="after")
    def _fill_current_health(self) -> CombatUnit:
        if "current_health" not in self.model_fields_set:
            self.current_health = self.max_health
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_alive(self) -> bool:
        return self.current_health > 0

    @property
    def power(self) -> int:
        return self.attack + self.max_health + self.speed

    def take_damage(self, amount: int) -> int:
        """Apply damage, return the health actually removed. Clamps to 0."""
        actual = min(max(amount, 0), self.current_health)
        self.current_health -= actual
        return actual


class UnitRef(BaseModel):
    """Identity of a unit as shown in attack entries."""

    name: str
    card_id: str | None = None
    image: str | None = None
    team: Team

    @classmethod
    def from_unit(cls, unit: CombatUnit) -> UnitRef:
        if unit.team is None:
            raise BattleInvariantError(f"Unit {unit.name!r} has no team tag")
        return cls(name=unit.name, card_id=unit.card_id, image=unit.image, team=unit.team)


class UnitSummary(BaseModel):
    """Health snapshot of a unit at the start or end of a battle."""

    name: str
    card_id: str | None = None
    image: str | None = None
    health: int
    max_health: int
    is_alive: bool

    @classmethod
    def from_unit(cls, unit: CombatUnit) -> UnitSummary:
        return cls(
            name=unit.name,
            card_id=unit.card_id,
            image=unit.image,
            health=unit.current_health,
            max_health=unit.max_health,
            is_alive=unit.is_alive,
        )


# ---------------------------------------------------------------------------
# Log entries
# ---------------------------------------------------------------------------

class StartEntry(BaseModel):
    kind: Literal["start"] = "start"
    team_a: list[UnitSummary]
    team_b: list[UnitSummary]
    message: str = ""


class RoundStartEntry(BaseModel):
    kind: Literal["round_start"] = "round_start"
    round: int
    alive_a: int
    alive_b: int
    message: str = ""


class AttackEntry(BaseModel):
    """One unit striking one opponent."""

    kind: Literal["attack"] = "attack"
    round: int
    attacker: UnitRef
    target: UnitRef
    damage: int
    target_health: int
    died: bool = False
    message: str = ""


class EndEntry(BaseModel):
    kind: Literal["end"] = "end"
    winner: Team
    win_condition: WinCondition
    rounds_played: int
    team_a: list[UnitSummary]
    team_b: list[UnitSummary]
    message: str = ""


LogEntry = Annotated[
    Union[StartEntry, RoundStartEntry, AttackEntry, EndEntry],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Battle record
# ---------------------------------------------------------------------------

class TeamStats(BaseModel):
    """Summed base stats of a roster."""

    total_attack: int = 0
    total_health: int = 0
    total_speed: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_power(self) -> int:
        return self.total_attack + self.total_health + self.total_speed


class BattleScore(BaseModel):
    """Score awarded to the winner of a battle."""

    base: int
    power_bonus: int
    speed_bonus: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> int:
        return self.base + self.power_bonus + self.speed_bonus


class FinalUnits(BaseModel):
    team_a: list[CombatUnit] = Field(default_factory=list)
    team_b: list[CombatUnit] = Field(default_factory=list)


class TeamStatsPair(BaseModel):
    team_a: TeamStats
    team_b: TeamStats


class BattleRecord(BaseModel):
    """Everything produced by one battle. Serializable for replay."""

    log: list[LogEntry] = Field(default_factory=list)
    winner: Team
    win_condition: WinCondition
    rounds_played: int
    final_units: FinalUnits
    team_stats: TeamStatsPair
    score: BattleScore

    @property
    def loser(self) -> Team:
        return self.winner.opponent

    def attacks(self) -> list[AttackEntry]:
        """Return only the attack entries, in order."""
        return [entry for entry in self.log if isinstance(entry, AttackEntry)]


# ---------------------------------------------------------------------------
# Roster helpers
# ---------------------------------------------------------------------------

def prepare_roster(roster: Any, team: Team, cfg: Config = config) -> list[CombatUnit]:
    """Validate a roster and return fresh working copies tagged with ``team``.

    Accepts ``CombatUnit`` instances or mappings of unit fields. Stats the
    caller left unset take their defaults from ``cfg``.
    Raises InvalidRosterError for a missing, empty or malformed roster.
    """
    if roster is None:
        raise InvalidRosterError(f"Team {team.value} roster is missing")
    if isinstance(roster, (str, bytes, Mapping)) or not isinstance(roster, Sequence):
        raise InvalidRosterError(
            f"Team {team.value} roster must be a list of units, got {type(roster).__name__}"
        )
    if not roster:
        raise InvalidRosterError(f"Team {team.value} roster is empty")

    units: list[CombatUnit] = []
    for index, raw in enumerate(roster, start=1):
        try:
            unit = raw if isinstance(raw, CombatUnit) else CombatUnit.model_validate(raw)
        except ValidationError as exc:
            raise InvalidRosterError(f"Team {team.value} unit #{index} is invalid: {exc}") from exc

        update: dict[str, Any] = {
            field: default
            for field, default in (
                ("attack", cfg.default_attack),
                ("max_health", cfg.default_health),
                ("speed", cfg.default_speed),
            )
            if field not in unit.model_fields_set
        }
        update["current_health"] = update.get("max_health", unit.max_health)
        update["team"] = team
        units.append(unit.model_copy(update=update))
    return units


def calculate_team_stats(units: Sequence[CombatUnit]) -> TeamStats:
    return TeamStats(
        total_attack=sum(u.attack for u in units),
        total_health=sum(u.max_health for u in units),
        total_speed=sum(u.speed for u in units),
    )


def calculate_battle_score(
    winner_stats: TeamStats,
    loser_stats: TeamStats,
    rounds_played: int,
    cfg: Config = config,
) -> BattleScore:
    """Score a win: flat base, bonus for beating a stronger roster, bonus for speed."""
    power_difference = abs(winner_stats.total_power - loser_stats.total_power)
    speed_bonus = cfg.score_speed_bonus_max - cfg.score_speed_bonus_per_round * (rounds_played + 1)
    return BattleScore(
        base=cfg.score_base,
        power_bonus=math.floor(power_difference * cfg.score_power_bonus_rate),
        speed_bonus=max(0, speed_bonus),
    )


def _alive(units: Sequence[CombatUnit]) -> list[CombatUnit]:
    return [u for u in units if u.is_alive]


def determine_winner(
    units_a: Sequence[CombatUnit], units_b: Sequence[CombatUnit]
) -> tuple[Team, WinCondition]:
    """Pick the winner from final unit states.

    More living units wins. On equal counts the side with more total
    remaining health wins, and an exact health tie goes to side A.
    """
    alive_a = len(_alive(units_a))
    alive_b = len(_alive(units_b))
    if alive_a != alive_b:
        condition = WinCondition.ELIMINATION if min(alive_a, alive_b) == 0 else WinCondition.SURVIVORS
        return (Team.A if alive_a > alive_b else Team.B), condition

    health_a = sum(u.current_health for u in units_a)
    health_b = sum(u.current_health for u in units_b)
    return (Team.A if health_a >= health_b else Team.B), WinCondition.HEALTH


# ---------------------------------------------------------------------------
# Battle resolver
# ---------------------------------------------------------------------------

class BattleResolver:
    """Resolves whole battles.

    Holds only its random source and config; every call to ``resolve``
    works on its own cloned rosters, so one resolver can run many battles.
    """

    def __init__(self, rng: random.Random | None = None, cfg: Config = config) -> None:
        self.rng = rng if rng is not None else random.Random()
        self.config = cfg

    def roll_damage(self, attack: int) -> int:
        """Base attack scaled by a uniform variance in [0.8, 1.2)."""
        variance = self.config.damage_variance_min + self.rng.random() * self.config.damage_variance_spread
        return round_half_up(attack * variance)

    def resolve(self, roster_a: Any, roster_b: Any) -> BattleRecord:
        """Run a battle to completion and return its record."""
        units_a = prepare_roster(roster_a, Team.A, self.config)
        units_b = prepare_roster(roster_b, Team.B, self.config)
        stats_a = calculate_team_stats(units_a)
        stats_b = calculate_team_stats(units_b)

        logger.debug(
            "Battle starting: Team A ({} units, power {}) vs Team B ({} units, power {})",
            len(units_a), stats_a.total_power, len(units_b), stats_b.total_power,
        )

        log: list[LogEntry] = [StartEntry(
            team_a=[UnitSummary.from_unit(u) for u in units_a],
            team_b=[UnitSummary.from_unit(u) for u in units_b],
            message=(
                f"Battle started! Team A: {_roster_line(units_a)} "
                f"vs Team B: {_roster_line(units_b)}"
            ),
        )]

        rounds_played = 0
        for round_number in range(1, self.config.max_rounds + 1):
            if not _alive(units_a) or not _alive(units_b):
                break
            rounds_played = round_number
            alive_a = len(_alive(units_a))
            alive_b = len(_alive(units_b))
            logger.debug("Round {}: {} vs {} units standing", round_number, alive_a, alive_b)
            log.append(RoundStartEntry(
                round=round_number,
                alive_a=alive_a,
                alive_b=alive_b,
                message=f"Round {round_number}: Team A has {alive_a} standing, Team B has {alive_b}",
            ))
            log.extend(self._play_round(round_number, units_a, units_b))

        winner, condition = determine_winner(units_a, units_b)
        stats = {Team.A: stats_a, Team.B: stats_b}
        score = calculate_battle_score(stats[winner], stats[winner.opponent], rounds_played, self.config)

        log.append(EndEntry(
            winner=winner,
            win_condition=condition,
            rounds_played=rounds_played,
            team_a=[UnitSummary.from_unit(u) for u in units_a],
            team_b=[UnitSummary.from_unit(u) for u in units_b],
            message=_end_message(winner, condition),
        ))

        logger.info(
            "Battle finished: Team {} wins by {} after {} rounds (score {})",
            winner.value, condition.value, rounds_played, score.total,
        )

        return BattleRecord(
            log=log,
            winner=winner,
            win_condition=condition,
            rounds_played=rounds_played,
            final_units=FinalUnits(team_a=units_a, team_b=units_b),
            team_stats=TeamStatsPair(team_a=stats_a, team_b=stats_b),
            score=score,
        )

    def _play_round(
        self,
        round_number: int,
        units_a: list[CombatUnit],
        units_b: list[CombatUnit],
    ) -> list[AttackEntry]:
        """Let every living unit act once, fastest first.

        Stops as soon as one side is wiped out.
        """
        entries: list[AttackEntry] = []
        # Stable sort: equal speeds keep A-before-B insertion order
        turn_order = sorted(_alive(units_a) + _alive(units_b), key=lambda u: -u.speed)

        for unit in turn_order:
            if not unit.is_alive:
                continue  # Killed earlier this round

            if unit.team is Team.A:
                opponents = _alive(units_b)
            elif unit.team is Team.B:
                opponents = _alive(units_a)
            else:
                raise BattleInvariantError(f"Unit {unit.name!r} has no team tag")
            if not opponents:
                break

            target = self.rng.choice(opponents)
            damage = self.roll_damage(unit.attack)
            target.take_damage(damage)
            died = not target.is_alive

            message = f"{unit.name} hits {target.name} for {damage} damage ({target.current_health} HP left)"
            if died:
                message += f" -- {target.name} is defeated!"
            entries.append(AttackEntry(
                round=round_number,
                attacker=UnitRef.from_unit(unit),
                target=UnitRef.from_unit(target),
                damage=damage,
                target_health=target.current_health,
                died=died,
                message=message,
            ))

            if not _alive(units_a) or not _alive(units_b):
                break

        return entries


def _roster_line(units: Sequence[CombatUnit]) -> str:
    return ", ".join(f"{u.name} ({u.current_health} HP)" for u in units)


def _end_message(winner: Team, condition: WinCondition) -> str:
    if condition == WinCondition.ELIMINATION:
        return f"Team {winner.value} wins the battle!"
    if condition == WinCondition.SURVIVORS:
        return f"Team {winner.value} wins with more cards standing!"
    return f"Team {winner.value} wins on remaining health!"


def resolve_battle(
    roster_a: Any,
    roster_b: Any,
    rng: random.Random | None = None,
    cfg: Config = config,
) -> BattleRecord:
    """Simulate a battle between two rosters.

    Args:
        roster_a: Side A units (``CombatUnit`` or dicts with name/attack/health/speed).
        roster_b: Side B units.
        rng: Random source for targeting and damage variance. Pass a seeded
            ``random.Random`` for reproducible battles.

    Returns:
        The BattleRecord with log, winner and final unit states.

    Raises:
        InvalidRosterError: If either roster is missing, empty or malformed.
    """
    return BattleResolver(rng, cfg).resolve(roster_a, roster_b)
