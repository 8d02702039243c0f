"""ELO-style ratings and matchmaking for battle teams.

Everything here is a pure computation. Persisting the new ratings is the
caller's job.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

from loguru import logger
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    FiniteFloat,
    ValidationError,
    model_validator,
)

from cardarena.core.battle import Team
from cardarena.core.errors import InvalidRatingInputError
from cardarena.utils.config import Config, config
from cardarena.utils.helpers import round_half_up


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class RatingRecord(BaseModel):
    """A team's persisted rating state. Missing values fall back to defaults."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    # NaN and infinity are rejected: they poison every later update
    rating: FiniteFloat | None = Field(default=None, validation_alias=AliasChoices("rating", "eloRating"))
    wins: int = Field(default=0, ge=0, validation_alias=AliasChoices("wins", "battlesWon"))
    losses: int = Field(default=0, ge=0, validation_alias=AliasChoices("losses", "battlesLost"))

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            return {k: v for k, v in data.items() if v is not None}
        return data

    def rating_or_default(self, cfg: Config = config) -> float:
        return cfg.default_rating if self.rating is None else self.rating

    @property
    def effective_rating(self) -> float:
        return self.rating_or_default()

    @property
    def games_played(self) -> int:
        return self.wins + self.losses


class RatingDelta(BaseModel):
    """Rating change for one side of a battle."""

    old_rating: float
    new_rating: float
    change: int
    expected_score: float


class RatingUpdate(BaseModel):
    team_a: RatingDelta
    team_b: RatingDelta

    def for_team(self, team: Team) -> RatingDelta:
        return self.team_a if team is Team.A else self.team_b


class TeamRecord(RatingRecord):
    """Rating state of a named team."""

    team_id: str | int | None = Field(default=None, validation_alias=AliasChoices("team_id", "teamId", "id"))
    name: str = ""


class MatchCandidate(TeamRecord):
    """A potential opponent in the matchmaking pool."""


class MatchResult(BaseModel):
    candidate: MatchCandidate
    matchmaking_score: float


class LeaderboardOrder(str, Enum):
    RATING = "rating"  # Highest rating first, then most wins
    WIN_RATE = "win_rate"  # Best win rate first, then most wins


class LeaderboardEntry(BaseModel):
    rank: int
    team: TeamRecord
    rating: float
    total_battles: int
    win_rate: float


class EloTier(str, Enum):
    """Display tier derived from a rating."""

    GRANDMASTER = "Grandmaster"
    MASTER = "Master"
    EXPERT = "Expert"
    ADVANCED = "Advanced"
    INTERMEDIATE = "Intermediate"
    NOVICE = "Novice"
    BEGINNER = "Beginner"

    @property
    def color(self) -> str:
        return _TIER_COLORS[self]


_TIER_COLORS = {
    EloTier.GRANDMASTER: "#fbbf24",  # Gold
    EloTier.MASTER: "#a78bfa",  # Purple
    EloTier.EXPERT: "#3b82f6",  # Blue
    EloTier.ADVANCED: "#22c55e",  # Green
    EloTier.INTERMEDIATE: "#84cc16",  # Light green
    EloTier.NOVICE: "#94a3b8",  # Gray
    EloTier.BEGINNER: "#6b7280",  # Dark gray
}

_TIER_THRESHOLDS = [
    (2000, EloTier.GRANDMASTER),
    (1800, EloTier.MASTER),
    (1600, EloTier.EXPERT),
    (1400, EloTier.ADVANCED),
    (1200, EloTier.INTERMEDIATE),
    (1000, EloTier.NOVICE),
]


# ---------------------------------------------------------------------------
# Rating math
# ---------------------------------------------------------------------------

def expected_score(rating_self: float, rating_opponent: float) -> float:
    """Probability-like expected score of ``rating_self`` against ``rating_opponent``."""
    try:
        return 1.0 / (1.0 + 10 ** ((rating_opponent - rating_self) / 400))
    except OverflowError:
        # Opponent is so far ahead that 10**x leaves float range
        return 0.0


def k_factor(games_played: int, cfg: Config = config) -> int:
    """Maximum rating change per game.

    New teams (< 10 games) move fast, established teams (> 50 games) slowly.
    """
    if games_played < cfg.new_player_games:
        return cfg.k_factor_new_player
    if games_played > cfg.master_games:
        return cfg.k_factor_master
    return cfg.k_factor_base


def _require_finite(value: float, label: str) -> float:
    if not math.isfinite(value):
        raise InvalidRatingInputError(f"{label} must be a finite number, got {value!r}")
    return value


def _coerce_record(record: Any, label: str) -> RatingRecord:
    if isinstance(record, RatingRecord):
        return record
    if record is None:
        return RatingRecord()
    try:
        return RatingRecord.model_validate(record)
    except ValidationError as exc:
        raise InvalidRatingInputError(f"Invalid rating record for {label}: {exc}") from exc


def _coerce_team(winner: Any) -> Team:
    try:
        return Team(winner)
    except ValueError:
        raise InvalidRatingInputError(f"Winner must be 'A' or 'B', got {winner!r}") from None


def update_ratings(team_a: Any, team_b: Any, winner: Team | str, cfg: Config = config) -> RatingUpdate:
    """Calculate both teams' new ratings after a battle.

    Each side uses its own K-factor. New ratings never drop below the
    rating floor (100).

    Args:
        team_a: RatingRecord (or dict with rating/wins/losses) for side A.
        team_b: Same for side B.
        winner: ``Team.A`` / ``Team.B`` or ``"A"`` / ``"B"``.
    """
    record_a = _coerce_record(team_a, "team A")
    record_b = _coerce_record(team_b, "team B")
    winning_team = _coerce_team(winner)

    rating_a = record_a.rating_or_default(cfg)
    rating_b = record_b.rating_or_default(cfg)
    expected_a = expected_score(rating_a, rating_b)
    expected_b = expected_score(rating_b, rating_a)

    actual_a = 1 if winning_team is Team.A else 0
    actual_b = 1 - actual_a

    change_a = round_half_up(k_factor(record_a.games_played, cfg) * (actual_a - expected_a))
    change_b = round_half_up(k_factor(record_b.games_played, cfg) * (actual_b - expected_b))

    update = RatingUpdate(
        team_a=RatingDelta(
            old_rating=rating_a,
            new_rating=max(cfg.rating_floor, rating_a + change_a),
            change=change_a,
            expected_score=expected_a,
        ),
        team_b=RatingDelta(
            old_rating=rating_b,
            new_rating=max(cfg.rating_floor, rating_b + change_b),
            change=change_b,
            expected_score=expected_b,
        ),
    )
    logger.info(
        "Ratings updated: A {} -> {} ({:+d}), B {} -> {} ({:+d})",
        rating_a, update.team_a.new_rating, change_a,
        rating_b, update.team_b.new_rating, change_b,
    )
    return update


def win_probability(rating_a: float, rating_b: float) -> int:
    """Chance (0-100) that ``rating_a`` beats ``rating_b``, for display."""
    _require_finite(rating_a, "Rating A")
    _require_finite(rating_b, "Rating B")
    return round_half_up(expected_score(rating_a, rating_b) * 100)


def elo_tier(rating: float) -> EloTier:
    for threshold, tier in _TIER_THRESHOLDS:
        if rating >= threshold:
            return tier
    return EloTier.BEGINNER


# ---------------------------------------------------------------------------
# Matchmaking
# ---------------------------------------------------------------------------

def matchmaking_score(rating_a: float, rating_b: float) -> float:
    """Lower is a better match."""
    return abs(rating_a - rating_b)


def matchmaking_range(rating: float, spread: int | None = None, cfg: Config = config) -> tuple[float, float]:
    """Return (min, max) opponent ratings considered a fair game."""
    _require_finite(rating, "Rating")
    if spread is None:
        spread = cfg.matchmaking_spread
    return max(cfg.rating_floor, rating - spread), rating + spread


def _coerce_team_records(records: Iterable[Any], model: type[TeamRecord], label: str) -> list[Any]:
    teams = []
    for index, raw in enumerate(records, start=1):
        if isinstance(raw, model):
            teams.append(raw)
            continue
        try:
            teams.append(model.model_validate(raw))
        except ValidationError as exc:
            raise InvalidRatingInputError(f"Invalid {label} #{index}: {exc}") from exc
    return teams


def find_best_matches(
    team_rating: float,
    candidates: Iterable[Any],
    limit: int | None = None,
    cfg: Config = config,
) -> list[MatchResult]:
    """Rank candidates by closeness of rating, closest first.

    Candidates without a rating count as 1000. Exact ties keep pool order.
    Returns at most ``limit`` results (default 10).
    """
    _require_finite(team_rating, "Team rating")
    if limit is None:
        limit = cfg.matchmaking_limit

    results = [
        MatchResult(
            candidate=candidate,
            matchmaking_score=matchmaking_score(team_rating, candidate.rating_or_default(cfg)),
        )
        for candidate in _coerce_team_records(candidates, MatchCandidate, "matchmaking candidate")
    ]

    results.sort(key=lambda r: r.matchmaking_score)
    return results[:max(limit, 0)]


# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------

def win_rate(record: RatingRecord) -> float:
    """Percentage of games won, to two decimals. 0 for a team with no games."""
    if record.games_played == 0:
        return 0.0
    return round(record.wins / record.games_played * 100, 2)


def rank_leaderboard(
    records: Iterable[Any],
    limit: int | None = None,
    order: LeaderboardOrder | str = LeaderboardOrder.RATING,
    cfg: Config = config,
) -> list[LeaderboardEntry]:
    """Rank teams that have played at least one battle.

    ``RATING`` sorts by rating, ``WIN_RATE`` by win rate. Either way more
    wins breaks a tie, and teams still tied keep their input order.
    """
    try:
        order = LeaderboardOrder(order)
    except ValueError:
        raise InvalidRatingInputError(f"Unknown leaderboard order {order!r}") from None
    if limit is None:
        limit = cfg.leaderboard_limit

    teams = [t for t in _coerce_team_records(records, TeamRecord, "team record") if t.games_played > 0]
    if order is LeaderboardOrder.RATING:
        teams.sort(key=lambda t: (-t.rating_or_default(cfg), -t.wins))
    else:
        teams.sort(key=lambda t: (-win_rate(t), -t.wins))

    return [
        LeaderboardEntry(
            rank=rank,
            team=team,
            rating=team.rating_or_default(cfg),
            total_battles=team.games_played,
            win_rate=win_rate(team),
        )
        for rank, team in enumerate(teams[:max(limit, 0)], start=1)
    ]
