"""Stateless HTTP API over the battle resolver and rating engine.

Nothing is persisted here: callers post rosters and rating records, and
get back the battle record and rating deltas to store however they like.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, Field, FiniteFloat

from cardarena import __version__
from cardarena.core.battle import BattleRecord, Team, resolve_battle
from cardarena.core.errors import BattleInvariantError, CardArenaError
from cardarena.core.rating import (
    EloTier,
    LeaderboardEntry,
    LeaderboardOrder,
    MatchCandidate,
    MatchResult,
    RatingRecord,
    RatingUpdate,
    TeamRecord,
    elo_tier,
    find_best_matches,
    matchmaking_range,
    rank_leaderboard,
    update_ratings,
    win_probability,
)
from cardarena.utils.config import config
from cardarena.utils.helpers import configure_logging, make_rng


@asynccontextmanager
async def app_lifespan(_: FastAPI) -> AsyncGenerator[None, FastAPI]:
    configure_logging(config.log_level)
    yield


app = FastAPI(title="CardArena Battle Engine", version=__version__, lifespan=app_lifespan)

# --- Models ---


class ErrorResponse(BaseModel):
    status: str = "error"
    message: str
    data: Any = None


class BattleRequest(BaseModel):
    # Rosters stay loosely typed so the resolver can report bad units itself
    team_a: Any = None
    team_b: Any = None
    team_a_rating: RatingRecord | None = None
    team_b_rating: RatingRecord | None = None
    seed: int | None = None


class BattleResponse(BaseModel):
    success: bool = True
    record: BattleRecord
    ratings: RatingUpdate | None = None


class RatingRequest(BaseModel):
    team_a: RatingRecord = Field(default_factory=RatingRecord)
    team_b: RatingRecord = Field(default_factory=RatingRecord)
    winner: Team


class MatchmakingRequest(BaseModel):
    rating: FiniteFloat = config.default_rating
    candidates: list[MatchCandidate] = Field(default_factory=list)
    limit: int = Field(default=config.matchmaking_limit, ge=0)


class MatchmakingResponse(BaseModel):
    range_min: float
    range_max: float
    matches: list[MatchResult]


class LeaderboardRequest(BaseModel):
    teams: list[TeamRecord] = Field(default_factory=list)
    limit: int = Field(default=config.leaderboard_limit, ge=0)
    order: LeaderboardOrder = LeaderboardOrder.RATING


class LeaderboardResponse(BaseModel):
    success: bool = True
    count: int
    teams: list[LeaderboardEntry]


class TierInfo(BaseModel):
    tier: EloTier
    color: str


class WinProbabilityResponse(BaseModel):
    probability: int
    tier_a: TierInfo
    tier_b: TierInfo


# --- Exception handlers ---


@app.exception_handler(CardArenaError)
async def cardarena_error_handler(_request: Request, exc: CardArenaError) -> JSONResponse:
    if isinstance(exc, BattleInvariantError):
        logger.error("Battle invariant violated: {}", exc)
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        code = status.HTTP_400_BAD_REQUEST
    return JSONResponse(status_code=code, content=ErrorResponse(message=str(exc)).model_dump())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            message="Validation error",
            data=[{"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]} for err in exc.errors()],
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def general_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("Unhandled error: {}", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(message=str(exc) or type(exc).__name__).model_dump(),
    )


# --- Endpoints ---


def _tier_info(rating: float) -> TierInfo:
    tier = elo_tier(rating)
    return TierInfo(tier=tier, color=tier.color)


@app.get("/health")
async def health():
    return {"status": "ok", "version": __version__}


@app.post("/battle", response_model=BattleResponse)
async def battle(request: BattleRequest):
    record = resolve_battle(request.team_a, request.team_b, rng=make_rng(request.seed))

    ratings = None
    if request.team_a_rating is not None and request.team_b_rating is not None:
        ratings = update_ratings(request.team_a_rating, request.team_b_rating, record.winner)

    return BattleResponse(record=record, ratings=ratings)


@app.post("/ratings", response_model=RatingUpdate)
async def ratings(request: RatingRequest):
    return update_ratings(request.team_a, request.team_b, request.winner)


@app.post("/matchmaking", response_model=MatchmakingResponse)
async def matchmaking(request: MatchmakingRequest):
    range_min, range_max = matchmaking_range(request.rating)
    return MatchmakingResponse(
        range_min=range_min,
        range_max=range_max,
        matches=find_best_matches(request.rating, request.candidates, request.limit),
    )


@app.get("/win-probability", response_model=WinProbabilityResponse)
async def get_win_probability(
    rating_a: FiniteFloat = Query(config.default_rating),
    rating_b: FiniteFloat = Query(config.default_rating),
):
    return WinProbabilityResponse(
        probability=win_probability(rating_a, rating_b),
        tier_a=_tier_info(rating_a),
        tier_b=_tier_info(rating_b),
    )


@app.post("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(request: LeaderboardRequest):
    entries = rank_leaderboard(request.teams, request.limit, request.order)
    return LeaderboardResponse(count=len(entries), teams=entries)
