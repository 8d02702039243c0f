"""Configuration management for CardArena."""

import os

from pydantic import BaseModel


class Config(BaseModel):
    """Application configuration."""

    # Battle settings
    max_rounds: int = 50  # Hard cap against zero-attack stalemates
    damage_variance_min: float = 0.8
    damage_variance_spread: float = 0.4  # Variance drawn from [0.8, 1.2)

    # Unit defaults for cards missing a stat
    default_attack: int = 1
    default_health: int = 10
    default_speed: int = 1

    # Battle score
    score_base: int = 100
    score_power_bonus_rate: float = 0.1
    score_speed_bonus_max: int = 50
    score_speed_bonus_per_round: int = 2

    # Rating settings
    default_rating: float = 1000
    rating_floor: float = 100
    k_factor_new_player: int = 40  # < new_player_games
    k_factor_base: int = 32
    k_factor_master: int = 16  # > master_games
    new_player_games: int = 10
    master_games: int = 50

    # Matchmaking
    matchmaking_limit: int = 10
    matchmaking_spread: int = 200

    # Leaderboard
    leaderboard_limit: int = 50

    # Logging
    log_level: str = os.getenv("CARDARENA_LOG_LEVEL", "WARNING")


# Global config instance
config = Config()
