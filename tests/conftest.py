"""Shared fixtures for CardArena tests."""

import json
import random
from pathlib import Path

import pytest
from loguru import logger
from typer.testing import CliRunner

from cardarena.core.battle import CombatUnit
from cardarena.core.rating import MatchCandidate, RatingRecord


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop any loguru sinks a test (or the CLI) installed."""
    yield
    logger.remove()


# Random source fixtures
@pytest.fixture
def rng() -> random.Random:
    """A seeded random source for reproducible battles."""
    return random.Random(42)


# Unit fixtures
@pytest.fixture
def frog_knight() -> CombatUnit:
    """A strong, fast unit."""
    return CombatUnit(name="Frog Knight", card_id="frog-1", image="ipfs://frog1", attack=8, health=30, speed=7)


@pytest.fixture
def pond_mage() -> CombatUnit:
    """A fragile glass cannon."""
    return CombatUnit(name="Pond Mage", card_id="frog-2", attack=12, health=12, speed=9)


@pytest.fixture
def lily_guard() -> CombatUnit:
    """A slow tank."""
    return CombatUnit(name="Lily Guard", card_id="frog-3", attack=3, health=45, speed=2)


@pytest.fixture
def titan_brute() -> CombatUnit:
    """A heavy hitter from the other collection."""
    return CombatUnit(name="Titan Brute", card_id="titan-1", attack=10, health=35, speed=4)


@pytest.fixture
def titan_scout() -> CombatUnit:
    """A quick, light unit."""
    return CombatUnit(name="Titan Scout", card_id="titan-2", attack=5, health=18, speed=10)


@pytest.fixture
def roster_a(frog_knight, pond_mage, lily_guard) -> list[CombatUnit]:
    return [frog_knight, pond_mage, lily_guard]


@pytest.fixture
def roster_b(titan_brute, titan_scout) -> list[CombatUnit]:
    return [titan_brute, titan_scout]


# Rating fixtures
@pytest.fixture
def new_team() -> RatingRecord:
    """A team with no games played."""
    return RatingRecord()


@pytest.fixture
def veteran_team() -> RatingRecord:
    """A team past the established-player threshold."""
    return RatingRecord(rating=1650, wins=40, losses=20)


@pytest.fixture
def candidate_pool() -> list[MatchCandidate]:
    return [
        MatchCandidate(team_id="t1", name="Bog Lords", rating=1350, wins=12, losses=4),
        MatchCandidate(team_id="t2", name="Marsh Kings", rating=980, wins=3, losses=5),
        MatchCandidate(team_id="t3", name="Fresh Spawn"),
        MatchCandidate(team_id="t4", name="Reed Runners", rating=1210, wins=9, losses=9),
        MatchCandidate(team_id="t5", name="Old Toads", rating=640, wins=2, losses=30),
    ]


# Utility fixtures
@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Typer CLI runner for command tests."""
    return CliRunner()


@pytest.fixture
def write_json(tmp_path):
    """Write a JSON document to a temp file and return its path."""

    def _write(name: str, data) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write
