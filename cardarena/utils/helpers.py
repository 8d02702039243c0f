"""Helper utilities for CardArena."""

import json
import math
import random
import sys
from pathlib import Path
from typing import Any

from loguru import logger


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with halves going towards +infinity.

    Python's ``round`` uses banker's rounding (``round(2.5) == 2``); damage
    and rating deltas are rounded the conventional way instead, so
    ``round_half_up(2.5) == 3`` and ``round_half_up(-2.5) == -2``.
    """
    return math.floor(value + 0.5)


def make_rng(seed: int | None = None) -> random.Random:
    """Create an independent random source, seeded when ``seed`` is given."""
    return random.Random(seed)


def load_json(path: Path) -> Any:
    """Read a JSON document from ``path``.

    Raises:
        OSError: If the file cannot be read.
        json.JSONDecodeError: If the contents are not valid JSON.
    """
    with path.open(encoding="utf-8") as f:
        return json.load(f)


def configure_logging(level: str) -> None:
    """Replace loguru's default sink with a single stderr sink at ``level``."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
