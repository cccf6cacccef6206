from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Protocol

from gridle.common.constants import (
    CELLS_PER_EXTRA_OPPONENT,
    MAX_COLS,
    MAX_OPPONENTS,
    MAX_ROWS,
    MAX_TICKS_PER_SECOND,
    MIN_COLS,
    MIN_OPPONENTS,
    MIN_ROWS,
    MIN_TICKS_PER_SECOND,
)
from gridle.engine.rng import Mulberry32
from gridle.engine.seed import derive_seed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChallengeConfig:
    date: str
    seed: int
    cols: int
    rows: int
    opponent_count: int
    ticks_per_second: int

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> ChallengeConfig:
        """Build a config from cached data, rejecting anything malformed."""
        if not isinstance(data, dict):
            raise ValueError("Challenge payload must be a mapping")
        date = data["date"]
        if not isinstance(date, str):
            raise ValueError("Challenge date must be a string")
        values = {}
        for key in ("seed", "cols", "rows", "opponent_count", "ticks_per_second"):
            value = data[key]
            # bool is an int subclass; a cached True is still corrupt
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"Challenge field {key} must be an integer")
            values[key] = value
        config = cls(date=date, **values)
        if not config.within_limits():
            raise ValueError("Challenge fields out of range")
        return config

    def within_limits(self) -> bool:
        return (
            MIN_COLS <= self.cols <= MAX_COLS
            and MIN_ROWS <= self.rows <= MAX_ROWS
            and MIN_OPPONENTS <= self.opponent_count <= MAX_OPPONENTS
            and MIN_TICKS_PER_SECOND <= self.ticks_per_second <= MAX_TICKS_PER_SECOND
        )


def generate_challenge(date_str: str) -> ChallengeConfig:
    """Generate the puzzle parameters for one UTC day.

    Draw order is part of the contract: columns, rows, opponents, then tick
    rate, one draw each from a throwaway generator seeded from the date.
    """
    seed = derive_seed(date_str)
    rng = Mulberry32(seed)
    cols = MIN_COLS + rng.randbelow(MAX_COLS - MIN_COLS + 1)
    rows = MIN_ROWS + rng.randbelow(MAX_ROWS - MIN_ROWS + 1)
    opponents = rng.randbelow(6) + (cols * rows) // CELLS_PER_EXTRA_OPPONENT
    opponents = max(MIN_OPPONENTS, min(MAX_OPPONENTS, opponents))
    ticks_per_second = MIN_TICKS_PER_SECOND + rng.randbelow(
        MAX_TICKS_PER_SECOND - MIN_TICKS_PER_SECOND + 1
    )
    return ChallengeConfig(
        date=date_str,
        seed=seed,
        cols=cols,
        rows=rows,
        opponent_count=opponents,
        ticks_per_second=ticks_per_second,
    )


class ChallengeCache(Protocol):
    def get_cached_challenge(self, date: str) -> dict | None: ...

    def cache_challenge(self, date: str, payload: dict) -> None: ...


class ChallengeProvider:
    """Serve daily challenges, preferring a valid cached copy."""

    def __init__(self, cache: ChallengeCache | None = None) -> None:
        self.cache = cache

    def load(self, date_str: str) -> ChallengeConfig:
        expected = generate_challenge(date_str)
        if self.cache is None:
            return expected
        cached = self._read_cached(date_str, expected)
        if cached is not None:
            return cached
        self.cache.cache_challenge(date_str, expected.to_dict())
        return expected

    def _read_cached(self, date_str: str, expected: ChallengeConfig) -> ChallengeConfig | None:
        payload = self.cache.get_cached_challenge(date_str)
        if payload is None:
            return None
        try:
            config = ChallengeConfig.from_dict(payload)
        except (KeyError, TypeError, ValueError):
            logger.debug("Ignoring malformed cached challenge for %s", date_str)
            return None
        # Generation is pure, so any difference means the entry was altered.
        if config != expected:
            logger.debug("Ignoring cached challenge for %s that differs from generation", date_str)
            return None
        return config
