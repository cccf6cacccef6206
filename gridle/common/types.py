from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

Tile = Tuple[int, int]


class Direction(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    LEFT = "LEFT"
    RIGHT = "RIGHT"

    @property
    def delta(self) -> Tile:
        return _DELTAS[self]

    @property
    def opposite(self) -> Direction:
        return _OPPOSITES[self]

    def turn_left(self) -> Direction:
        return _LEFT_TURNS[self]

    def turn_right(self) -> Direction:
        return _RIGHT_TURNS[self]

    def step(self, tile: Tile) -> Tile:
        dx, dy = self.delta
        return (tile[0] + dx, tile[1] + dy)


# Screen coordinates: y grows downwards.
_DELTAS = {
    Direction.UP: (0, -1),
    Direction.DOWN: (0, 1),
    Direction.LEFT: (-1, 0),
    Direction.RIGHT: (1, 0),
}
_OPPOSITES = {
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
}
_LEFT_TURNS = {
    Direction.UP: Direction.LEFT,
    Direction.LEFT: Direction.DOWN,
    Direction.DOWN: Direction.RIGHT,
    Direction.RIGHT: Direction.UP,
}
_RIGHT_TURNS = {after: before for before, after in _LEFT_TURNS.items()}


class AttemptStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    WON = "won"
    LOST = "lost"
    ABANDONED = "abandoned"

    @property
    def finished(self) -> bool:
        return self in (AttemptStatus.WON, AttemptStatus.LOST, AttemptStatus.ABANDONED)


@dataclass(frozen=True)
class WinEvent:
    attempt_id: str
    date: str
    elapsed_ms: int
    ticks: int
