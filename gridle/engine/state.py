from __future__ import annotations

from dataclasses import dataclass, field

from gridle.common.types import Direction, Tile


@dataclass
class Agent:
    agent_id: str
    pos: Tile
    heading: Direction
    color: str
    is_controllable: bool = False
    alive: bool = True

    def next_tile(self) -> Tile:
        return self.heading.step(self.pos)

    def request_heading(self, heading: Direction) -> bool:
        """Apply a heading change unless it would reverse the agent."""
        if not self.alive:
            return False
        if heading == self.heading.opposite:
            return False
        self.heading = heading
        return True

    def to_dict(self) -> dict:
        return {
            "id": self.agent_id,
            "pos": [self.pos[0], self.pos[1]],
            "heading": self.heading.value,
            "color": self.color,
            "alive": self.alive,
            "controllable": self.is_controllable,
        }


@dataclass
class TickEvents:
    deaths: list[str] = field(default_factory=list)
    turns: list[str] = field(default_factory=list)


@dataclass
class AttemptResult:
    attempt_id: str
    date: str
    status: str
    elapsed_ms: int
    ticks: int
    opponents_left: int
