from __future__ import annotations

from gridle.common.constants import RANDOM_TURN_PROB
from gridle.common.types import Direction
from gridle.engine.grid import GridState
from gridle.engine.rng import Mulberry32
from gridle.engine.state import Agent


def decide(agent: Agent, grid: GridState, rng: Mulberry32) -> Direction:
    """Choose the next heading for an autonomous agent.

    Blocked ahead: take the first clear of left turn, right turn, or keep
    the heading and crash. Clear ahead: one draw decides a rare random
    swerve, the low half of the swerve band turning left.
    """
    heading = agent.heading
    if not grid.is_free(heading.step(agent.pos)):
        for candidate in (heading.turn_left(), heading.turn_right()):
            if grid.is_free(candidate.step(agent.pos)):
                return candidate
        return heading
    roll = rng.next()
    if roll < RANDOM_TURN_PROB:
        if roll < RANDOM_TURN_PROB / 2:
            return heading.turn_left()
        return heading.turn_right()
    return heading
