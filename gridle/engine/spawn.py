from __future__ import annotations

import logging

from gridle.common.constants import (
    OPPONENT_MIN_SPACING,
    OPPONENT_PALETTE,
    OPPONENT_SPAWN_ATTEMPTS,
    OPPONENT_SPAWN_Y_FRACTION,
    PLAYER_COLOR,
    PLAYER_SPAWN_X_FRACTION,
    PLAYER_SPAWN_Y_FRACTION,
)
from gridle.common.types import Direction, Tile
from gridle.engine.challenge import ChallengeConfig
from gridle.engine.grid import GridState
from gridle.engine.rng import Mulberry32
from gridle.engine.state import Agent

logger = logging.getLogger(__name__)

PLAYER_ID = "player"


def _dist_sq(a: Tile, b: Tile) -> int:
    dx = a[0] - b[0]
    dy = a[1] - b[1]
    return dx * dx + dy * dy


def spawn_agents(config: ChallengeConfig, grid: GridState) -> tuple[Agent, list[Agent]]:
    """Place the player and the day's opponents, claiming their start cells.

    Placement uses its own generator seeded from the challenge so every
    player sees the same layout.
    """
    rng = Mulberry32(config.seed)
    cols, rows = grid.cols, grid.rows

    player_pos = (int(cols * PLAYER_SPAWN_X_FRACTION), int(rows * PLAYER_SPAWN_Y_FRACTION))
    player = Agent(
        agent_id=PLAYER_ID,
        pos=player_pos,
        heading=Direction.RIGHT,
        color=PLAYER_COLOR,
        is_controllable=True,
    )
    grid.occupy(player_pos[0], player_pos[1], player.color)

    # Compare squared distances: dist > max(cols, rows) / 3
    far_sq = max(cols, rows) ** 2
    spacing_sq = OPPONENT_MIN_SPACING**2
    y_offset = int(rows * OPPONENT_SPAWN_Y_FRACTION)
    spawns: list[Tile] = []
    for index in range(config.opponent_count):
        for _ in range(OPPONENT_SPAWN_ATTEMPTS):
            bx = rng.randbelow(cols - 4) + 2
            by = rng.randbelow(rows - 8) + y_offset
            candidate = (bx, by)
            if 9 * _dist_sq(candidate, player_pos) <= far_sq:
                continue
            if not grid.is_free(candidate):
                continue
            if any(_dist_sq(candidate, other) < spacing_sq for other in spawns):
                continue
            spawns.append(candidate)
            break
        else:
            logger.debug("No spawn cell for opponent %s on %s", index, config.date)

    opponents: list[Agent] = []
    for index, pos in enumerate(spawns):
        heading = Direction.LEFT if pos[0] * 2 > cols else Direction.UP
        color = OPPONENT_PALETTE[rng.randbelow(len(OPPONENT_PALETTE))]
        agent = Agent(agent_id=f"bot-{index}", pos=pos, heading=heading, color=color)
        grid.occupy(pos[0], pos[1], agent.color)
        opponents.append(agent)
    return player, opponents
