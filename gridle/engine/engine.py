from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable

from gridle.common.types import AttemptStatus, Direction, WinEvent
from gridle.engine.challenge import ChallengeConfig
from gridle.engine.grid import GridState
from gridle.engine.policy import decide
from gridle.engine.rng import Mulberry32
from gridle.engine.spawn import spawn_agents
from gridle.engine.state import Agent, TickEvents

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
WinListener = Callable[[WinEvent], None]


class SimulationEngine:
    """One attempt at a daily challenge.

    The engine owns the grid, the agents and the opponents' random stream.
    It is cadence-agnostic: callers invoke :meth:`tick` at the challenge's
    ``ticks_per_second``.
    """

    def __init__(
        self,
        config: ChallengeConfig,
        player: Agent,
        opponents: list[Agent],
        grid: GridState,
        rng: Mulberry32 | None = None,
        clock: Clock = time.monotonic,
        on_win: WinListener | None = None,
        attempt_id: str | None = None,
    ) -> None:
        self.attempt_id = attempt_id or str(uuid.uuid4())
        self.config = config
        self.grid = grid
        self.player = player
        self.opponents = opponents
        self.rng = rng if rng is not None else Mulberry32(config.seed)
        self.clock = clock
        self.on_win = on_win
        self.status = AttemptStatus.IDLE
        self.tick_count = 0
        self.last_events = TickEvents()
        self._elapsed = 0.0
        self._resumed_at: float | None = None

    @classmethod
    def for_challenge(
        cls,
        config: ChallengeConfig,
        clock: Clock = time.monotonic,
        on_win: WinListener | None = None,
        attempt_id: str | None = None,
    ) -> SimulationEngine:
        """Build a fresh attempt with the day's deterministic spawn layout."""
        grid = GridState(config.cols, config.rows)
        player, opponents = spawn_agents(config, grid)
        return cls(
            config,
            player,
            opponents,
            grid,
            clock=clock,
            on_win=on_win,
            attempt_id=attempt_id,
        )

    @property
    def elapsed_ms(self) -> int:
        elapsed = self._elapsed
        if self._resumed_at is not None:
            elapsed += self.clock() - self._resumed_at
        return int(elapsed * 1000)

    def opponents_alive(self) -> int:
        return sum(1 for agent in self.opponents if agent.alive)

    # Lifecycle

    def start(self) -> None:
        if self.status != AttemptStatus.IDLE:
            return
        self.status = AttemptStatus.RUNNING
        self._resumed_at = self.clock()
        logger.debug("Attempt %s started for %s", self.attempt_id, self.config.date)

    def pause(self) -> bool:
        if self.status != AttemptStatus.RUNNING:
            return False
        self._freeze_clock()
        self.status = AttemptStatus.PAUSED
        return True

    def resume(self) -> bool:
        if self.status != AttemptStatus.PAUSED:
            return False
        self.status = AttemptStatus.RUNNING
        self._resumed_at = self.clock()
        return True

    def abandon(self) -> bool:
        if self.status.finished:
            return False
        self._freeze_clock()
        self.status = AttemptStatus.ABANDONED
        return True

    def set_heading(self, heading: Direction) -> bool:
        """Request a new player heading; reversals are ignored.

        The heading is read at the start of the next tick.
        """
        if self.status.finished:
            return False
        return self.player.request_heading(heading)

    # Tick

    def tick(self) -> AttemptStatus:
        if self.status != AttemptStatus.RUNNING:
            return self.status
        self.tick_count += 1
        events = TickEvents()
        self.last_events = events

        if self.player.alive and self._advance(self.player):
            alive_opponents = [agent for agent in self.opponents if agent.alive]
            # Decide against the grid as it stands after the player's step.
            for agent in alive_opponents:
                heading = decide(agent, self.grid, self.rng)
                if heading != agent.heading:
                    agent.heading = heading
                    events.turns.append(agent.agent_id)
            for agent in alive_opponents:
                self._advance(agent)

        self._check_terminal()
        return self.status

    def _advance(self, agent: Agent) -> bool:
        """Move ``agent`` one cell; return whether it survived."""
        target = agent.next_tile()
        if not self.grid.is_free(target):
            agent.alive = False
            self.last_events.deaths.append(agent.agent_id)
            return False
        agent.pos = target
        self.grid.occupy(target[0], target[1], agent.color)
        return True

    def _check_terminal(self) -> None:
        if not self.player.alive:
            self._finish(AttemptStatus.LOST)
        elif self.opponents and self.opponents_alive() == 0:
            self._finish(AttemptStatus.WON)

    def _finish(self, status: AttemptStatus) -> None:
        self._freeze_clock()
        self.status = status
        logger.info(
            "Attempt %s %s after %s ticks (%s ms)",
            self.attempt_id,
            status.value,
            self.tick_count,
            self.elapsed_ms,
        )
        if status == AttemptStatus.WON and self.on_win is not None:
            self.on_win(
                WinEvent(
                    attempt_id=self.attempt_id,
                    date=self.config.date,
                    elapsed_ms=self.elapsed_ms,
                    ticks=self.tick_count,
                )
            )

    def _freeze_clock(self) -> None:
        if self._resumed_at is not None:
            self._elapsed += self.clock() - self._resumed_at
            self._resumed_at = None

    # Views

    def snapshot(self) -> dict:
        """Read-only view of the attempt for renderers."""
        return {
            "attempt_id": self.attempt_id,
            "date": self.config.date,
            "tick": self.tick_count,
            "status": self.status.value,
            "elapsed_ms": self.elapsed_ms,
            "cols": self.grid.cols,
            "rows": self.grid.rows,
            "player": self.player.to_dict(),
            "opponents": [agent.to_dict() for agent in self.opponents],
            "trails": self.grid.rows_view(),
            "events": {
                "deaths": list(self.last_events.deaths),
                "turns": list(self.last_events.turns),
            },
        }
