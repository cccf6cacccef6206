from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from datetime import datetime

from gridle.common.dates import utc_date_string, utc_now
from gridle.common.types import AttemptStatus, Direction, WinEvent
from gridle.engine.challenge import ChallengeConfig, ChallengeProvider
from gridle.engine.engine import Clock, SimulationEngine
from gridle.engine.share import share_text
from gridle.engine.state import AttemptResult
from gridle.engine.streak import StreakTracker, StreakUpdate
from gridle.persist.base import Persistence

logger = logging.getLogger(__name__)


class AttemptManager:
    """Registry of live attempts backed by one persistence collaborator."""

    def __init__(
        self,
        persistence: Persistence,
        max_attempts: int | None = None,
        clock: Clock = time.monotonic,
        now: Callable[[], datetime] = utc_now,
        retain_finished: int = 100,
    ) -> None:
        self.persistence = persistence
        self.provider = ChallengeProvider(persistence)
        self.streaks = StreakTracker(persistence, now=now)
        self.max_attempts = max_attempts
        self.retain_finished = retain_finished
        self.clock = clock
        self.now = now
        self.attempts: dict[str, SimulationEngine] = {}
        self.last_streak_update: dict[str, StreakUpdate] = {}
        # Finished attempt ids, oldest first.
        self._finished: dict[str, None] = {}

    def today(self) -> str:
        return utc_date_string(self.now())

    def challenge(self, date: str | None = None) -> ChallengeConfig:
        return self.provider.load(date or self.today())

    def start_attempt(self, date: str | None = None) -> SimulationEngine | None:
        """Create and start an attempt for ``date`` (today by default)."""
        return self.launch(self.challenge(date))

    def launch(self, config: ChallengeConfig) -> SimulationEngine | None:
        """Start an attempt on an already loaded challenge.

        Returns ``None`` when the registry is full of unfinished attempts.
        """
        if self.max_attempts is not None and len(self.attempts) >= self.max_attempts:
            # Finished attempts stay readable until room is needed.
            self.prune()
            if len(self.attempts) >= self.max_attempts:
                return None
        attempt = SimulationEngine.for_challenge(
            config,
            clock=self.clock,
            on_win=self._handle_win,
            attempt_id=str(uuid.uuid4()),
        )
        self.attempts[attempt.attempt_id] = attempt
        attempt.start()
        logger.info(
            "Attempt %s started on %s (%sx%s, %s opponents placed)",
            attempt.attempt_id,
            config.date,
            config.cols,
            config.rows,
            len(attempt.opponents),
        )
        return attempt

    def get(self, attempt_id: str) -> SimulationEngine | None:
        return self.attempts.get(attempt_id)

    def set_heading(self, attempt_id: str, heading: Direction) -> bool:
        attempt = self.attempts.get(attempt_id)
        if not attempt:
            return False
        return attempt.set_heading(heading)

    def tick(self, attempt_id: str) -> AttemptStatus | None:
        attempt = self.attempts.get(attempt_id)
        if not attempt:
            return None
        status = attempt.tick()
        self._record_if_finished(attempt)
        return status

    def tick_once(self) -> None:
        """Advance every running attempt by a single tick."""
        for attempt in list(self.attempts.values()):
            if attempt.status == AttemptStatus.RUNNING:
                attempt.tick()
                self._record_if_finished(attempt)

    def pause(self, attempt_id: str) -> bool:
        attempt = self.attempts.get(attempt_id)
        return attempt.pause() if attempt else False

    def resume(self, attempt_id: str) -> bool:
        attempt = self.attempts.get(attempt_id)
        return attempt.resume() if attempt else False

    def abandon(self, attempt_id: str) -> bool:
        attempt = self.attempts.get(attempt_id)
        if not attempt or not attempt.abandon():
            return False
        self._record_if_finished(attempt)
        return True

    def prune(self) -> int:
        """Drop finished attempts; return how many were removed."""
        finished = [aid for aid, a in self.attempts.items() if a.status.finished]
        for attempt_id in finished:
            self._forget(attempt_id)
        return len(finished)

    def _forget(self, attempt_id: str) -> None:
        self.attempts.pop(attempt_id, None)
        self.last_streak_update.pop(attempt_id, None)
        self._finished.pop(attempt_id, None)

    def share(self, attempt_id: str) -> str | None:
        attempt = self.attempts.get(attempt_id)
        if not attempt:
            return None
        return share_text(
            attempt.config,
            won=attempt.status == AttemptStatus.WON,
            elapsed_ms=attempt.elapsed_ms,
            streak=self.streaks.current().streak,
            grid=attempt.grid,
            player=attempt.player,
        )

    def _handle_win(self, event: WinEvent) -> None:
        self.last_streak_update[event.attempt_id] = self.streaks.record_win(event)

    def _record_if_finished(self, attempt: SimulationEngine) -> None:
        if not attempt.status.finished or attempt.attempt_id in self._finished:
            return
        self._finished[attempt.attempt_id] = None
        result = AttemptResult(
            attempt_id=attempt.attempt_id,
            date=attempt.config.date,
            status=attempt.status.value,
            elapsed_ms=attempt.elapsed_ms,
            ticks=attempt.tick_count,
            opponents_left=attempt.opponents_alive(),
        )
        self.persistence.record_attempt(result.__dict__)
        while len(self._finished) > self.retain_finished:
            self._forget(next(iter(self._finished)))
