from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from gridle.common.dates import previous_date_string, utc_date_string, utc_now
from gridle.common.types import WinEvent
from gridle.persist.base import Persistence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreakRecord:
    streak: int = 0
    last_win_date: str | None = None
    last_win_ms: int | None = None


@dataclass(frozen=True)
class StreakUpdate:
    record: StreakRecord
    credited: bool


class StreakTracker:
    """Credit at most one win per UTC day toward a consecutive-day streak.

    Only wins on the current day's challenge count. The record is loaded
    once and kept in memory; saves are handed to persistence without
    waiting on the write.
    """

    def __init__(
        self, persistence: Persistence, now: Callable[[], datetime] = utc_now
    ) -> None:
        self.persistence = persistence
        self.now = now
        self._record: StreakRecord | None = None

    def current(self) -> StreakRecord:
        if self._record is None:
            self._record = self._load()
        return self._record

    def _load(self) -> StreakRecord:
        stored = self.persistence.load_streak()
        if not stored:
            return StreakRecord()
        return StreakRecord(
            streak=int(stored.get("streak") or 0),
            last_win_date=stored.get("last_win_date"),
            last_win_ms=stored.get("last_win_ms"),
        )

    def record_win(self, event: WinEvent) -> StreakUpdate:
        today = utc_date_string(self.now())
        record = self.current()
        if event.date != today:
            logger.info("Win on archived challenge %s not credited", event.date)
            return StreakUpdate(record=record, credited=False)
        if record.last_win_date == today:
            return StreakUpdate(record=record, credited=False)
        if record.last_win_date == previous_date_string(today):
            streak = record.streak + 1
        else:
            streak = 1
        self._record = StreakRecord(streak=streak, last_win_date=today, last_win_ms=event.elapsed_ms)
        self.persistence.save_streak(streak, today, event.elapsed_ms)
        logger.info("Win credited for %s; streak now %s", today, streak)
        return StreakUpdate(record=self._record, credited=True)
