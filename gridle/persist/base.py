from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, List


class Persistence(ABC):
    """Abstract persistence interface for the challenge cache, streak and history."""

    @abstractmethod
    def get_cached_challenge(self, date: str) -> Dict | None:
        raise NotImplementedError

    @abstractmethod
    def cache_challenge(self, date: str, payload: Dict) -> None:
        raise NotImplementedError

    @abstractmethod
    def load_streak(self) -> Dict | None:
        raise NotImplementedError

    @abstractmethod
    def save_streak(self, streak: int, last_win_date: str, last_win_ms: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def record_attempt(self, result: Dict) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_attempts(self, limit: int = 50) -> List[Dict]:
        raise NotImplementedError
