from __future__ import annotations


class GridleError(Exception):
    """Base class for errors raised by the game core."""


class InvalidDateFormat(GridleError, ValueError):
    """A challenge date was not a valid ``YYYY-MM-DD`` calendar date."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Invalid challenge date: {value!r} (expected YYYY-MM-DD)")
        self.value = value


class OutOfBounds(GridleError):
    pass


class CellOccupied(GridleError):
    pass
