from __future__ import annotations

from gridle.common.errors import CellOccupied, OutOfBounds
from gridle.common.types import Tile


class GridState:
    """Trail occupancy for one attempt.

    Cells hold the colour of the trail that claimed them, or ``None``. A
    claimed cell is never released.
    """

    def __init__(self, cols: int, rows: int) -> None:
        if cols <= 0 or rows <= 0:
            raise ValueError("Grid dimensions must be positive")
        self.cols = cols
        self.rows = rows
        self._cells: list[list[str | None]] = [[None] * cols for _ in range(rows)]
        self._occupied = 0

    def is_in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.cols and 0 <= y < self.rows

    def is_occupied(self, x: int, y: int) -> bool:
        if not self.is_in_bounds(x, y):
            return False
        return self._cells[y][x] is not None

    def is_free(self, tile: Tile) -> bool:
        x, y = tile
        return self.is_in_bounds(x, y) and self._cells[y][x] is None

    def owner_at(self, x: int, y: int) -> str | None:
        if not self.is_in_bounds(x, y):
            return None
        return self._cells[y][x]

    def occupy(self, x: int, y: int, owner: str) -> None:
        # Callers check first; reaching either branch is a bug.
        if not self.is_in_bounds(x, y):
            raise OutOfBounds(f"Cell {(x, y)} outside {self.cols}x{self.rows} grid")
        if self._cells[y][x] is not None:
            raise CellOccupied(f"Cell {(x, y)} already owned by {self._cells[y][x]}")
        self._cells[y][x] = owner
        self._occupied += 1

    def occupied_count(self) -> int:
        return self._occupied

    def occupied_cells(self) -> set[Tile]:
        return {
            (x, y)
            for y, row in enumerate(self._cells)
            for x, owner in enumerate(row)
            if owner is not None
        }

    def rows_view(self) -> list[list[str | None]]:
        """Copy of the cell owners, row-major, for renderers."""
        return [list(row) for row in self._cells]
