import pytest

from gridle.common.errors import CellOccupied, OutOfBounds
from gridle.engine.grid import GridState


def test_bounds():
    grid = GridState(20, 36)
    assert grid.is_in_bounds(0, 0)
    assert grid.is_in_bounds(19, 35)
    assert not grid.is_in_bounds(20, 0)
    assert not grid.is_in_bounds(0, 36)
    assert not grid.is_in_bounds(-1, 5)


def test_occupy_marks_owner():
    grid = GridState(12, 24)
    grid.occupy(3, 4, "#00f3ff")
    assert grid.is_occupied(3, 4)
    assert grid.owner_at(3, 4) == "#00f3ff"
    assert grid.occupied_count() == 1
    assert grid.occupied_cells() == {(3, 4)}
    assert not grid.is_free((3, 4))
    assert grid.is_free((4, 4))


def test_out_of_bounds_is_never_free_or_occupied():
    grid = GridState(12, 24)
    assert not grid.is_occupied(-1, 0)
    assert not grid.is_free((-1, 0))
    assert grid.owner_at(12, 0) is None


def test_double_occupy_is_an_error():
    grid = GridState(12, 24)
    grid.occupy(1, 1, "a")
    with pytest.raises(CellOccupied):
        grid.occupy(1, 1, "b")
    assert grid.owner_at(1, 1) == "a"


def test_occupy_outside_is_an_error():
    grid = GridState(12, 24)
    with pytest.raises(OutOfBounds):
        grid.occupy(12, 0, "a")


def test_rows_view_is_a_copy():
    grid = GridState(12, 24)
    view = grid.rows_view()
    view[0][0] = "x"
    assert not grid.is_occupied(0, 0)
    assert len(view) == 24 and len(view[0]) == 12
