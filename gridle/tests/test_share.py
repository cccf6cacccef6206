from datetime import datetime, timezone

from gridle.common.types import Direction
from gridle.engine.challenge import generate_challenge
from gridle.engine.grid import GridState
from gridle.engine.share import (
    color_to_emoji,
    countdown,
    countdown_share_text,
    emoji_grid,
    format_countdown,
    format_time,
    share_text,
)
from gridle.engine.state import Agent


def test_format_time():
    assert format_time(0) == "00:00.000"
    assert format_time(61_005) == "01:01.005"
    assert format_time(3_599_999) == "59:59.999"


def test_color_to_emoji():
    assert color_to_emoji(None) == "⬛"
    assert color_to_emoji("#F44336") == "🟥"
    assert color_to_emoji("#123456") == "🟫"


def test_emoji_grid_marks_live_player():
    grid = GridState(3, 2)
    grid.occupy(0, 0, "#00f3ff")
    grid.occupy(1, 0, "#00f3ff")
    grid.occupy(2, 1, "#ffd600")
    player = Agent(agent_id="player", pos=(1, 0), heading=Direction.RIGHT, color="#00f3ff")
    assert emoji_grid(grid, player) == "🟦🔷⬛\n⬛⬛🟨"
    player.alive = False
    assert emoji_grid(grid, player) == "🟦🟦⬛\n⬛⬛🟨"


def test_share_text_layout():
    config = generate_challenge("2024-01-01")
    grid = GridState(config.cols, config.rows)
    text = share_text(config, won=True, elapsed_ms=12_345, streak=3, grid=grid)
    lines = text.split("\n")
    assert lines[0] == "Gridle 2024-01-01 — 12×34 • Opponents 4"
    assert lines[1] == "Result: Win • Time: 00:12.345 • Streak: 3"
    assert lines[2] == ""
    assert len(lines) == 3 + config.rows
    assert lines[3] == "⬛" * config.cols


def test_countdown_to_utc_midnight():
    now = datetime(2024, 1, 1, 22, 58, 30, tzinfo=timezone.utc)
    assert countdown(now) == (1, 1, 30)
    assert format_countdown(now) == "01:01:30"
    assert countdown_share_text(now) == "Gridle next challenge in 1h 1m 30s — come play!"


def test_countdown_treats_naive_as_utc():
    assert countdown(datetime(2024, 1, 1, 0, 0, 0)) == (24, 0, 0)
