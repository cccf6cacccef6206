from __future__ import annotations

from datetime import datetime, timezone

from gridle.common.dates import next_utc_midnight, utc_now
from gridle.engine.challenge import ChallengeConfig
from gridle.engine.grid import GridState
from gridle.engine.state import Agent

EMPTY_CELL = "⬛"
UNKNOWN_CELL = "🟫"
PLAYER_MARKER = "🔷"

COLOR_EMOJI = {
    "#f44336": "🟥",
    "#ffd600": "🟨",
    "#00e676": "🟩",
    "#00e5ff": "🟦",
    "#d500f9": "🟪",
    "#ff6d00": "🟧",
    "#29b6f6": "🟦",
    "#00f3ff": "🟦",
    "#fff": "⬜",
}


def format_time(ms: int) -> str:
    """Render milliseconds as ``MM:SS.mmm``."""
    ms = max(0, int(ms))
    seconds = ms // 1000
    return f"{seconds // 60:02d}:{seconds % 60:02d}.{ms % 1000:03d}"


def color_to_emoji(color: str | None) -> str:
    if not color:
        return EMPTY_CELL
    return COLOR_EMOJI.get(color.lower(), UNKNOWN_CELL)


def emoji_grid(grid: GridState, player: Agent | None = None) -> str:
    marker = player.pos if player is not None and player.alive else None
    lines = []
    for y, row in enumerate(grid.rows_view()):
        cells = []
        for x, owner in enumerate(row):
            if marker == (x, y):
                cells.append(PLAYER_MARKER)
            else:
                cells.append(color_to_emoji(owner))
        lines.append("".join(cells))
    return "\n".join(lines)


def share_text(
    config: ChallengeConfig,
    won: bool,
    elapsed_ms: int,
    streak: int,
    grid: GridState,
    player: Agent | None = None,
) -> str:
    header = (
        f"Gridle {config.date} — {config.cols}×{config.rows} • "
        f"Opponents {config.opponent_count}"
    )
    result = (
        f"Result: {'Win' if won else 'Lose'} • Time: {format_time(elapsed_ms)} • "
        f"Streak: {streak}"
    )
    return f"{header}\n{result}\n\n{emoji_grid(grid, player)}"


def countdown(now: datetime | None = None) -> tuple[int, int, int]:
    """Hours, minutes and seconds until the next UTC midnight."""
    now = now or utc_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    remaining = next_utc_midnight(now) - now
    total = max(0, int(remaining.total_seconds()))
    return total // 3600, (total % 3600) // 60, total % 60


def format_countdown(now: datetime | None = None) -> str:
    hours, minutes, seconds = countdown(now)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def countdown_share_text(now: datetime | None = None) -> str:
    hours, minutes, seconds = countdown(now)
    return f"Gridle next challenge in {hours}h {minutes}m {seconds}s — come play!"
