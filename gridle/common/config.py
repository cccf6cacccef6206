from __future__ import annotations

import os
from dataclasses import dataclass, field


def _env_bool(value: str, default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "no", "off"}


def _env_optional_int(value: str | None) -> int | None:
    if value is None or not value.strip():
        return None
    parsed = int(value)
    return parsed if parsed > 0 else None


def _parse_origins(value: str | None) -> list[str]:
    if not value:
        return [
            "http://localhost:8000",
            "http://127.0.0.1:8000",
        ]
    return [origin.strip() for origin in value.split(",") if origin.strip()]


@dataclass(frozen=True)
class Settings:
    """Runtime settings loaded from environment variables."""

    db_path: str = os.getenv("GRIDLE_DB_PATH", "gridle.db")
    enable_tick_loop: bool = _env_bool(os.getenv("GRIDLE_ENABLE_TICK_LOOP", "1"))
    cors_origins: list[str] = field(
        default_factory=lambda: _parse_origins(os.getenv("GRIDLE_CORS_ORIGINS"))
    )
    max_attempts: int | None = _env_optional_int(os.getenv("GRIDLE_MAX_ATTEMPTS", "500"))
    history_limit: int = int(os.getenv("GRIDLE_HISTORY_LIMIT", "50"))
    history_max_rows: int = int(os.getenv("GRIDLE_HISTORY_MAX_ROWS", "1000"))
    retain_finished: int = int(os.getenv("GRIDLE_RETAIN_FINISHED", "100"))
    ws_send_timeout: float = float(os.getenv("GRIDLE_WS_SEND_TIMEOUT", "1.0"))
    log_level: str = os.getenv("GRIDLE_LOG_LEVEL", "INFO")
    api_key: str | None = os.getenv("GRIDLE_API_KEY")


settings = Settings()
