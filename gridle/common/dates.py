from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone

from gridle.common.errors import InvalidDateFormat

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_date_string(now: datetime | None = None) -> str:
    """Return the UTC calendar day of ``now`` as ``YYYY-MM-DD``.

    Naive datetimes are taken to already be in UTC.
    """
    now = now or utc_now()
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%d")


def parse_date_string(value: object) -> date:
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise InvalidDateFormat(value)
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise InvalidDateFormat(value) from exc


def validate_date_string(value: object) -> str:
    parse_date_string(value)
    return value  # type: ignore[return-value]


def previous_date_string(value: str) -> str:
    return (parse_date_string(value) - timedelta(days=1)).isoformat()


def next_utc_midnight(now: datetime | None = None) -> datetime:
    now = now or utc_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    today = now.astimezone(timezone.utc).date()
    tomorrow = today + timedelta(days=1)
    return datetime(tomorrow.year, tomorrow.month, tomorrow.day, tzinfo=timezone.utc)
