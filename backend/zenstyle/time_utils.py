from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Optional


HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(?::[0-5]\d)?$")

# date.weekday() index -> working-hours key
WEEKDAY_KEYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    # Normalize to UTC-naive
    if dt.tzinfo is None:
        # interpret naive as UTC
        return dt.replace(tzinfo=None)

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def parse_date(value) -> date:
    """
    Calendar date without time zone conversion.

    Accepts a date, a datetime (date part is kept) or "YYYY-MM-DD".
    Raises ValueError for anything else.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        return date.fromisoformat(value.strip()[:10])
    raise ValueError("date must be YYYY-MM-DD")


def parse_hhmm(value: str) -> str:
    """Normalize "H:MM", "HH:MM" or "HH:MM:SS" to "HH:MM"."""
    if not isinstance(value, str):
        raise ValueError("time must be an HH:MM string")
    s = value.strip()
    if len(s) == 4 and s[1] == ":":
        s = "0" + s
    match = HHMM_RE.match(s)
    if not match:
        raise ValueError(f"invalid time {value!r}, expected HH:MM")
    return f"{match.group(1)}:{match.group(2)}"


def hhmm_to_minutes(value: str) -> int:
    hh, mm = parse_hhmm(value).split(":")
    return int(hh) * 60 + int(mm)


def minutes_to_hhmm(minutes: int) -> str:
    if minutes < 0 or minutes >= 24 * 60:
        raise ValueError("time of day out of range")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def weekday_key(day: date) -> str:
    return WEEKDAY_KEYS[day.weekday()]


def to_iso_date(day: Optional[date]) -> Optional[str]:
    return day.isoformat() if day else None
