# Overview: Service-layer operations for salon settings; encapsulates business logic and database work.

"""
Settings Service

WHY: Working hours drive every availability decision. They are stored as a
single JSON document under the "working_hours" key and read once per
operation as an immutable snapshot, so one booking never sees two versions.

FORMAT:
    {"monday": {"open": "08:00", "close": "19:00", "isOpen": true}, ...}
Keys are lowercase English weekday names. A missing day counts as closed.
"""

from __future__ import annotations

import copy
from types import MappingProxyType
from typing import Any

from ..extensions import db
from ..models import AppSetting
from zenstyle.time_utils import WEEKDAY_KEYS, parse_hhmm, hhmm_to_minutes


WORKING_HOURS_KEY = "working_hours"

DEFAULT_WORKING_HOURS = {
    "saturday": {"open": "08:00", "close": "19:00", "isOpen": True},
    "sunday": {"open": "08:00", "close": "19:00", "isOpen": True},
    "monday": {"open": "08:00", "close": "19:00", "isOpen": True},
    "tuesday": {"open": "08:00", "close": "19:00", "isOpen": True},
    "wednesday": {"open": "08:00", "close": "19:00", "isOpen": True},
    "thursday": {"open": "08:00", "close": "19:00", "isOpen": True},
    "friday": {"open": "08:00", "close": "19:00", "isOpen": False},
}


class SettingsError(ValueError):
    pass


class SettingsValidationError(SettingsError):
    pass


def get_setting(key: str, default: Any = None) -> Any:
    row = db.session.query(AppSetting).filter_by(key=key).first()
    if row is None:
        return copy.deepcopy(default)
    return row.value


def set_setting(key: str, value: Any) -> AppSetting:
    if not key or not key.strip():
        raise SettingsValidationError("Setting key is required")
    key = key.strip()

    row = db.session.query(AppSetting).filter_by(key=key).first()
    if row is None:
        row = AppSetting(key=key, value=value)
        db.session.add(row)
    else:
        row.value = value
    db.session.commit()
    return row


def validate_working_hours_config(hours: Any) -> dict:
    """
    Validate and normalize a working-hours document.

    Raises:
        SettingsValidationError: unknown day, bad time format, or open >= close
            on an open day
    """
    if not isinstance(hours, dict):
        raise SettingsValidationError("working hours must be an object keyed by weekday")

    normalized = {}
    for day, info in hours.items():
        day_key = str(day).strip().lower()
        if day_key not in WEEKDAY_KEYS:
            raise SettingsValidationError(f"Unknown weekday '{day}'")
        if not isinstance(info, dict):
            raise SettingsValidationError(f"Hours for {day_key} must be an object")

        is_open = bool(info.get("isOpen", False))
        try:
            open_time = parse_hhmm(info.get("open", "08:00"))
            close_time = parse_hhmm(info.get("close", "19:00"))
        except ValueError as exc:
            raise SettingsValidationError(f"{day_key}: {exc}") from exc

        if is_open and hhmm_to_minutes(open_time) >= hhmm_to_minutes(close_time):
            raise SettingsValidationError(f"{day_key}: opening time must be before closing time")

        normalized[day_key] = {"open": open_time, "close": close_time, "isOpen": is_open}
    return normalized


def get_working_hours():
    """
    Read-only snapshot of the working-hours configuration.

    Falls back to DEFAULT_WORKING_HOURS when nothing has been saved.
    """
    stored = get_setting(WORKING_HOURS_KEY)
    hours = stored if isinstance(stored, dict) and stored else DEFAULT_WORKING_HOURS
    return MappingProxyType({day: MappingProxyType(dict(info)) for day, info in hours.items()})


def update_working_hours(hours: dict) -> dict:
    normalized = validate_working_hours_config(hours)
    set_setting(WORKING_HOURS_KEY, normalized)
    return normalized


def working_hours_as_dict(hours) -> dict:
    return {day: dict(info) for day, info in hours.items()}


def seed_default_working_hours() -> bool:
    """Store the default hours if none exist. Returns True when seeded."""
    if db.session.query(AppSetting).filter_by(key=WORKING_HOURS_KEY).first():
        return False
    set_setting(WORKING_HOURS_KEY, copy.deepcopy(DEFAULT_WORKING_HOURS))
    return True
