"""
time_utils.py
-------------
Wall-clock helpers shared by availability and booking validation.

- "HH:MM" strings <-> minute offsets since midnight
- weekday numbering used by operating windows (0=Sunday .. 6=Saturday)
- day selectors: a window applies to one specific weekday or to every day
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time

from django.utils import timezone

from .errors import InvalidTimeFormat, InvalidTimeRange

HHMM_RE = re.compile(r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$")
MINUTES_PER_DAY = 24 * 60


def parse_time(value: str) -> int:
    """
    "09:30" -> 570. Anything that is not a valid 24h HH:MM string raises
    InvalidTimeFormat ("9:30", "24:00" and "09:60" included).
    """
    if not isinstance(value, str) or not HHMM_RE.fullmatch(value):
        raise InvalidTimeFormat(f"Invalid time {value!r}. Use HH:MM (e.g. 09:00).")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def format_time(minutes: int) -> str:
    """570 -> "09:30". Only [0, 1440) is representable."""
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise InvalidTimeRange(f"Minutes must be an integer, got {minutes!r}.")
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise InvalidTimeRange(f"Minutes must be between 0 and 1439, got {minutes}.")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def weekday_index(day: date) -> int:
    # isoweekday: Monday=1 .. Sunday=7
    return day.isoweekday() % 7


def slot_datetime(day: date, time_slot: str) -> datetime:
    """Combine a calendar date and "HH:MM" into an aware datetime in the current timezone."""
    minutes = parse_time(time_slot)
    naive = datetime.combine(day, time(minutes // 60, minutes % 60))
    return timezone.make_aware(naive, timezone.get_current_timezone())


# -------------------------
# Day selectors
# -------------------------
@dataclass(frozen=True)
class SpecificDay:
    weekday: int  # 0=Sunday .. 6=Saturday

    def matches(self, weekday: int) -> bool:
        return self.weekday == weekday


@dataclass(frozen=True)
class EveryDay:
    def matches(self, weekday: int) -> bool:
        return True


EVERY_DAY = EveryDay()


def day_selector(day_of_week):
    """Map the stored nullable day_of_week column to a selector."""
    if day_of_week is None:
        return EVERY_DAY
    return SpecificDay(int(day_of_week))
