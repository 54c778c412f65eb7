from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from shift_builder.settings import BUSINESS_TIMEZONE

UTC = datetime.timezone.utc
LOCAL_TZ = ZoneInfo(BUSINESS_TIMEZONE)
WEEKDAY_TOKENS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def to_utc(value: datetime.datetime) -> datetime.datetime:
    """Normalise an instant to UTC; naive values are read as business-local time."""
    if not isinstance(value, datetime.datetime):
        raise TypeError("Expected a datetime instance.")
    if value.tzinfo is None:
        value = value.replace(tzinfo=LOCAL_TZ)
    return value.astimezone(UTC)


def from_storage(value: datetime.datetime) -> datetime.datetime:
    # SQLite hands back naive values for timezone-aware columns; they were written as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_local(value: datetime.datetime) -> datetime.datetime:
    return to_utc(value).astimezone(LOCAL_TZ)


def local_date(value: datetime.datetime) -> datetime.date:
    return to_local(value).date()


def local_time(value: datetime.datetime) -> datetime.time:
    local = to_local(value)
    return datetime.time(local.hour, local.minute)


def combine_local(day: datetime.date, time_of_day: datetime.time) -> datetime.datetime:
    """Return the UTC instant for a business-local wall-clock time on ``day``."""
    local = datetime.datetime.combine(day, time_of_day.replace(tzinfo=None), tzinfo=LOCAL_TZ)
    return local.astimezone(UTC)


def local_day_window(day: datetime.date) -> Tuple[datetime.datetime, datetime.datetime]:
    start = combine_local(day, datetime.time.min)
    end = combine_local(day + datetime.timedelta(days=1), datetime.time.min)
    return start, end


def parse_time_of_day(value: str | datetime.time) -> datetime.time:
    if isinstance(value, datetime.time):
        return datetime.time(value.hour, value.minute)
    text = (value or "").strip()
    try:
        parsed = datetime.time.fromisoformat(text)
    except ValueError:
        raise ValueError(f"Time of day must be HH:MM, got '{value}'.") from None
    return datetime.time(parsed.hour, parsed.minute)


def format_time_of_day(value: datetime.time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def shift_window(
    day: datetime.date,
    start_time: datetime.time,
    end_time: datetime.time,
) -> Tuple[datetime.datetime, datetime.datetime]:
    """Build absolute start/end for a shift on ``day``.

    An end clock-time before the start clock-time wraps past midnight and
    lands on the following calendar day. Equal clock-times are rejected.
    """
    if (end_time.hour, end_time.minute) == (start_time.hour, start_time.minute):
        raise ValueError("Shift start and end times must differ.")
    start = combine_local(day, start_time)
    end_day = day
    if (end_time.hour, end_time.minute) < (start_time.hour, start_time.minute):
        end_day = day + datetime.timedelta(days=1)
    end = combine_local(end_day, end_time)
    return start, end


def move_to_day(
    start: datetime.datetime,
    end: datetime.datetime,
    day: datetime.date,
) -> Tuple[datetime.datetime, datetime.datetime]:
    """Place an existing shift on ``day`` keeping its local start/end time-of-day."""
    return shift_window(day, local_time(start), local_time(end))


def shift_by_days(value: datetime.datetime, days: int) -> datetime.datetime:
    local = to_local(value)
    moved = local.date() + datetime.timedelta(days=days)
    return combine_local(moved, local.time())


def normalize_week_start(date_value: datetime.date | datetime.datetime) -> datetime.date:
    """Return the Monday for the provided date."""
    if isinstance(date_value, datetime.datetime):
        date_value = local_date(date_value)
    weekday = date_value.weekday()
    if weekday == 0:
        return date_value
    return date_value - datetime.timedelta(days=weekday)


@dataclass(frozen=True)
class WeekBounds:
    """A Monday-anchored seven day window in the business timezone."""

    start: datetime.date

    def __post_init__(self) -> None:
        if not isinstance(self.start, datetime.date) or isinstance(self.start, datetime.datetime):
            raise TypeError("WeekBounds.start must be a date instance.")
        if self.start.weekday() != 0:
            raise ValueError("WeekBounds.start must be a Monday.")

    @classmethod
    def for_date(cls, value: datetime.date | datetime.datetime) -> "WeekBounds":
        return cls(normalize_week_start(value))

    @classmethod
    def parse(cls, value: str) -> "WeekBounds":
        return cls.for_date(datetime.date.fromisoformat(value))

    @property
    def end(self) -> datetime.date:
        return self.start + datetime.timedelta(days=6)

    @property
    def start_instant(self) -> datetime.datetime:
        return combine_local(self.start, datetime.time.min)

    @property
    def end_instant(self) -> datetime.datetime:
        """Exclusive upper bound: local midnight of the following Monday."""
        return combine_local(self.start + datetime.timedelta(days=7), datetime.time.min)

    def previous(self) -> "WeekBounds":
        return WeekBounds(self.start - datetime.timedelta(days=7))

    def next(self) -> "WeekBounds":
        return WeekBounds(self.start + datetime.timedelta(days=7))

    def days(self) -> List[datetime.date]:
        return [self.start + datetime.timedelta(days=offset) for offset in range(7)]

    def day(self, day_index: int) -> datetime.date:
        if not 0 <= day_index < 7:
            raise ValueError(f"Day index must be between 0 and 6, got {day_index}.")
        return self.start + datetime.timedelta(days=day_index)

    def contains(self, value: datetime.datetime) -> bool:
        instant = to_utc(value)
        return self.start_instant <= instant < self.end_instant

    def day_index(self, value: datetime.date | datetime.datetime) -> Optional[int]:
        day = local_date(value) if isinstance(value, datetime.datetime) else value
        offset = (day - self.start).days
        if 0 <= offset < 7:
            return offset
        return None

    @property
    def label(self) -> str:
        return f"{self.start.strftime('%b')} {self.start.day}, {self.start.year} - " \
            f"{self.end.strftime('%b')} {self.end.day}, {self.end.year}"


def current_week(today: Optional[datetime.date] = None) -> WeekBounds:
    if today is None:
        today = datetime.datetime.now(LOCAL_TZ).date()
    return WeekBounds.for_date(today)
