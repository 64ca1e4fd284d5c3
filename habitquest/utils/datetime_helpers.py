"""
Calendar and date-key utilities

Every day in the progression engine is identified by a date key in
``YYYY-MM-DD`` form, and every week by a week key in ``YYYY-WW`` form.

RULES:
- Date keys are always calendar days in the user's timezone
- Week keys follow ISO-8601 numbering: weeks start on Monday, week 1 is the
  week containing the first Thursday of the year, and the year part is the
  ISO year (so 2026-12-31 may belong to 2027-01)
- One clock reading is taken per action; evaluation within that action never
  re-reads the clock
"""

import logging
import re
from datetime import date, datetime, timedelta
from typing import List, Optional

import pytz

from habitquest.config import DEFAULT_TIMEZONE
from habitquest.exceptions import ValidationError

logger = logging.getLogger(__name__)

DATE_KEY_FORMAT = "%Y-%m-%d"
_DATE_KEY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_WEEK_KEY_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


def format_date_key(value: date) -> str:
    """Format a date (or datetime) as YYYY-MM-DD"""
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime(DATE_KEY_FORMAT)


def parse_date_key(date_key: str) -> date:
    """
    Parse a YYYY-MM-DD date key

    Raises:
        ValidationError: If the key is not a real calendar date
    """
    if not isinstance(date_key, str) or not _DATE_KEY_PATTERN.match(date_key):
        raise ValidationError(
            message=f"'{date_key}' is not a YYYY-MM-DD date",
            field="date",
            value=date_key
        )

    try:
        return datetime.strptime(date_key, DATE_KEY_FORMAT).date()
    except (TypeError, ValueError) as e:
        raise ValidationError(
            message=f"'{date_key}' is not a YYYY-MM-DD date",
            field="date",
            value=date_key,
            cause=e
        )


def add_days(date_key: str, days: int) -> str:
    """Shift a date key by a number of days (negative to go back)"""
    return format_date_key(parse_date_key(date_key) + timedelta(days=days))


def previous_date_key(date_key: str) -> str:
    """Get the date key of the day before"""
    return add_days(date_key, -1)


def days_between(start_key: str, end_key: str) -> int:
    """Number of calendar days from start_key to end_key"""
    return (parse_date_key(end_key) - parse_date_key(start_key)).days


def format_display_date(date_key: str) -> str:
    """
    Human-readable form of a date key

    Example:
        format_display_date("2026-10-19") -> "Monday, October 19"
    """
    day = parse_date_key(date_key)
    return f"{day.strftime('%A')}, {day.strftime('%B')} {day.day}"


# ============================================
# ISO Week Keys
# ============================================

def week_key_for(date_key: str) -> str:
    """ISO week key (YYYY-WW) of the week containing date_key"""
    iso_year, iso_week, _ = parse_date_key(date_key).isocalendar()
    return f"{iso_year}-{iso_week:02d}"


def parse_week_key(week_key: str) -> date:
    """
    Monday of an ISO week key

    Raises:
        ValidationError: If the key is malformed or the week doesn't exist
    """
    match = _WEEK_KEY_PATTERN.match(week_key or "")
    if not match:
        raise ValidationError(
            message=f"'{week_key}' is not a YYYY-WW week key",
            field="week",
            value=week_key
        )

    try:
        return date.fromisocalendar(int(match.group(1)), int(match.group(2)), 1)
    except ValueError as e:
        raise ValidationError(
            message=f"Week '{week_key}' does not exist",
            field="week",
            value=week_key,
            cause=e
        )


def week_start(week_key: str) -> str:
    """Date key of the Monday that starts the week"""
    return format_date_key(parse_week_key(week_key))


def week_end(week_key: str) -> str:
    """Date key of the Sunday that ends the week"""
    return format_date_key(parse_week_key(week_key) + timedelta(days=6))


def week_date_keys(week_key: str) -> List[str]:
    """All seven date keys of the week, Monday first"""
    monday = parse_week_key(week_key)
    return [format_date_key(monday + timedelta(days=offset)) for offset in range(7)]


def is_date_in_week(date_key: str, week_key: str) -> bool:
    return week_key_for(date_key) == week_key


# ============================================
# Clock
# ============================================

class Clock:
    """Source of "now" and "today" in a fixed timezone"""

    def __init__(self, timezone: str = DEFAULT_TIMEZONE):
        try:
            self.tz = pytz.timezone(timezone)
        except pytz.UnknownTimeZoneError as e:
            logger.error(f"Invalid timezone '{timezone}': {e}")
            self.tz = pytz.utc

    def now(self) -> datetime:
        """Current timezone-aware datetime"""
        return datetime.now(self.tz)

    def today_key(self) -> str:
        return format_date_key(self.now())

    def yesterday_key(self) -> str:
        return previous_date_key(self.today_key())

    def current_week_key(self) -> str:
        return week_key_for(self.today_key())

    def _localize(self, instant: datetime) -> datetime:
        """Aware datetime in this clock's timezone; naive input is taken as local time"""
        if instant.tzinfo is None:
            return self.tz.localize(instant)
        return instant.astimezone(self.tz)


class FixedClock(Clock):
    """
    Clock frozen at a given instant

    Used by tests and for replaying actions at a known time.
    Naive instants are interpreted in the clock's timezone.
    """

    def __init__(self, instant: datetime, timezone: str = DEFAULT_TIMEZONE):
        super().__init__(timezone)
        self._instant = self._localize(instant)

    def now(self) -> datetime:
        return self._instant

    def advance(self, days: int = 0, hours: int = 0, minutes: int = 0) -> None:
        """Move the frozen instant forward"""
        self._instant = self.tz.normalize(self._instant + timedelta(days=days, hours=hours, minutes=minutes))

    def set(self, instant: datetime) -> None:
        self._instant = self._localize(instant)


def resolve_today(today_key: Optional[str], clock: Optional[Clock] = None) -> str:
    """Use the given date key, or today's key from the clock"""
    if today_key:
        return today_key
    return (clock or Clock()).today_key()
