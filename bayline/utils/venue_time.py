"""
Venue-local civil time <-> absolute UTC timestamps.

All scheduling inputs are a calendar date plus minutes from local midnight
in the venue's zone. Offsets are resolved per date through the zone's
rules, so a venue in a DST zone gets the right offset on either side of a
transition.
"""
import re
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from bayline.core.config import settings
from bayline.core.errors import BookingValidationError

DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TWELVE_HOUR_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*(AM|PM)$", re.IGNORECASE)
_TWENTY_FOUR_HOUR_RE = re.compile(r"^(\d{1,2}):(\d{2})$")

MINUTES_PER_DAY = 24 * 60


@lru_cache(maxsize=8)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def venue_zone() -> ZoneInfo:
    return _zone(settings.VENUE_TIMEZONE)


def parse_date_key(value) -> date:
    """Accept only ISO calendar dates (YYYY-MM-DD)."""
    if isinstance(value, datetime):
        raise BookingValidationError("Invalid date: expected YYYY-MM-DD")
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_KEY_RE.match(value):
        raise BookingValidationError("Invalid date: expected YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise BookingValidationError(f"Invalid date: {value}") from None


def to_absolute(day: date, minutes_from_midnight: int, tz: Optional[ZoneInfo] = None) -> datetime:
    """
    Venue wall-clock time on ``day`` -> aware UTC datetime.

    Wall times skipped by a spring-forward transition resolve with the
    offset in effect before it; repeated fall-back times resolve to their
    first occurrence (fold=0).
    """
    zone = tz or venue_zone()
    local = datetime.combine(day, time.min) + timedelta(minutes=minutes_from_midnight)
    return local.replace(tzinfo=zone).astimezone(timezone.utc)


def from_absolute(ts: datetime, tz: Optional[ZoneInfo] = None) -> Tuple[date, int]:
    """Aware timestamp -> (venue-local date, minutes from local midnight)."""
    if ts.tzinfo is None:
        raise ValueError("from_absolute needs an aware datetime")
    local = ts.astimezone(tz or venue_zone())
    return local.date(), local.hour * 60 + local.minute


def venue_now(now: Optional[datetime] = None) -> datetime:
    """Current time in the venue zone; pass ``now`` to pin the clock."""
    current = now or datetime.now(timezone.utc)
    return current.astimezone(venue_zone())


def parse_start_time(text: str) -> Optional[int]:
    """'7:30 PM', '7 PM' or '19:30' -> minutes from midnight, None if unparseable."""
    value = (text or "").strip()
    match = _TWELVE_HOUR_RE.match(value)
    if match:
        hours = int(match.group(1))
        minutes = int(match.group(2) or 0)
        if not 1 <= hours <= 12 or minutes > 59:
            return None
        hours = hours % 12 + (12 if match.group(3).upper() == "PM" else 0)
        return hours * 60 + minutes

    match = _TWENTY_FOUR_HOUR_RE.match(value)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours > 23 or minutes > 59:
            return None
        return hours * 60 + minutes
    return None


def format_minutes(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"
