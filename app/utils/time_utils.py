from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional, Tuple
from pytz import FixedOffset

from config import settings
from exceptions import FormatError
from models.work_time_settings import HHMM_PATTERN

UTC = timezone.utc
MINUTES_PER_DAY = 24 * 60

DayRange = Tuple[datetime, datetime]


def to_minutes(hhmm: str) -> int:
    """Parse "HH:mm" into minutes since local midnight."""
    match = HHMM_PATTERN.match(hhmm or "")
    if not match:
        raise FormatError(f"Invalid time '{hhmm}', expected HH:mm")
    return int(match.group(1)) * 60 + int(match.group(2))


def minutes_to_hhmm(minutes: int) -> str:
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_cross_midnight(start_minutes: int, end_minutes: int) -> int:
    # an end before the start belongs to the next day
    if end_minutes < start_minutes:
        return end_minutes + MINUTES_PER_DAY
    return end_minutes


def local_timezone(offset_minutes: Optional[int] = None) -> tzinfo:
    if offset_minutes is None:
        offset_minutes = settings.LOCAL_UTC_OFFSET_MINUTES
    return FixedOffset(offset_minutes)


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)  # Assume UTC if tzinfo is missing
    return value.astimezone(UTC)


def to_local(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    return ensure_utc(value).astimezone(tz or local_timezone())


def to_local_hhmm(value: datetime, tz: Optional[tzinfo] = None) -> str:
    return to_local(value, tz).strftime("%H:%M")


def local_day(value: datetime, tz: Optional[tzinfo] = None) -> date:
    return to_local(value, tz).date()


def day_range(day: date, tz: Optional[tzinfo] = None) -> DayRange:
    """Return the UTC instants of local midnight on `day` and on the following day."""
    tz = tz or local_timezone()
    start = datetime(day.year, day.month, day.day, tzinfo=tz)
    end = start + timedelta(days=1)
    return start.astimezone(UTC), end.astimezone(UTC)
