import math
import secrets
from datetime import date, datetime, time, timezone
from typing import Optional, Sequence
from zoneinfo import ZoneInfo

from app.core.config import settings

WALL_TIME_FORMATS = ("%H:%M", "%I:%M %p", "%I:%M%p", "%H:%M:%S")
EARTH_RADIUS_KM = 6371.0088


def get_timezone() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def local_now() -> datetime:
    return datetime.now(get_timezone())


def local_today() -> date:
    return local_now().date()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Aware UTC copy of `value`; naive values are read as pinned-timezone wall time."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=get_timezone())
    return value.astimezone(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # Naive values coming back from the store are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_wall_time(value: str) -> time:
    """Parse schedule times such as "10:00", "10:00 AM" or "4:30PM"."""
    cleaned = value.strip().upper()
    for fmt in WALL_TIME_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Unrecognised time of day: {value!r}")


def local_datetime(day: date, wall_time: str) -> datetime:
    return datetime.combine(day, parse_wall_time(wall_time), tzinfo=get_timezone())


def generate_otp(digits: Optional[int] = None) -> int:
    digits = digits or settings.OTP_DIGITS
    low = 10 ** (digits - 1)
    return low + secrets.randbelow(9 * low)


def format_pd_number(prefix: str, number: int) -> str:
    return f"{prefix}{number}"


def haversine_km(origin: Sequence[float], destination: Sequence[float]) -> float:
    lat1, lng1 = map(math.radians, origin[:2])
    lat2, lng2 = map(math.radians, destination[:2])
    dlat = lat2 - lat1
    dlng = lng2 - lng1
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def day_of_week(day: date) -> int:
    # Python weekday() is 0=Monday..6=Sunday, schedules use 0=Sunday..6=Saturday
    python_day = day.weekday()
    return 0 if python_day == 6 else python_day + 1
