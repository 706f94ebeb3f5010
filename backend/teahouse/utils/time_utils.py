"""Time utilities pinned to the restaurant's local time zone."""

import os
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo
from typing import Optional, Tuple

try:
    LOCAL_TZ = ZoneInfo(os.getenv("RESTAURANT_TIMEZONE", "Asia/Kolkata"))
except Exception:
    # Fallback to system local timezone when tzdata is unavailable (Windows)
    LOCAL_TZ = datetime.now().astimezone().tzinfo


def now_local() -> datetime:
    """Return timezone-aware datetime in the restaurant's time zone."""
    return datetime.now(LOCAL_TZ)


def now_local_naive() -> datetime:
    """Return naive datetime representing restaurant local time."""
    return now_local().replace(tzinfo=None)


def today_local() -> date:
    """Calendar date of the server clock, used as the revenue key."""
    return now_local().date()


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Return the naive [start, end) local datetimes covering ``day``."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None
