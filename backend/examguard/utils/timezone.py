"""
Timezone helpers. Everything is stored in UTC; the configured zone is
used only for display.
"""
from datetime import datetime
import pytz

from ..core.config import settings


def utc_now() -> datetime:
    return datetime.now(pytz.UTC)


def get_display_tz():
    return pytz.timezone(settings.default_timezone)


def to_display_tz(dt: datetime) -> datetime:
    """Convert a stored timestamp to the display timezone"""
    if dt.tzinfo is None:
        # SQLite hands back naive values
        dt = dt.replace(tzinfo=pytz.UTC)
    return dt.astimezone(get_display_tz())


def format_display_time(dt: datetime, format_str: str = None) -> str:
    return to_display_tz(dt).strftime(format_str or settings.timezone_display_format)


def get_timezone_info() -> dict:
    now = to_display_tz(utc_now())
    return {
        "timezone": settings.default_timezone,
        "offset": now.strftime("%z"),
        "current_time": format_display_time(now),
    }
