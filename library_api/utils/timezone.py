from datetime import date, datetime
import pytz

from library_api.config import settings


def local_tz():
    """Time zone circulation dates are computed in."""
    return pytz.timezone(settings.timezone)

def now_local() -> datetime:
    """Get current datetime in the configured time zone."""
    return datetime.now(local_tz())

def today() -> date:
    return now_local().date()
