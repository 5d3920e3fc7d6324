"""Time utilities."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from smart_discount.config import settings


def local_zone() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def now_local() -> datetime:
    """Current time in the configured store timezone."""
    return datetime.now(local_zone())


def local_hour() -> int:
    return now_local().hour


def utc_iso() -> str:
    return now_utc().isoformat()
