"""
Timezone helpers shared by streak and analytics calculations.

Day boundaries are always evaluated in the user's local calendar.
"""

import logging
from datetime import date, datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from aptivo.config import settings

logger = logging.getLogger(__name__)


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """
    Resolve an IANA timezone name, falling back to DEFAULT_TIMEZONE.

    Unknown names are logged rather than raised so a bad stored value
    never breaks a dashboard read.
    """
    candidate = name or settings.DEFAULT_TIMEZONE
    try:
        return ZoneInfo(candidate)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {candidate!r}, using {settings.DEFAULT_TIMEZONE}")
        return ZoneInfo(settings.DEFAULT_TIMEZONE)


def utc_now() -> datetime:
    """Current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def to_local(moment: datetime, tz: tzinfo) -> datetime:
    """Convert an instant to local time; naive values are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz)


def local_date(moment: datetime, tz: tzinfo) -> date:
    """Calendar date of an instant in the given timezone."""
    return to_local(moment, tz).date()


def local_midnight_utc(tz: tzinfo, now: Optional[datetime] = None) -> datetime:
    """UTC instant of the most recent local midnight."""
    local_now = to_local(now or utc_now(), tz)
    midnight = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(timezone.utc)
