"""
Civil calendar helpers in a fixed reference timezone.

All day and week boundaries are computed in one IANA zone, never in the
host's local time, so edit windows and weekly partitions are the same
on every server.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional, Union
from zoneinfo import ZoneInfo

from .constants import REFERENCE_TIMEZONE, WEEK_START_DAY

Instant = Union[datetime, date]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CalendarClock:
    """Resolves instants to civil dates in the reference zone."""

    def __init__(self, tz_name: str = REFERENCE_TIMEZONE,
                 now_provider: Optional[Callable[[], datetime]] = None):
        self.tz_name = tz_name
        self.zone = ZoneInfo(tz_name)
        self._now_provider = now_provider or _utc_now

    def now(self) -> datetime:
        return self._ensure_aware(self._now_provider())

    def to_local(self, instant: datetime) -> datetime:
        return self._ensure_aware(instant).astimezone(self.zone)

    def today(self, instant: Optional[Instant] = None) -> date:
        """Civil date of ``instant`` (default: now). Plain dates pass through."""
        if instant is None:
            instant = self.now()
        if not isinstance(instant, datetime):
            return instant
        return self.to_local(instant).date()

    def start_of_day(self, civil_date: date) -> datetime:
        return datetime.combine(civil_date, time.min, tzinfo=self.zone)

    def end_of_day(self, civil_date: date) -> datetime:
        """Last representable instant of the civil date (23:59:59.999999 local)."""
        return datetime.combine(civil_date, time.max, tzinfo=self.zone)

    def week_start(self, civil_date: date) -> date:
        offset = (civil_date.weekday() - WEEK_START_DAY) % 7
        return civil_date - timedelta(days=offset)

    @staticmethod
    def days_between(earlier: date, later: date) -> int:
        """Whole calendar days from ``earlier`` to ``later`` (negative if reversed)."""
        return (later - earlier).days

    @staticmethod
    def _ensure_aware(instant: datetime) -> datetime:
        # Naive datetimes are treated as UTC
        if instant.tzinfo is None:
            return instant.replace(tzinfo=timezone.utc)
        return instant


def fixed_clock(instant: datetime, tz_name: str = REFERENCE_TIMEZONE) -> CalendarClock:
    """Clock frozen at ``instant``."""
    return CalendarClock(tz_name, now_provider=lambda: instant)


def clock_from_config(config: Optional[dict] = None) -> CalendarClock:
    """Clock in the zone named by ``config['clock']['timezone']``."""
    tz_name = ((config or {}).get('clock') or {}).get('timezone', REFERENCE_TIMEZONE)
    return CalendarClock(tz_name)
