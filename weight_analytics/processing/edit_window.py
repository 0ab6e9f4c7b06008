"""
Edit window for patient-authored entries.

An entry dated D can be changed from the start of D until the end of
D + grace_days (inclusive), both in the reference timezone.
"""

from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional

from ..clock import CalendarClock, clock_from_config
from ..constants import EDIT_WINDOW


class EditWindowPolicy:
    """Decides whether an entry's edit window is still open."""

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 clock: Optional[CalendarClock] = None):
        self.config = config or {}
        self.grace_days = self.config.get('edit_window', {}).get('grace_days', EDIT_WINDOW['GRACE_DAYS'])
        self.clock = clock or clock_from_config(self.config)

    def opens_at(self, measurement_date: date) -> datetime:
        return self.clock.start_of_day(measurement_date)

    def deadline(self, measurement_date: date) -> datetime:
        """Inclusive upper bound of the window."""
        return self.clock.end_of_day(measurement_date + timedelta(days=self.grace_days))

    def is_mutable(self, measurement_date: date, now: Optional[datetime] = None) -> bool:
        if now is None:
            now = self.clock.now()
        now = self.clock.to_local(now)
        return self.opens_at(measurement_date) <= now <= self.deadline(measurement_date)
