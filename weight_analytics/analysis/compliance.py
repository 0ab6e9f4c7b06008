"""
Weekly Compliance Module

Partitions a subject's entries into civil weeks (Monday start, reference
timezone) and derives the weekly-obligation KPIs used in coaching views.
"""

from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional
import logging

import pandas as pd

from ..clock import CalendarClock, clock_from_config
from ..constants import (
    COMPLIANCE_DEFAULTS,
    STREAK_MODE_LAST_COMPLETED_WEEK,
    STREAK_MODES,
)
from ..models import ComplianceSummary, WeightMeasurement


def _entry_date(entry: Any) -> date:
    if isinstance(entry, WeightMeasurement):
        return entry.measurement_date
    if isinstance(entry, dict):
        return entry['measurement_date']
    return entry


class ComplianceStreakCalculator:
    """Weekly obligation, streaks and compliance rate for one subject"""

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 clock: Optional[CalendarClock] = None):
        self.config = config or {}
        self.clock = clock or clock_from_config(self.config)
        self.logger = logging.getLogger(__name__)

        compliance = {**COMPLIANCE_DEFAULTS, **self.config.get('compliance', {})}
        # 0 means the whole history since the first entry
        self.window_weeks: Optional[int] = compliance['window_weeks'] or None
        self.streak_mode: str = compliance['streak_mode']
        self.clip_to_first_entry: bool = compliance['clip_to_first_entry']

        if self.streak_mode not in STREAK_MODES:
            raise ValueError(f"Unknown streak mode '{self.streak_mode}'")
        if self.window_weeks is not None and self.window_weeks < 1:
            raise ValueError("window_weeks must be positive or None")

    def weekly_presence(self, entries: Iterable[Any], now: Optional[datetime] = None) -> List[date]:
        """Sorted Monday week starts that contain at least one entry up to today."""
        today = self.clock.today(now)
        return sorted({self.clock.week_start(d) for d in map(_entry_date, entries) if d <= today})

    def weekly_marks(self, entries: Iterable[Any], now: Optional[datetime] = None) -> pd.Series:
        """
        One boolean per civil week from the first entry's week to the current week.

        Returns:
            Series indexed by week start dates, True where the week has an entry
        """
        today = self.clock.today(now)
        presence = self.weekly_presence(entries, now)
        if not presence:
            return pd.Series([], dtype=bool)

        current_week = self.clock.week_start(today)
        weeks = [d.date() for d in pd.date_range(presence[0], current_week, freq='7D')]
        present = set(presence)
        return pd.Series([week in present for week in weeks], index=weeks, dtype=bool)

    def compute(self, entries: Iterable[Any], now: Optional[datetime] = None) -> ComplianceSummary:
        """
        Compute the compliance summary as of ``now``.

        Entries dated after today's civil date are ignored.
        """
        if now is None:
            now = self.clock.now()
        entries = list(entries)
        today = self.clock.today(now)
        current_week = self.clock.week_start(today)

        marks = self.weekly_marks(entries, now)
        if marks.empty:
            total = self.window_weeks if (self.window_weeks and not self.clip_to_first_entry) else 0
            return ComplianceSummary(total_weeks=total)

        weeks_with_entry, total_weeks = self._window_counts(marks, current_week)
        rate = weeks_with_entry / total_weeks if total_weeks > 0 else 0.0

        summary = ComplianceSummary(
            weekly_obligation_met=bool(marks.iloc[-1]),
            current_streak=self.current_streak(marks),
            longest_streak=self.longest_streak(marks),
            weekly_compliance_rate=rate,
            weeks_with_entry=weeks_with_entry,
            total_weeks=total_weeks,
            last_entry_date=max(d for d in map(_entry_date, entries) if d <= today),
        )
        self.logger.debug(f"Compliance as of {today}: {summary}")
        return summary

    def current_streak(self, marks: pd.Series) -> int:
        """Trailing run of met weeks, walking back from the current week."""
        flags = marks.tolist()
        if self.streak_mode == STREAK_MODE_LAST_COMPLETED_WEEK and flags and not flags[-1]:
            # In-progress week is not held against the subject yet
            flags = flags[:-1]

        streak = 0
        for met in reversed(flags):
            if not met:
                break
            streak += 1
        return streak

    @staticmethod
    def longest_streak(marks: pd.Series) -> int:
        if marks.empty or not marks.any():
            return 0
        run_ids = (~marks).cumsum()
        return int(marks.groupby(run_ids).sum().max())

    def _window_counts(self, marks: pd.Series, current_week: date):
        if self.window_weeks is None:
            return int(marks.sum()), len(marks)

        window_start = current_week - timedelta(weeks=self.window_weeks - 1)
        in_window = marks[[week >= window_start for week in marks.index]]
        weeks_with_entry = int(in_window.sum())

        if self.clip_to_first_entry:
            total_weeks = len(in_window)
        else:
            total_weeks = self.window_weeks
        return weeks_with_entry, total_weeks
