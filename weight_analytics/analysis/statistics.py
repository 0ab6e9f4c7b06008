"""
Weight Statistics Module

Period summary for a chronologically ordered series: start/end weight,
absolute and percentage change, normalized weekly rate and trend.
"""

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging

from ..constants import DAYS_PER_WEEK, DEFAULT_ROUNDING_STRATEGY, TREND_THRESHOLD_KG
from ..logging_utils import analytics_logger
from ..models import TrendDirection, WeightMeasurement, WeightStatistics
from ..rounding import as_number, round1, subtract


def _point(entry: Any) -> Tuple[float, date]:
    """Accept WeightMeasurement, dict or (weight, date) tuple."""
    if isinstance(entry, WeightMeasurement):
        return entry.weight, entry.measurement_date
    if isinstance(entry, dict):
        return entry['weight'], entry['measurement_date']
    weight, measurement_date = entry
    return weight, measurement_date


def _as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


class WeightStatisticsEngine:
    """Calculate period statistics for weight charts"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.rounding = self.config.get('rounding', {}).get('strategy', DEFAULT_ROUNDING_STRATEGY)
        self.logger = logging.getLogger(__name__)

    def summarize(self, entries: Iterable[Any]) -> WeightStatistics:
        """
        Summarize an ordered series.

        Edge cases:
            - no entries: every number 0, trend stable
            - one entry: start = end = weight, change 0, trend stable
            - first and last on the same day: weekly change 0

        Args:
            entries: ordered by measurement date ascending; unordered input
                is sorted and logged

        Returns:
            WeightStatistics
        """
        points: List[Tuple[float, date]] = [_point(e) for e in entries]
        if any(_as_date(a[1]) > _as_date(b[1]) for a, b in zip(points, points[1:])):
            analytics_logger.warning("Series not ordered by measurement date, sorting", count=len(points))
            points.sort(key=lambda p: _as_date(p[1]))

        if not points:
            return WeightStatistics()

        if len(points) == 1:
            weight = float(points[0][0])
            return WeightStatistics(start_weight=weight, end_weight=weight)

        start_weight, first_date = points[0]
        end_weight, last_date = points[-1]

        change = round1(subtract(end_weight, start_weight, self.rounding), self.rounding)
        change_percent = self._change_percent(change, start_weight)

        days_between = (_as_date(last_date) - _as_date(first_date)).days
        avg_weekly_change = 0.0
        if days_between > 0:
            daily_change = as_number(change, self.rounding) / days_between
            avg_weekly_change = round1(daily_change * DAYS_PER_WEEK, self.rounding)

        stats = WeightStatistics(
            start_weight=float(start_weight),
            end_weight=float(end_weight),
            change=change,
            change_percent=change_percent,
            avg_weekly_change=avg_weekly_change,
            trend_direction=self.trend_direction(change),
        )
        self.logger.debug(f"Summarized {len(points)} entries over {days_between} days: {stats}")
        return stats

    def _change_percent(self, change: float, start_weight: float) -> float:
        if start_weight <= 0:
            return 0.0
        ratio = as_number(change, self.rounding) / as_number(start_weight, self.rounding)
        return round1(ratio * 100, self.rounding)

    @staticmethod
    def trend_direction(change: float) -> TrendDirection:
        """Classify an already rounded change; exactly +/-0.1 is stable."""
        if change > TREND_THRESHOLD_KG:
            return TrendDirection.INCREASING
        if change < -TREND_THRESHOLD_KG:
            return TrendDirection.DECREASING
        return TrendDirection.STABLE
