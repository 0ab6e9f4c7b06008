"""
Chart data for a subject's weight history: points with MA7 plus period statistics.
"""

from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from ..feature_manager import FeatureManager
from ..models import ChartData, ChartDataPoint, WeightMeasurement
from ..processing.moving_average import MovingAverageCalculator
from .statistics import WeightStatisticsEngine


class ChartBuilder:
    """Builds chart payloads from an ordered series of entries."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.feature_manager = self.config.get('feature_manager') or FeatureManager(self.config)
        self.moving_average = MovingAverageCalculator(self.config)
        self.statistics = WeightStatisticsEngine(self.config)

    def build(self, entries: Sequence[WeightMeasurement], goal_weight: Optional[float] = None) -> ChartData:
        ordered = sorted(entries, key=lambda e: e.measurement_date)
        weights = [e.weight for e in ordered]

        if self.feature_manager.is_enabled('moving_average'):
            ma7 = self.moving_average.series(weights)
        else:
            ma7 = list(weights)

        points: List[ChartDataPoint] = [
            ChartDataPoint(
                date=entry.measurement_date,
                weight=entry.weight,
                recorded_by=entry.recorded_by,
                is_outlier=entry.is_outlier,
                ma7=ma7[i],
            )
            for i, entry in enumerate(ordered)
        ]
        return ChartData(
            entries=points,
            statistics=self.statistics.summarize(ordered),
            goal_weight=goal_weight,
        )

    def to_frame(self, entries: Sequence[WeightMeasurement]) -> pd.DataFrame:
        """Chart points as a DataFrame (date, weight, ma7, is_outlier, recorded_by)."""
        chart = self.build(entries)
        columns = ['date', 'weight', 'ma7', 'is_outlier', 'recorded_by']
        if not chart.entries:
            return pd.DataFrame(columns=columns)
        return pd.DataFrame([
            {
                'date': point.date,
                'weight': point.weight,
                'ma7': point.ma7,
                'is_outlier': point.is_outlier,
                'recorded_by': point.recorded_by.value,
            }
            for point in chart.entries
        ], columns=columns)
