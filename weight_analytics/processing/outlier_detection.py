"""
Entry-time outlier detection.

A new measurement is compared with the subject's most recent measurement
dated before it. The allowed absolute change grows linearly with the
calendar days between the two dates, with a floor on the number of days:

    allowed = max_daily_change_kg * max(days_between, min_elapsed_days)

The decision is made once, at creation, and stored on the entry. Later
inserts or deletes never re-run it for existing entries.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Set

from ..constants import ANOMALY_DEFAULTS, DEFAULT_ROUNDING_STRATEGY, get_allowed_change
from ..feature_manager import FeatureManager
from ..models import AnomalyWarning, OutlierResult, WeightMeasurement
from ..rounding import as_number, round1, subtract

logger = logging.getLogger(__name__)


class OutlierDetector:
    """
    Flags implausible jumps between consecutive measurements.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize outlier detector with configuration.

        Args:
            config: Configuration dict; thresholds come from config['anomaly']
        """
        self.config = config or {}

        self.feature_manager = self.config.get('feature_manager')
        if not self.feature_manager:
            self.feature_manager = FeatureManager(self.config)

        anomaly = self.config.get('anomaly', {})
        self.max_daily_change_kg = anomaly.get('max_daily_change_kg', ANOMALY_DEFAULTS['MAX_DAILY_CHANGE_KG'])
        self.min_elapsed_days = anomaly.get('min_elapsed_days', ANOMALY_DEFAULTS['MIN_ELAPSED_DAYS'])
        self.rounding = self.config.get('rounding', {}).get('strategy', DEFAULT_ROUNDING_STRATEGY)

    def allowed_change(self, days_between: int) -> float:
        """Largest absolute change (kg) that is still plausible after ``days_between`` days."""
        return get_allowed_change(days_between, self.max_daily_change_kg, self.min_elapsed_days).value

    def is_implausible(self, new_weight: float, previous_weight: float, days_between: int) -> bool:
        delta = abs(subtract(new_weight, previous_weight, self.rounding))
        return delta > as_number(self.allowed_change(days_between), self.rounding)

    def evaluate(self, new_weight: float, new_date: date,
                 previous: Optional[WeightMeasurement]) -> OutlierResult:
        """
        Decide whether a new entry is an outlier.

        Args:
            new_weight: Weight of the entry being created
            new_date: Its measurement date
            previous: Latest existing entry with an earlier date, or None

        Returns:
            OutlierResult with a warning payload when flagged
        """
        if not self.feature_manager.is_enabled('outlier_detection'):
            return OutlierResult(is_outlier=False)

        if previous is None:
            return OutlierResult(is_outlier=False)

        days_between = (new_date - previous.measurement_date).days
        if days_between < 0:
            raise ValueError(
                f"Previous entry {previous.measurement_date} is dated after {new_date}"
            )

        allowed = self.allowed_change(days_between)
        if not self.is_implausible(new_weight, previous.weight, days_between):
            return OutlierResult(is_outlier=False, allowed_change=allowed)

        change = round1(subtract(new_weight, previous.weight, self.rounding), self.rounding)
        warning = AnomalyWarning(
            previous_weight=previous.weight,
            previous_date=previous.measurement_date,
            change=change,
            days_between=days_between,
            message=(
                f"Unusual weight change of {abs(change):.1f} kg over {days_between} day(s) "
                f"(allowed {allowed:.1f} kg). Confirm the measurement if it is correct."
            ),
        )
        logger.info(
            f"Outlier flagged: {previous.weight} -> {new_weight} kg "
            f"over {days_between} day(s), allowed {allowed:.1f} kg"
        )
        return OutlierResult(is_outlier=True, warning=warning, allowed_change=allowed)

    def evaluate_series(self, entries: Sequence[WeightMeasurement]) -> Set[int]:
        """
        Re-check an ordered series against each entry's predecessor.

        For reports only: stored ``is_outlier`` flags are never rewritten.

        Returns:
            Set of indices that would be flagged
        """
        if len(entries) < 2:
            return set()

        ordered: List[WeightMeasurement] = sorted(entries, key=lambda e: e.measurement_date)
        outliers = set()
        for i in range(1, len(ordered)):
            result = self.evaluate(ordered[i].weight, ordered[i].measurement_date, ordered[i - 1])
            if result.is_outlier:
                outliers.add(i)
        return outliers
