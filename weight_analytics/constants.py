"""
Constants for the weight tracking analytics engine.
Limits and thresholds that conformance tests target directly.
"""

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass
class ThresholdResult:
    """Result from threshold calculation with explicit units."""

    value: float
    unit: str
    metadata: Optional[Dict] = None

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        return {
            'value': self.value,
            'unit': self.unit,
            'metadata': self.metadata
        }


# Reference civil timezone for every date calculation
REFERENCE_TIMEZONE = 'Europe/Warsaw'

# Weight limits (decimal(4,1) column in the store)
WEIGHT_LIMITS = {
    'MIN_WEIGHT_KG': 30.0,
    'MAX_WEIGHT_KG': 250.0,
    'DECIMAL_PLACES': 1,
}

# Entry creation rules
ENTRY_LIMITS = {
    'BACKFILL_LIMIT_DAYS': 7,
    'MAX_NOTE_LENGTH': 200,
}

# Newest-first history pages
HISTORY_PAGE = {
    'DEFAULT_LIMIT': 30,
    'MAX_LIMIT': 100,
}

# Edit window: day D plus GRACE_DAYS following civil days, inclusive
EDIT_WINDOW = {
    'GRACE_DAYS': 1,
}

# Anomaly detection. Allowed change = MAX_DAILY_CHANGE_KG * max(days, MIN_ELAPSED_DAYS).
# With the defaults a jump above 3.0 kg within two days is flagged.
ANOMALY_DEFAULTS = {
    'MAX_DAILY_CHANGE_KG': 1.5,
    'MIN_ELAPSED_DAYS': 2,
}

MOVING_AVERAGE_WINDOW = 7

# Rounded change must be strictly beyond this to count as a trend
TREND_THRESHOLD_KG = 0.1

DAYS_PER_WEEK = 7

# Monday, as in date.weekday()
WEEK_START_DAY = 0

STREAK_MODE_CURRENT_WEEK = 'current_week'
STREAK_MODE_LAST_COMPLETED_WEEK = 'last_completed_week'
STREAK_MODES = (STREAK_MODE_CURRENT_WEEK, STREAK_MODE_LAST_COMPLETED_WEEK)

COMPLIANCE_DEFAULTS = {
    'window_weeks': 12,
    'streak_mode': STREAK_MODE_CURRENT_WEEK,
    'clip_to_first_entry': False,
}

CHART_PERIODS_DAYS = (30, 90)

ROUNDING_DECIMAL = 'decimal'
ROUNDING_FLOAT = 'float'
ROUNDING_STRATEGIES = (ROUNDING_DECIMAL, ROUNDING_FLOAT)
DEFAULT_ROUNDING_STRATEGY = ROUNDING_DECIMAL


def get_allowed_change(days_between: int,
                       max_daily_change_kg: float = ANOMALY_DEFAULTS['MAX_DAILY_CHANGE_KG'],
                       min_elapsed_days: int = ANOMALY_DEFAULTS['MIN_ELAPSED_DAYS']) -> ThresholdResult:
    """Maximum plausible absolute change between two measurements."""
    effective_days = max(abs(days_between), min_elapsed_days)
    return ThresholdResult(
        value=max_daily_change_kg * effective_days,
        unit='kg',
        metadata={
            'days_between': days_between,
            'effective_days': effective_days,
            'max_daily_change_kg': max_daily_change_kg,
        }
    )
