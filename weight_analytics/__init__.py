"""
Weight tracking analytics engine.

Per-subject body weight series with entry-time outlier flagging, an edit
window for patient-authored entries, MA7 chart data, period statistics
and weekly compliance streaks.
"""

from .analysis.chart import ChartBuilder
from .analysis.compliance import ComplianceStreakCalculator
from .analysis.statistics import WeightStatisticsEngine
from .clock import CalendarClock, fixed_clock
from .config_loader import ConfigLoader, default_config, load_config
from .database.database import InMemoryMeasurementStore, MeasurementStore
from .exceptions import (
    DuplicateMeasurementError,
    EditWindowExpiredError,
    NotFoundError,
    OutlierNotFlaggedError,
    PermissionDenied,
    SourceNotAllowedError,
    ValidationError,
    WeightTrackingError,
)
from .feature_manager import FeatureManager
from .models import (
    AnomalyWarning,
    ChartData,
    ChartDataPoint,
    ComplianceSummary,
    CreateResult,
    EntryPage,
    EntryPermissions,
    PatientOverview,
    RecordedBy,
    TrendDirection,
    WeightMeasurement,
    WeightStatistics,
)
from .processing.edit_window import EditWindowPolicy
from .processing.moving_average import MovingAverageCalculator
from .processing.outlier_detection import OutlierDetector
from .processing.policy import WeightEntryPolicy
from .processing.processor import WeightEntryProcessor
from .processing.validation import MeasurementValidator

__version__ = '0.1.0'

__all__ = [
    'AnomalyWarning',
    'CalendarClock',
    'ChartBuilder',
    'ChartData',
    'ChartDataPoint',
    'ComplianceStreakCalculator',
    'ComplianceSummary',
    'ConfigLoader',
    'CreateResult',
    'EntryPage',
    'DuplicateMeasurementError',
    'EditWindowExpiredError',
    'EditWindowPolicy',
    'EntryPermissions',
    'FeatureManager',
    'InMemoryMeasurementStore',
    'MeasurementStore',
    'MeasurementValidator',
    'MovingAverageCalculator',
    'NotFoundError',
    'OutlierDetector',
    'OutlierNotFlaggedError',
    'PatientOverview',
    'PermissionDenied',
    'RecordedBy',
    'SourceNotAllowedError',
    'TrendDirection',
    'ValidationError',
    'WeightEntryPolicy',
    'WeightEntryProcessor',
    'WeightMeasurement',
    'WeightStatistics',
    'WeightStatisticsEngine',
    'WeightTrackingError',
    'default_config',
    'fixed_clock',
    'load_config',
]
