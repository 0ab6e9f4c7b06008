"""
Data models for weight tracking.

WeightMeasurement is immutable; administrative changes produce a new
record via ``dataclasses.replace``. Flags are independent fields, not a
state machine.
"""

from dataclasses import dataclass, field, asdict, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class RecordedBy(str, Enum):
    """Who authored a measurement."""

    PATIENT = 'patient'
    CAREGIVER = 'caregiver'


class TrendDirection(str, Enum):
    INCREASING = 'increasing'
    DECREASING = 'decreasing'
    STABLE = 'stable'


def _iso(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass(frozen=True)
class WeightMeasurement:
    """A single weight entry for a subject."""

    id: str
    subject_id: str
    weight: float
    measurement_date: date
    recorded_by: RecordedBy = RecordedBy.PATIENT
    is_backfill: bool = False
    is_outlier: bool = False
    outlier_confirmed: Optional[bool] = None
    note: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not isinstance(self.recorded_by, RecordedBy):
            object.__setattr__(self, 'recorded_by', RecordedBy(self.recorded_by))
        if not self.is_outlier and self.outlier_confirmed is not None:
            raise ValueError("outlier_confirmed can only be set on outlier entries")

    def with_changes(self, **changes) -> 'WeightMeasurement':
        """Copy with administrative changes; is_outlier and is_backfill stay put."""
        for locked in ('is_outlier', 'is_backfill', 'id', 'subject_id', 'measurement_date', 'recorded_by'):
            if locked in changes:
                raise ValueError(f"{locked} cannot be changed after creation")
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {key: _iso(value) for key, value in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WeightMeasurement':
        values = dict(data)
        if isinstance(values.get('measurement_date'), str):
            values['measurement_date'] = date.fromisoformat(values['measurement_date'])
        for key in ('created_at', 'updated_at'):
            if isinstance(values.get(key), str):
                values[key] = datetime.fromisoformat(values[key])
        return cls(**values)


@dataclass(frozen=True)
class AnomalyWarning:
    """Payload returned to the caller when a new entry is flagged."""

    previous_weight: float
    previous_date: date
    change: float
    days_between: int
    message: str = ''
    type: str = 'anomaly_detected'

    def to_dict(self) -> Dict[str, Any]:
        return {key: _iso(value) for key, value in asdict(self).items()}


@dataclass(frozen=True)
class OutlierResult:
    is_outlier: bool
    warning: Optional[AnomalyWarning] = None
    allowed_change: Optional[float] = None

    @property
    def warnings(self) -> List[AnomalyWarning]:
        return [self.warning] if self.warning else []


@dataclass(frozen=True)
class WeightStatistics:
    start_weight: float = 0.0
    end_weight: float = 0.0
    change: float = 0.0
    change_percent: float = 0.0
    avg_weekly_change: float = 0.0
    trend_direction: TrendDirection = TrendDirection.STABLE

    def to_dict(self) -> Dict[str, Any]:
        return {key: _iso(value) for key, value in asdict(self).items()}


@dataclass(frozen=True)
class ComplianceSummary:
    weekly_obligation_met: bool = False
    current_streak: int = 0
    longest_streak: int = 0
    weekly_compliance_rate: float = 0.0
    weeks_with_entry: int = 0
    total_weeks: int = 0
    last_entry_date: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {key: _iso(value) for key, value in asdict(self).items()}


@dataclass(frozen=True)
class EntryPermissions:
    can_mutate: bool
    can_toggle_outlier_confirmation: bool
    edit_deadline: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {key: _iso(value) for key, value in asdict(self).items()}


@dataclass(frozen=True)
class ChartDataPoint:
    date: date
    weight: float
    recorded_by: RecordedBy
    is_outlier: bool
    ma7: float

    def to_dict(self) -> Dict[str, Any]:
        return {key: _iso(value) for key, value in asdict(self).items()}


@dataclass
class ChartData:
    entries: List[ChartDataPoint] = field(default_factory=list)
    statistics: WeightStatistics = field(default_factory=WeightStatistics)
    goal_weight: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'entries': [point.to_dict() for point in self.entries],
            'statistics': self.statistics.to_dict(),
            'goal_weight': self.goal_weight,
        }


@dataclass
class CreateResult:
    entry: WeightMeasurement
    warnings: List[AnomalyWarning] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'entry': self.entry.to_dict(),
            'warnings': [w.to_dict() for w in self.warnings],
        }


@dataclass
class PatientOverview:
    subject_id: str
    total_entries: int
    last_entry_date: Optional[date]
    compliance: ComplianceSummary

    def to_dict(self) -> Dict[str, Any]:
        return {
            'subject_id': self.subject_id,
            'total_entries': self.total_entries,
            'last_entry_date': _iso(self.last_entry_date),
            'compliance': self.compliance.to_dict(),
        }


@dataclass
class EntryPage:
    """One page of history, newest first. ``next_cursor`` is None on the last page."""
    entries: List[WeightMeasurement] = field(default_factory=list)
    has_more: bool = False
    next_cursor: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'entries': [entry.to_dict() for entry in self.entries],
            'pagination': {
                'has_more': self.has_more,
                'next_cursor': _iso(self.next_cursor),
            },
        }
