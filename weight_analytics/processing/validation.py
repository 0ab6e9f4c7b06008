"""
Input validation for the entry creation and update paths.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Tuple

from ..clock import CalendarClock, clock_from_config
from ..constants import ENTRY_LIMITS, HISTORY_PAGE, WEIGHT_LIMITS
from ..exceptions import ValidationError
from ..feature_manager import FeatureManager
from ..logging_utils import validation_logger
from ..models import RecordedBy


class MeasurementValidator:
    """Validates weight, measurement date, note and date range inputs."""

    MIN_WEIGHT_KG = WEIGHT_LIMITS['MIN_WEIGHT_KG']
    MAX_WEIGHT_KG = WEIGHT_LIMITS['MAX_WEIGHT_KG']
    DECIMAL_PLACES = WEIGHT_LIMITS['DECIMAL_PLACES']
    DEFAULT_PAGE_LIMIT = HISTORY_PAGE['DEFAULT_LIMIT']
    MAX_PAGE_LIMIT = HISTORY_PAGE['MAX_LIMIT']

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 clock: Optional[CalendarClock] = None):
        self.config = config or {}
        self.clock = clock or clock_from_config(self.config)
        self.feature_manager = self.config.get('feature_manager') or FeatureManager(self.config)

        entry = self.config.get('entry', {})
        self.backfill_limit_days = entry.get('backfill_limit_days', ENTRY_LIMITS['BACKFILL_LIMIT_DAYS'])
        self.max_note_length = entry.get('max_note_length', ENTRY_LIMITS['MAX_NOTE_LENGTH'])

    def validate_weight(self, weight: Any) -> float:
        """Range and precision check; returns the weight as a float."""
        if isinstance(weight, bool) or not isinstance(weight, (int, float, Decimal, str)):
            self._reject('weight', weight, "must be a number")

        try:
            value = Decimal(str(weight).strip())
        except InvalidOperation:
            self._reject('weight', weight, "must be a number")

        if not value.is_finite():
            self._reject('weight', weight, "must be a finite number")

        if value < Decimal(str(self.MIN_WEIGHT_KG)) or value > Decimal(str(self.MAX_WEIGHT_KG)):
            self._reject('weight', weight,
                         f"must be between {self.MIN_WEIGHT_KG} and {self.MAX_WEIGHT_KG} kg")

        if -value.normalize().as_tuple().exponent > self.DECIMAL_PLACES:
            self._reject('weight', weight,
                         f"may have at most {self.DECIMAL_PLACES} decimal place")

        return float(value)

    def validate_measurement_date(self, measurement_date: Any, recorded_by: RecordedBy,
                                  now: Optional[datetime] = None) -> date:
        """
        Future dates are always rejected. Patients may backfill at most
        ``backfill_limit_days`` civil days; caregiver limits are enforced
        by the authorization layer.
        """
        measurement_date = self.parse_date('measurement_date', measurement_date)
        today = self.clock.today(now if now is not None else self.clock.now())
        days_back = (today - measurement_date).days

        if days_back < 0:
            self._reject('measurement_date', measurement_date, "cannot be in the future")

        if (recorded_by == RecordedBy.PATIENT
                and self.feature_manager.is_enabled('backfill_limit')
                and days_back > self.backfill_limit_days):
            self._reject('measurement_date', measurement_date,
                         f"can be at most {self.backfill_limit_days} days in the past "
                         f"(is {days_back} days)")

        return measurement_date

    def validate_note(self, note: Optional[str]) -> Optional[str]:
        """Strip the note; empty notes become None."""
        if note is None:
            return None
        if not isinstance(note, str):
            self._reject('note', note, "must be text")
        note = note.strip()
        if len(note) > self.max_note_length:
            self._reject('note', len(note), f"may have at most {self.max_note_length} characters")
        return note or None

    def validate_date_range(self, start: Any, end: Any) -> Tuple[Optional[date], Optional[date]]:
        """Optional history filter bounds; start must not be after end."""
        start_date = self.parse_date('start_date', start) if start is not None else None
        end_date = self.parse_date('end_date', end) if end is not None else None
        if start_date and end_date and start_date > end_date:
            self._reject('end_date', end_date, "must not be before start_date")
        return start_date, end_date

    def validate_limit(self, limit: Any) -> int:
        """Page size; None means the default."""
        if limit is None:
            return self.DEFAULT_PAGE_LIMIT
        if isinstance(limit, bool) or not isinstance(limit, int):
            self._reject('limit', limit, "must be an integer")
        if limit < 1 or limit > self.MAX_PAGE_LIMIT:
            self._reject('limit', limit, f"must be between 1 and {self.MAX_PAGE_LIMIT}")
        return limit

    def validate_cursor(self, cursor: Any) -> Optional[date]:
        """The ``next_cursor`` of a previous page, as a date or ISO string."""
        if cursor is None:
            return None
        return self.parse_date('cursor', cursor)

    def is_backfill(self, measurement_date: date, created_at: datetime) -> bool:
        return measurement_date != self.clock.today(created_at)

    def parse_date(self, field: str, value: Any) -> date:
        if isinstance(value, datetime):
            return self.clock.today(value)
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return date.fromisoformat(value.strip())
            except ValueError:
                self._reject(field, value, "must be an ISO date (YYYY-MM-DD)")
        self._reject(field, value, "must be a date")

    @staticmethod
    def _reject(field: str, value: Any, reason: str):
        validation_logger.warning("Validation failed", field=field, value=str(value), reason=reason)
        raise ValidationError(field, value, reason)


def is_valid_weight(weight: Any) -> bool:
    """Convenience predicate for callers that only need a yes/no."""
    try:
        MeasurementValidator().validate_weight(weight)
    except ValidationError:
        return False
    return True
