"""
Caller-facing permission checks for existing weight entries.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from ..clock import CalendarClock, clock_from_config
from ..exceptions import EditWindowExpiredError, OutlierNotFlaggedError, SourceNotAllowedError
from ..feature_manager import FeatureManager
from ..models import EntryPermissions, RecordedBy, WeightMeasurement
from .edit_window import EditWindowPolicy


class WeightEntryPolicy:
    """
    Combines the edit window with entry provenance and outlier flags.

    - mutate (edit/delete): patient-authored and inside the edit window
    - toggle outlier confirmation: entry is flagged, no time limit
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 clock: Optional[CalendarClock] = None,
                 edit_window: Optional[EditWindowPolicy] = None):
        self.config = config or {}
        self.clock = clock or clock_from_config(self.config)
        self.edit_window = edit_window or EditWindowPolicy(self.config, self.clock)
        self.feature_manager = self.config.get('feature_manager') or FeatureManager(self.config)

    def _within_window(self, entry: WeightMeasurement, now: datetime) -> bool:
        if not self.feature_manager.is_enabled('edit_window'):
            return True
        return self.edit_window.is_mutable(entry.measurement_date, now)

    def can_mutate(self, entry: WeightMeasurement, now: Optional[datetime] = None) -> bool:
        if now is None:
            now = self.clock.now()
        return entry.recorded_by == RecordedBy.PATIENT and self._within_window(entry, now)

    def can_toggle_outlier_confirmation(self, entry: WeightMeasurement) -> bool:
        if not self.feature_manager.is_enabled('outlier_confirmation'):
            return False
        return entry.is_outlier is True

    def permissions(self, entry: WeightMeasurement, now: Optional[datetime] = None) -> EntryPermissions:
        return EntryPermissions(
            can_mutate=self.can_mutate(entry, now),
            can_toggle_outlier_confirmation=self.can_toggle_outlier_confirmation(entry),
            edit_deadline=self.edit_window.deadline(entry.measurement_date),
        )

    def require_mutable(self, entry: WeightMeasurement, now: Optional[datetime] = None,
                        action: str = 'edit') -> None:
        """Raise the specific PermissionDenied subclass when mutation is refused."""
        if now is None:
            now = self.clock.now()
        if entry.recorded_by != RecordedBy.PATIENT:
            raise SourceNotAllowedError(action, entry.id, entry.recorded_by.value)
        if not self._within_window(entry, now):
            raise EditWindowExpiredError(action, entry.id, self.edit_window.deadline(entry.measurement_date))

    def require_confirmable(self, entry: WeightMeasurement) -> None:
        if not self.can_toggle_outlier_confirmation(entry):
            raise OutlierNotFlaggedError(entry.id)
