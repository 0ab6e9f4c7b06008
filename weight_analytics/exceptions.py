"""
Custom exceptions for the weight tracking engine.

Every error carries the values that caused it so API layers can render
a precise message without parsing strings.
"""

from typing import Any, Dict, Optional


class WeightTrackingError(Exception):
    """Base class for all engine errors."""

    code = 'weight_tracking_error'

    def to_dict(self) -> Dict[str, Any]:
        return {'code': self.code, 'message': str(self)}


class ValidationError(WeightTrackingError):
    """
    Raised when an input value breaks a creation or update rule.

    Covers weight range/precision, measurement date window, note length
    and date range filters.
    """

    code = 'validation_error'

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field} {value!r}: {reason}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'field': self.field,
            'value': self.value if isinstance(self.value, (int, float, str, bool)) or self.value is None else str(self.value),
            'reason': self.reason,
        }


class DuplicateMeasurementError(WeightTrackingError):
    """Raised by the store when (subject, measurement date) already exists."""

    code = 'duplicate_measurement'

    def __init__(self, subject_id: str, measurement_date):
        self.subject_id = subject_id
        self.measurement_date = measurement_date
        super().__init__(
            f"Measurement for subject {subject_id} on {measurement_date.isoformat()} already exists"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'subject_id': self.subject_id,
            'measurement_date': self.measurement_date.isoformat(),
        }


class NotFoundError(WeightTrackingError):
    """Raised when an entry does not exist or belongs to another subject."""

    code = 'not_found'

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Weight entry {entry_id} not found")

    def to_dict(self) -> Dict[str, Any]:
        return {'code': self.code, 'entry_id': self.entry_id}


class PermissionDenied(WeightTrackingError):
    """Raised when a policy check refuses a mutation."""

    code = 'permission_denied'

    def __init__(self, action: str, entry_id: Optional[str], reason: str):
        self.action = action
        self.entry_id = entry_id
        self.reason = reason
        super().__init__(f"Cannot {action} entry {entry_id}: {reason}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'action': self.action,
            'entry_id': self.entry_id,
            'reason': self.reason,
        }


class EditWindowExpiredError(PermissionDenied):
    """The entry's edit window closed before the request."""

    code = 'edit_window_expired'

    def __init__(self, action: str, entry_id: Optional[str], deadline):
        self.deadline = deadline
        super().__init__(action, entry_id, f"edit window closed at {deadline.isoformat()}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['deadline'] = self.deadline.isoformat()
        return data


class SourceNotAllowedError(PermissionDenied):
    """Only patient-authored entries are patient-mutable."""

    code = 'source_not_allowed'

    def __init__(self, action: str, entry_id: Optional[str], recorded_by: str):
        self.recorded_by = recorded_by
        super().__init__(action, entry_id, f"entry was recorded by {recorded_by}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['recorded_by'] = self.recorded_by
        return data


class OutlierNotFlaggedError(PermissionDenied):
    """Confirmation toggle requested on an entry that is not an outlier."""

    code = 'outlier_not_flagged'

    def __init__(self, entry_id: Optional[str]):
        super().__init__('confirm outlier on', entry_id, "entry is not flagged as an outlier")
