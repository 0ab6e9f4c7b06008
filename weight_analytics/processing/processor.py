"""
Weight entry processor.
Thin orchestration around the store: validation, outlier flagging on
create, policy gates on update/delete/confirm, and read models.
"""

import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Optional

from ..analysis.chart import ChartBuilder
from ..analysis.compliance import ComplianceStreakCalculator
from ..clock import CalendarClock, clock_from_config
from ..config_loader import default_config
from ..constants import CHART_PERIODS_DAYS, DEFAULT_ROUNDING_STRATEGY
from ..database.database import MeasurementStore, get_store
from ..exceptions import DuplicateMeasurementError, NotFoundError, ValidationError
from ..feature_manager import FeatureManager
from ..logging_utils import PerformanceTimer, processor_logger
from ..models import (
    ChartData,
    CreateResult,
    EntryPage,
    EntryPermissions,
    PatientOverview,
    RecordedBy,
    WeightMeasurement,
)
from ..rounding import round1
from .outlier_detection import OutlierDetector
from .policy import WeightEntryPolicy
from .validation import MeasurementValidator

logger = logging.getLogger(__name__)

_UNSET = object()


def _new_id() -> str:
    return str(uuid.uuid4())


class WeightEntryProcessor:
    """
    Entry lifecycle for one store.

    The store must give a consistent read of the previous entry during
    create; ``InMemoryMeasurementStore.transaction`` does that here.
    """

    def __init__(self, store: Optional[MeasurementStore] = None,
                 config: Optional[Dict[str, Any]] = None,
                 clock: Optional[CalendarClock] = None,
                 id_factory: Callable[[], str] = _new_id):
        self.config = config if config is not None else default_config()
        self.store = store if store is not None else get_store()
        self.clock = clock or clock_from_config(self.config)
        self.id_factory = id_factory

        if not self.config.get('feature_manager'):
            self.config = {**self.config, 'feature_manager': FeatureManager(self.config)}
        self.feature_manager = self.config['feature_manager']
        self.rounding = self.config.get('rounding', {}).get('strategy', DEFAULT_ROUNDING_STRATEGY)
        self.metrics_enabled = self.feature_manager.is_enabled('performance_metrics')

        self.validator = MeasurementValidator(self.config, self.clock)
        self.outlier_detector = OutlierDetector(self.config)
        self.policy = WeightEntryPolicy(self.config, self.clock)
        self.chart_builder = ChartBuilder(self.config)
        self.compliance = ComplianceStreakCalculator(self.config, self.clock)

    def _timer(self, operation: str) -> PerformanceTimer:
        return PerformanceTimer(processor_logger, operation, enabled=self.metrics_enabled)

    def create_entry(self, subject_id: str, weight: Any, measurement_date: Any,
                     recorded_by: RecordedBy = RecordedBy.PATIENT,
                     note: Optional[str] = None,
                     now: Optional[datetime] = None) -> CreateResult:
        """
        Create a new entry.

        Flow:
            1. Validate weight, date window and note
            2. Reject duplicates for (subject, date)
            3. Flag outliers against the latest earlier entry
            4. Derive is_backfill and append

        Raises:
            ValidationError, DuplicateMeasurementError
        """
        now = now or self.clock.now()
        try:
            recorded_by = RecordedBy(recorded_by)
        except ValueError:
            raise ValidationError('recorded_by', recorded_by, "must be 'patient' or 'caregiver'")

        with self._timer('create_entry'):
            weight = self.validator.validate_weight(weight)
            measurement_date = self.validator.validate_measurement_date(measurement_date, recorded_by, now)
            note = self.validator.validate_note(note)

            with self._transaction():
                if self.store.exists_on(subject_id, measurement_date):
                    raise DuplicateMeasurementError(subject_id, measurement_date)

                previous = self.store.find_latest_before(subject_id, measurement_date)
                outlier = self.outlier_detector.evaluate(weight, measurement_date, previous)

                entry = WeightMeasurement(
                    id=self.id_factory(),
                    subject_id=subject_id,
                    weight=weight,
                    measurement_date=measurement_date,
                    recorded_by=recorded_by,
                    is_backfill=self.validator.is_backfill(measurement_date, now),
                    is_outlier=outlier.is_outlier,
                    note=note,
                    created_at=now,
                    updated_at=now,
                )
                entry = self.store.append_measurement(entry)

        logger.info(
            f"Created entry {entry.id} for {subject_id} on {measurement_date} "
            f"(backfill={entry.is_backfill}, outlier={entry.is_outlier})"
        )
        return CreateResult(entry=entry, warnings=outlier.warnings)

    def update_entry(self, entry_id: str, subject_id: str, weight: Any = _UNSET,
                     note: Any = _UNSET, now: Optional[datetime] = None) -> WeightMeasurement:
        """
        Patient edit of weight and/or note inside the edit window.

        is_outlier is write-once and is not recomputed here.
        """
        now = now or self.clock.now()
        with self._timer('update_entry'):
            entry = self._get_owned(entry_id, subject_id)
            self.policy.require_mutable(entry, now, action='edit')

            changes: Dict[str, Any] = {}
            if weight is not _UNSET:
                changes['weight'] = round1(self.validator.validate_weight(weight), self.rounding)
            if note is not _UNSET:
                changes['note'] = self.validator.validate_note(note)
            if not changes:
                return entry

            updated = self.store.update(entry.with_changes(updated_at=now, **changes))

        logger.info(f"Updated entry {entry_id}: {sorted(changes)}")
        return updated

    def delete_entry(self, entry_id: str, subject_id: str, now: Optional[datetime] = None) -> bool:
        now = now or self.clock.now()
        with self._timer('delete_entry'):
            entry = self._get_owned(entry_id, subject_id)
            self.policy.require_mutable(entry, now, action='delete')
            deleted = self.store.delete(entry_id)
        logger.info(f"Deleted entry {entry_id} for {subject_id}")
        return deleted

    def confirm_outlier(self, entry_id: str, subject_id: str, confirmed: bool,
                        now: Optional[datetime] = None) -> WeightMeasurement:
        """Set outlier_confirmed; allowed at any time, idempotent."""
        if not isinstance(confirmed, bool):
            raise ValidationError('confirmed', confirmed, "must be true or false")

        now = now or self.clock.now()
        entry = self._get_owned(entry_id, subject_id)
        self.policy.require_confirmable(entry)

        if entry.outlier_confirmed is confirmed:
            return entry

        updated = self.store.update(entry.with_changes(outlier_confirmed=confirmed, updated_at=now))
        logger.info(f"Outlier confirmation for {entry_id} set to {confirmed}")
        return updated

    def permissions(self, entry_id: str, subject_id: str, now: Optional[datetime] = None) -> EntryPermissions:
        return self.policy.permissions(self._get_owned(entry_id, subject_id), now)

    def list_entries(self, subject_id: str, start: Any = None, end: Any = None,
                     limit: Optional[int] = None, cursor: Any = None) -> EntryPage:
        """
        One page of history, newest first.

        Pass the returned ``next_cursor`` back as ``cursor`` to get the
        following page. Measurement dates are unique per subject, so the
        date alone is a stable keyset cursor.
        """
        start_date, end_date = self.validator.validate_date_range(start, end)
        limit = self.validator.validate_limit(limit)
        cursor_date = self.validator.validate_cursor(cursor)

        rows = self.store.list_ordered_by_date(
            subject_id, start_date, end_date,
            limit=limit + 1, cursor=cursor_date, descending=True,
        )
        has_more = len(rows) > limit
        entries = rows[:limit]
        next_cursor = entries[-1].measurement_date if has_more and entries else None
        return EntryPage(entries=entries, has_more=has_more, next_cursor=next_cursor)

    def chart(self, subject_id: str, period_days: int = 30, now: Optional[datetime] = None) -> ChartData:
        """Chart for the last ``period_days`` civil days including today."""
        if period_days not in CHART_PERIODS_DAYS:
            raise ValidationError('period_days', period_days, f"must be one of {CHART_PERIODS_DAYS}")

        today = self.clock.today(now or self.clock.now())
        start = today - timedelta(days=period_days - 1)
        with self._timer('build_chart'):
            entries = self.store.list_ordered_by_date(subject_id, start, today)
            return self.chart_builder.build(entries)

    def overview(self, subject_id: str, now: Optional[datetime] = None) -> PatientOverview:
        now = now or self.clock.now()
        today = self.clock.today(now)
        entries = self.store.list_ordered_by_date(subject_id, end=today)

        if self.feature_manager.is_enabled('compliance_tracking'):
            compliance = self.compliance.compute(entries, now)
        else:
            compliance = self.compliance.compute([], now)

        last_entry_date: Optional[date] = entries[-1].measurement_date if entries else None
        return PatientOverview(
            subject_id=subject_id,
            total_entries=len(entries),
            last_entry_date=last_entry_date,
            compliance=compliance,
        )

    def _get_owned(self, entry_id: str, subject_id: str) -> WeightMeasurement:
        entry = self.store.get(entry_id)
        if entry is None or entry.subject_id != subject_id:
            raise NotFoundError(entry_id)
        return entry

    def _transaction(self):
        transaction = getattr(self.store, 'transaction', None)
        if transaction is None:
            return _NullTransaction()
        return transaction()


class _NullTransaction:
    def __enter__(self):
        return None

    def __exit__(self, exc_type, exc_val, exc_tb):
        return False
