"""
Integration tests for the entry processor against the in-memory store.

The processor clock is frozen at noon on Wednesday 2024-03-06 (Warsaw).
"""

import pytest
from datetime import date, timedelta

from weight_analytics.exceptions import (
    DuplicateMeasurementError,
    EditWindowExpiredError,
    NotFoundError,
    OutlierNotFlaggedError,
    SourceNotAllowedError,
    ValidationError,
)
from weight_analytics.models import RecordedBy, TrendDirection
from weight_analytics.processing.processor import WeightEntryProcessor

TODAY = date(2024, 3, 6)
SUBJECT = "subject-1"


def days_ago(n):
    return TODAY - timedelta(days=n)


@pytest.mark.integration
class TestCreate:
    def test_create_today(self, processor, store, now_warsaw):
        result = processor.create_entry(SUBJECT, 72.4, TODAY, note=" morning ")
        entry = result.entry
        assert entry.id == "id-1"
        assert entry.weight == 72.4
        assert entry.is_backfill is False
        assert entry.is_outlier is False
        assert entry.outlier_confirmed is None
        assert entry.note == "morning"
        assert entry.created_at == now_warsaw
        assert result.warnings == []
        assert store.count(SUBJECT) == 1

    def test_backfill_flag(self, processor):
        entry = processor.create_entry(SUBJECT, 72.4, days_ago(2)).entry
        assert entry.is_backfill is True

    def test_duplicate_date_rejected(self, processor, store):
        processor.create_entry(SUBJECT, 72.4, TODAY)
        with pytest.raises(DuplicateMeasurementError) as exc_info:
            processor.create_entry(SUBJECT, 72.6, TODAY)
        assert exc_info.value.to_dict()["measurement_date"] == "2024-03-06"
        assert store.count(SUBJECT) == 1

    def test_same_date_other_subject_allowed(self, processor):
        processor.create_entry(SUBJECT, 72.4, TODAY)
        processor.create_entry("subject-2", 72.4, TODAY)

    def test_patient_backfill_limit(self, processor):
        with pytest.raises(ValidationError):
            processor.create_entry(SUBJECT, 72.4, days_ago(8))

    def test_caregiver_backfill(self, processor):
        entry = processor.create_entry(SUBJECT, 72.4, days_ago(30), recorded_by="caregiver").entry
        assert entry.recorded_by == RecordedBy.CAREGIVER
        assert entry.is_backfill is True

    def test_unknown_recorded_by(self, processor):
        with pytest.raises(ValidationError):
            processor.create_entry(SUBJECT, 72.4, TODAY, recorded_by="nurse")

    def test_invalid_weight_not_stored(self, processor, store):
        with pytest.raises(ValidationError):
            processor.create_entry(SUBJECT, 72.45, TODAY)
        assert store.count(SUBJECT) == 0


@pytest.mark.critical
class TestOutlierFlagging:
    def test_jump_flagged_with_warning(self, processor):
        processor.create_entry(SUBJECT, 80.0, days_ago(1))
        result = processor.create_entry(SUBJECT, 84.0, TODAY)
        assert result.entry.is_outlier is True
        assert len(result.warnings) == 1
        warning = result.warnings[0]
        assert warning.previous_weight == 80.0
        assert warning.previous_date == days_ago(1)
        assert warning.change == 4.0
        assert result.to_dict()["warnings"][0]["type"] == "anomaly_detected"

    def test_first_entry_never_flagged(self, processor):
        assert processor.create_entry(SUBJECT, 140.0, TODAY).entry.is_outlier is False

    def test_compares_with_latest_earlier_entry(self, processor):
        processor.create_entry(SUBJECT, 80.0, TODAY)
        # Backfilled before every existing entry: nothing earlier to compare with
        backfilled = processor.create_entry(SUBJECT, 90.0, days_ago(3)).entry
        assert backfilled.is_outlier is False

    def test_existing_flags_not_recomputed(self, processor, store):
        first = processor.create_entry(SUBJECT, 80.0, days_ago(4)).entry
        processor.create_entry(SUBJECT, 80.5, TODAY)
        processor.create_entry(SUBJECT, 90.0, days_ago(2))
        assert store.get(first.id).is_outlier is False
        assert [e.is_outlier for e in store.list_ordered_by_date(SUBJECT)] == [False, True, False]


class TestUpdateAndDelete:
    def test_update_inside_window(self, processor, now_warsaw):
        entry = processor.create_entry(SUBJECT, 72.4, days_ago(1), note="old").entry
        updated = processor.update_entry(entry.id, SUBJECT, weight=72.8, note=None)
        assert updated.weight == 72.8
        assert updated.note is None
        assert updated.updated_at == now_warsaw
        assert updated.measurement_date == entry.measurement_date

    def test_update_without_changes(self, processor):
        entry = processor.create_entry(SUBJECT, 72.4, TODAY).entry
        assert processor.update_entry(entry.id, SUBJECT) == entry

    def test_update_does_not_clear_outlier_flag(self, processor):
        processor.create_entry(SUBJECT, 80.0, days_ago(1))
        flagged = processor.create_entry(SUBJECT, 85.0, TODAY).entry
        updated = processor.update_entry(flagged.id, SUBJECT, weight=80.2)
        assert updated.is_outlier is True

    def test_update_outside_window(self, processor):
        entry = processor.create_entry(SUBJECT, 72.4, days_ago(2)).entry
        with pytest.raises(EditWindowExpiredError):
            processor.update_entry(entry.id, SUBJECT, weight=72.0)

    def test_update_caregiver_entry(self, processor):
        entry = processor.create_entry(SUBJECT, 72.4, TODAY, recorded_by=RecordedBy.CAREGIVER).entry
        with pytest.raises(SourceNotAllowedError):
            processor.update_entry(entry.id, SUBJECT, weight=72.0)

    def test_update_other_subject(self, processor):
        entry = processor.create_entry(SUBJECT, 72.4, TODAY).entry
        with pytest.raises(NotFoundError):
            processor.update_entry(entry.id, "subject-2", weight=72.0)

    def test_invalid_update_keeps_stored_value(self, processor, store):
        entry = processor.create_entry(SUBJECT, 72.4, TODAY).entry
        with pytest.raises(ValidationError):
            processor.update_entry(entry.id, SUBJECT, weight=20.0)
        assert store.get(entry.id).weight == 72.4

    def test_delete_inside_window(self, processor, store):
        entry = processor.create_entry(SUBJECT, 72.4, TODAY).entry
        assert processor.delete_entry(entry.id, SUBJECT) is True
        assert store.count(SUBJECT) == 0
        with pytest.raises(NotFoundError):
            processor.delete_entry(entry.id, SUBJECT)

    def test_delete_outside_window(self, processor, now_warsaw):
        entry = processor.create_entry(SUBJECT, 72.4, TODAY).entry
        with pytest.raises(EditWindowExpiredError):
            processor.delete_entry(entry.id, SUBJECT, now=now_warsaw + timedelta(days=2))


class TestOutlierConfirmation:
    @pytest.fixture
    def flagged(self, processor):
        processor.create_entry(SUBJECT, 70.0, days_ago(4))
        return processor.create_entry(SUBJECT, 75.0, days_ago(3)).entry

    def test_confirm_any_time(self, processor, flagged, now_warsaw):
        later = now_warsaw + timedelta(days=30)
        confirmed = processor.confirm_outlier(flagged.id, SUBJECT, True, now=later)
        assert confirmed.outlier_confirmed is True
        assert confirmed.is_outlier is True
        assert confirmed.updated_at == later

    def test_confirm_is_idempotent(self, processor, flagged, store):
        first = processor.confirm_outlier(flagged.id, SUBJECT, True)
        second = processor.confirm_outlier(flagged.id, SUBJECT, True)
        assert first == second
        assert store.get(flagged.id) == first

    def test_unconfirm(self, processor, flagged):
        processor.confirm_outlier(flagged.id, SUBJECT, True)
        assert processor.confirm_outlier(flagged.id, SUBJECT, False).outlier_confirmed is False

    def test_not_flagged(self, processor):
        entry = processor.create_entry(SUBJECT, 72.4, TODAY).entry
        with pytest.raises(OutlierNotFlaggedError):
            processor.confirm_outlier(entry.id, SUBJECT, True)

    def test_non_boolean(self, processor, flagged):
        with pytest.raises(ValidationError):
            processor.confirm_outlier(flagged.id, SUBJECT, "yes")

    def test_permissions(self, processor, flagged):
        permissions = processor.permissions(flagged.id, SUBJECT)
        assert permissions.can_mutate is False
        assert permissions.can_toggle_outlier_confirmation is True


class TestReadModels:
    @pytest.fixture
    def history(self, processor):
        processor.create_entry(SUBJECT, 75.0, days_ago(40), recorded_by=RecordedBy.CAREGIVER)
        processor.create_entry(SUBJECT, 74.0, days_ago(5))
        processor.create_entry(SUBJECT, 74.2, TODAY)

    def test_chart_30_days(self, processor, history):
        chart = processor.chart(SUBJECT, period_days=30)
        assert [p.date for p in chart.entries] == [days_ago(5), TODAY]
        assert [p.ma7 for p in chart.entries] == [74.0, 74.1]
        assert chart.statistics.change == 0.2
        assert chart.statistics.trend_direction == TrendDirection.INCREASING
        assert chart.goal_weight is None

    def test_chart_90_days(self, processor, history):
        chart = processor.chart(SUBJECT, period_days=90)
        assert len(chart.entries) == 3
        assert chart.entries[0].recorded_by == RecordedBy.CAREGIVER
        assert chart.to_dict()["entries"][0]["recorded_by"] == "caregiver"

    def test_chart_period_restricted(self, processor):
        with pytest.raises(ValidationError):
            processor.chart(SUBJECT, period_days=45)

    def test_chart_empty(self, processor):
        chart = processor.chart(SUBJECT)
        assert chart.entries == []
        assert chart.statistics.trend_direction == TrendDirection.STABLE

    def test_list_entries_range(self, processor, history):
        page = processor.list_entries(SUBJECT, start=days_ago(10), end=TODAY)
        assert [e.weight for e in page.entries] == [74.2, 74.0]
        assert page.has_more is False
        assert page.next_cursor is None

    def test_list_entries_first_page(self, processor, history):
        page = processor.list_entries(SUBJECT, limit=2)
        assert [e.measurement_date for e in page.entries] == [TODAY, days_ago(5)]
        assert page.has_more is True
        assert page.next_cursor == days_ago(5)
        assert page.to_dict()["pagination"] == {"has_more": True, "next_cursor": "2024-03-01"}

    def test_list_entries_last_page(self, processor, history):
        page = processor.list_entries(SUBJECT, limit=2, cursor="2024-03-01")
        assert [e.weight for e in page.entries] == [75.0]
        assert page.has_more is False
        assert page.next_cursor is None

    def test_list_entries_exact_fit_has_no_more(self, processor, history):
        page = processor.list_entries(SUBJECT, limit=3)
        assert len(page.entries) == 3
        assert page.has_more is False

    def test_list_entries_default_limit(self, processor):
        for n in range(35):
            processor.create_entry(SUBJECT, 70.0, days_ago(n), recorded_by=RecordedBy.CAREGIVER)
        page = processor.list_entries(SUBJECT)
        assert len(page.entries) == 30
        assert page.next_cursor == days_ago(29)

    @pytest.mark.parametrize("limit", [0, 101, 2.5, True])
    def test_list_entries_limit_out_of_range(self, processor, history, limit):
        with pytest.raises(ValidationError) as exc_info:
            processor.list_entries(SUBJECT, limit=limit)
        assert exc_info.value.field == "limit"

    def test_list_entries_bad_cursor(self, processor, history):
        with pytest.raises(ValidationError) as exc_info:
            processor.list_entries(SUBJECT, cursor="yesterday")
        assert exc_info.value.field == "cursor"

    def test_overview(self, processor, history):
        overview = processor.overview(SUBJECT)
        assert overview.total_entries == 3
        assert overview.last_entry_date == TODAY
        assert overview.compliance.weekly_obligation_met is True
        assert overview.to_dict()["last_entry_date"] == "2024-03-06"

    def test_moving_average_disabled(self, store, clock):
        from weight_analytics.config_loader import ConfigLoader
        config = ConfigLoader.from_dict({"features": {"moving_average": False, "performance_metrics": False}})
        processor = WeightEntryProcessor(store=store, config=config, clock=clock)
        processor.create_entry(SUBJECT, 74.0, days_ago(1))
        processor.create_entry(SUBJECT, 74.3, TODAY)
        assert [p.ma7 for p in processor.chart(SUBJECT).entries] == [74.0, 74.3]


def test_processor_accepts_raw_config(store, clock):
    processor = WeightEntryProcessor(store=store, config={"anomaly": {"max_daily_change_kg": 0.5}}, clock=clock)
    processor.create_entry(SUBJECT, 80.0, days_ago(1))
    assert processor.create_entry(SUBJECT, 81.1, TODAY).entry.is_outlier is True
