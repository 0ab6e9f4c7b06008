"""
Tests for the patient edit window.
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from weight_analytics.clock import CalendarClock
from weight_analytics.processing.edit_window import EditWindowPolicy

WARSAW = ZoneInfo("Europe/Warsaw")


@pytest.fixture
def policy():
    return EditWindowPolicy(clock=CalendarClock())


@pytest.mark.critical
class TestWindowBoundaries:
    D = date(2024, 1, 15)

    def test_end_of_next_day_is_inclusive(self, policy):
        now = datetime(2024, 1, 16, 23, 59, 59, 999999, tzinfo=WARSAW)
        assert policy.is_mutable(self.D, now) is True

    def test_start_of_second_day_after_is_closed(self, policy):
        now = datetime(2024, 1, 17, 0, 0, 0, tzinfo=WARSAW)
        assert policy.is_mutable(self.D, now) is False

    def test_one_second_after_deadline_is_closed(self, policy):
        now = policy.deadline(self.D) + timedelta(seconds=1)
        assert policy.is_mutable(self.D, now) is False

    def test_one_microsecond_after_deadline_is_closed(self, policy):
        now = policy.deadline(self.D) + timedelta(microseconds=1)
        assert policy.is_mutable(self.D, now) is False

    def test_same_day_is_open(self, policy):
        now = datetime(2024, 1, 15, 0, 0, tzinfo=WARSAW)
        assert policy.is_mutable(self.D, now) is True

    def test_before_measurement_day_is_closed(self, policy):
        now = datetime(2024, 1, 14, 23, 59, tzinfo=WARSAW)
        assert policy.is_mutable(self.D, now) is False

    def test_utc_instant_resolved_in_reference_zone(self, policy):
        # 23:30 UTC on the 16th is already the 17th in Warsaw
        now = datetime(2024, 1, 16, 23, 30, tzinfo=timezone.utc)
        assert policy.is_mutable(self.D, now) is False
        now = datetime(2024, 1, 16, 22, 30, tzinfo=timezone.utc)
        assert policy.is_mutable(self.D, now) is True


class TestConfiguration:
    def test_deadline_across_dst_change(self, policy):
        # Clocks go forward on 2024-03-31
        deadline = policy.deadline(date(2024, 3, 30))
        assert deadline.date() == date(2024, 3, 31)
        assert deadline.utcoffset() == timedelta(hours=2)

    def test_grace_days_from_config(self):
        policy = EditWindowPolicy({"edit_window": {"grace_days": 0}}, clock=CalendarClock())
        assert policy.is_mutable(date(2024, 1, 15), datetime(2024, 1, 15, 23, 0, tzinfo=WARSAW)) is True
        assert policy.is_mutable(date(2024, 1, 15), datetime(2024, 1, 16, 0, 0, tzinfo=WARSAW)) is False

    def test_default_now_from_clock(self):
        frozen = datetime(2024, 1, 16, 12, 0, tzinfo=WARSAW)
        policy = EditWindowPolicy(clock=CalendarClock(now_provider=lambda: frozen))
        assert policy.is_mutable(date(2024, 1, 15)) is True
        assert policy.is_mutable(date(2024, 1, 14)) is False
