"""
Shared test configuration and fixtures for all tests.
Provides common test fixtures and marker definitions for the entire test suite.
"""

import pytest
from datetime import date, datetime, timedelta
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

from weight_analytics.clock import fixed_clock
from weight_analytics.config_loader import ConfigLoader
from weight_analytics.database.database import InMemoryMeasurementStore
from weight_analytics.models import RecordedBy, WeightMeasurement
from weight_analytics.processing.processor import WeightEntryProcessor

WARSAW = ZoneInfo("Europe/Warsaw")


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================

def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "critical: marks tests guarding clinical flags and permissions"
    )


# =============================================================================
# COMMON FIXTURES
# =============================================================================

@pytest.fixture
def base_date():
    """A Wednesday; its week starts on Monday 2024-03-04."""
    return date(2024, 3, 6)


@pytest.fixture
def now_warsaw(base_date):
    """Noon on base_date in the reference zone."""
    return datetime(base_date.year, base_date.month, base_date.day, 12, 0, tzinfo=WARSAW)


@pytest.fixture
def clock(now_warsaw):
    return fixed_clock(now_warsaw)


@pytest.fixture
def config():
    """Fully interpreted default configuration."""
    return ConfigLoader.from_dict({"features": {"performance_metrics": False}})


@pytest.fixture
def mock_feature_manager():
    """Mock FeatureManager with every feature enabled."""
    manager = MagicMock()
    manager.is_enabled.return_value = True
    return manager


@pytest.fixture
def sample_weights():
    """Seven daily weights; MA7 at the last index is 70.4."""
    return [70.0, 70.5, 70.2, 70.8, 70.1, 70.6, 70.3]


@pytest.fixture
def make_entry():
    """Factory for stored entries with sensible defaults."""
    counter = {"n": 0}

    def _make(weight, measurement_date, subject_id="subject-1", recorded_by=RecordedBy.PATIENT,
              is_outlier=False, **kwargs):
        counter["n"] += 1
        return WeightMeasurement(
            id=kwargs.pop("id", f"entry-{counter['n']}"),
            subject_id=subject_id,
            weight=weight,
            measurement_date=measurement_date,
            recorded_by=recorded_by,
            is_outlier=is_outlier,
            **kwargs,
        )

    return _make


@pytest.fixture
def measurement_series(make_entry, base_date, sample_weights):
    """Daily entries ending on base_date."""
    start = base_date - timedelta(days=len(sample_weights) - 1)
    return [
        make_entry(weight, start + timedelta(days=i))
        for i, weight in enumerate(sample_weights)
    ]


# =============================================================================
# STORE FIXTURES
# =============================================================================

@pytest.fixture
def store():
    return InMemoryMeasurementStore()


@pytest.fixture
def processor(store, config, clock):
    ids = iter(f"id-{i}" for i in range(1, 1000))
    return WeightEntryProcessor(store=store, config=config, clock=clock, id_factory=lambda: next(ids))
