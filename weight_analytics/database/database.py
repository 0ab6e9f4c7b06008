"""
Measurement Store
Holds weight entries per subject, ordered by measurement date.

The engine only talks to the MeasurementStore interface; the in-memory
implementation backs the CLI and the test suite and can persist each
subject's series as JSON.
"""

import bisect
import json
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Set

from ..exceptions import DuplicateMeasurementError
from ..models import WeightMeasurement

logger = logging.getLogger(__name__)


class MeasurementStore(ABC):
    """Persistence port consumed by the entry processor."""

    @abstractmethod
    def append_measurement(self, measurement: WeightMeasurement) -> WeightMeasurement:
        """Insert; raises DuplicateMeasurementError on (subject, date) conflict."""

    @abstractmethod
    def find_latest_before(self, subject_id: str, measurement_date: date) -> Optional[WeightMeasurement]:
        """Most recent entry dated strictly before ``measurement_date``."""

    @abstractmethod
    def list_ordered_by_date(self, subject_id: str, start: Optional[date] = None,
                             end: Optional[date] = None, limit: Optional[int] = None,
                             cursor: Optional[date] = None,
                             descending: bool = False) -> List[WeightMeasurement]:
        """
        Entries with start <= date <= end, ascending unless ``descending``.

        ``cursor`` is an exclusive keyset bound in the direction of travel
        (dates before it when descending, after it otherwise). At most
        ``limit`` entries are returned.
        """

    @abstractmethod
    def get(self, entry_id: str) -> Optional[WeightMeasurement]:
        ...

    @abstractmethod
    def update(self, measurement: WeightMeasurement) -> WeightMeasurement:
        ...

    @abstractmethod
    def delete(self, entry_id: str) -> bool:
        ...

    def exists_on(self, subject_id: str, measurement_date: date) -> bool:
        entries = self.list_ordered_by_date(subject_id, measurement_date, measurement_date)
        return bool(entries)

    def count(self, subject_id: str) -> int:
        return len(self.list_ordered_by_date(subject_id))


class InMemoryMeasurementStore(MeasurementStore):
    """
    Dict-of-lists store, one date-sorted list per subject.
    A lock keeps the duplicate check and insert atomic.
    """

    def __init__(self, storage_path: Optional[str] = None):
        """
        Args:
            storage_path: Optional directory for per-subject JSON files
        """
        self.storage_path = Path(storage_path) if storage_path else None
        self.series: Dict[str, List[WeightMeasurement]] = {}
        self.index: Dict[str, str] = {}
        self._lock = threading.RLock()
        self._transaction_active = False
        self._pending_saves: Set[str] = set()

        if self.storage_path and self.storage_path.exists():
            self._load_from_disk()

    @contextmanager
    def transaction(self):
        """
        Context manager for atomic operations.
        Rolls back every subject's series on failure. Subject files are
        written on commit only.
        """
        with self._lock:
            if self._transaction_active:
                # Nested transaction - just yield
                yield self
                return

            self._transaction_active = True
            self._pending_saves = set()
            backup_series = {subject: list(entries) for subject, entries in self.series.items()}
            backup_index = dict(self.index)
            try:
                yield self
            except Exception as e:
                logger.error(f"Transaction failed, rolling back: {e}")
                self.series = backup_series
                self.index = backup_index
                self._pending_saves.clear()
                raise
            finally:
                self._transaction_active = False

            pending, self._pending_saves = self._pending_saves, set()
            for subject_id in sorted(pending):
                self._save_subject(subject_id)

    def append_measurement(self, measurement: WeightMeasurement) -> WeightMeasurement:
        with self._lock:
            entries = self.series.setdefault(measurement.subject_id, [])
            dates = [e.measurement_date for e in entries]
            position = bisect.bisect_left(dates, measurement.measurement_date)
            if position < len(entries) and dates[position] == measurement.measurement_date:
                raise DuplicateMeasurementError(measurement.subject_id, measurement.measurement_date)
            if measurement.id in self.index:
                raise ValueError(f"Entry id {measurement.id} already exists")

            entries.insert(position, measurement)
            self.index[measurement.id] = measurement.subject_id
            self._save_subject(measurement.subject_id)
            return measurement

    def find_latest_before(self, subject_id: str, measurement_date: date) -> Optional[WeightMeasurement]:
        with self._lock:
            entries = self.series.get(subject_id, [])
            dates = [e.measurement_date for e in entries]
            position = bisect.bisect_left(dates, measurement_date)
            return entries[position - 1] if position > 0 else None

    def list_ordered_by_date(self, subject_id: str, start: Optional[date] = None,
                             end: Optional[date] = None, limit: Optional[int] = None,
                             cursor: Optional[date] = None,
                             descending: bool = False) -> List[WeightMeasurement]:
        with self._lock:
            entries = [
                e for e in self.series.get(subject_id, [])
                if (start is None or e.measurement_date >= start)
                and (end is None or e.measurement_date <= end)
            ]

        if descending:
            entries.reverse()
        if cursor is not None:
            entries = [
                e for e in entries
                if (e.measurement_date < cursor if descending else e.measurement_date > cursor)
            ]
        if limit is not None:
            entries = entries[:limit]
        return entries

    def get(self, entry_id: str) -> Optional[WeightMeasurement]:
        with self._lock:
            subject_id = self.index.get(entry_id)
            if subject_id is None:
                return None
            return next((e for e in self.series[subject_id] if e.id == entry_id), None)

    def update(self, measurement: WeightMeasurement) -> WeightMeasurement:
        with self._lock:
            entries = self.series.get(measurement.subject_id, [])
            for i, existing in enumerate(entries):
                if existing.id == measurement.id:
                    if existing.measurement_date != measurement.measurement_date:
                        raise ValueError("measurement_date cannot change on update")
                    entries[i] = measurement
                    self._save_subject(measurement.subject_id)
                    return measurement
            raise KeyError(measurement.id)

    def delete(self, entry_id: str) -> bool:
        with self._lock:
            subject_id = self.index.pop(entry_id, None)
            if subject_id is None:
                return False
            self.series[subject_id] = [e for e in self.series[subject_id] if e.id != entry_id]
            self._save_subject(subject_id)
            return True

    def get_all_subjects(self) -> List[str]:
        return list(self.series.keys())

    def get_stats(self) -> Dict[str, object]:
        return {
            'total_subjects': len(self.series),
            'total_entries': len(self.index),
            'storage_path': str(self.storage_path) if self.storage_path else 'memory-only',
        }

    def clear(self) -> None:
        with self._lock:
            self.series.clear()
            self.index.clear()

    def _save_subject(self, subject_id: str) -> None:
        """Write one subject's series to disk, or defer it to commit."""
        if not self.storage_path:
            return
        if self._transaction_active:
            self._pending_saves.add(subject_id)
            return

        self.storage_path.mkdir(parents=True, exist_ok=True)
        subject_file = self.storage_path / f"{subject_id}.json"
        with open(subject_file, 'w') as f:
            json.dump([e.to_dict() for e in self.series.get(subject_id, [])], f, indent=2)

    def _load_from_disk(self) -> None:
        """Load every subject file; unreadable files are logged and skipped."""
        for subject_file in self.storage_path.glob("*.json"):
            try:
                with open(subject_file, 'r') as f:
                    entries = [WeightMeasurement.from_dict(item) for item in json.load(f)]
            except (OSError, ValueError, TypeError, KeyError) as e:
                logger.error(f"Error loading entries from {subject_file}: {e}")
                continue

            entries.sort(key=lambda e: e.measurement_date)
            self.series[subject_file.stem] = entries
            for entry in entries:
                self.index[entry.id] = entry.subject_id


_store_instance = None


def get_store(storage_path: Optional[str] = None) -> InMemoryMeasurementStore:
    """Get or create the global measurement store instance."""
    global _store_instance
    if _store_instance is None:
        _store_instance = InMemoryMeasurementStore(storage_path)
    return _store_instance
