"""Measurement storage."""

from .database import InMemoryMeasurementStore, MeasurementStore, get_store

__all__ = ['MeasurementStore', 'InMemoryMeasurementStore', 'get_store']
