"""
Structured logging utilities for the weight tracking engine.
Errors and metrics as JSON lines, everything else through stdlib logging.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from enum import Enum


class LogLevel(Enum):
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    METRIC = "METRIC"


class StructuredLogger:
    """Simple structured logger for production use."""

    def __init__(self, name: str, enabled: bool = True):
        self.name = name
        self.enabled = enabled
        self._logger = logging.getLogger(f"weight_analytics.{name}")

    def _log(self, level: LogLevel, message: str, **kwargs):
        if not self.enabled:
            return

        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.value,
            "logger": self.name,
            "message": message,
            **kwargs
        }

        if level == LogLevel.ERROR:
            print(json.dumps(log_entry, default=str), file=sys.stderr)
        elif level == LogLevel.METRIC:
            # Metrics go to stdout for collection
            print(json.dumps(log_entry, default=str))
        elif level == LogLevel.WARNING:
            self._logger.warning(message, extra={"context": kwargs})
        else:
            self._logger.info(message, extra={"context": kwargs})

    def error(self, message: str, **kwargs):
        self._log(LogLevel.ERROR, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(LogLevel.WARNING, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log(LogLevel.INFO, message, **kwargs)

    def metric(self, metric_name: str, value: float, **tags):
        self._log(LogLevel.METRIC, f"Metric: {metric_name}",
                  metric=metric_name, value=value, tags=tags)


class PerformanceTimer:
    """Context manager for timing operations."""

    def __init__(self, logger: StructuredLogger, operation: str, enabled: bool = True):
        self.logger = logger
        self.operation = operation
        self.enabled = enabled
        self.start_time = None
        self.duration_ms = None

    def __enter__(self):
        self.start_time = datetime.now(timezone.utc)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time:
            self.duration_ms = (datetime.now(timezone.utc) - self.start_time).total_seconds() * 1000
            if self.enabled:
                self.logger.metric(f"{self.operation}_duration_ms", self.duration_ms,
                                   operation=self.operation,
                                   failed=exc_type is not None)


# Global logger instances
processor_logger = StructuredLogger("processor")
validation_logger = StructuredLogger("validation")
analytics_logger = StructuredLogger("analytics")
