"""
Trailing moving average over entries (MA7).

The window is counted in entries, not calendar days: index i averages
entries [max(0, i - 6), i]. Each index is recomputed from the raw array.
"""

from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..constants import DEFAULT_ROUNDING_STRATEGY, MOVING_AVERAGE_WINDOW, ROUNDING_FLOAT
from ..rounding import mean, round1


class MovingAverageCalculator:
    """Computes MA7 values for a chronologically ascending weight series."""

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 window_size: int = MOVING_AVERAGE_WINDOW):
        self.config = config or {}
        self.window_size = window_size
        self.rounding = self.config.get('rounding', {}).get('strategy', DEFAULT_ROUNDING_STRATEGY)

    def window_bounds(self, length: int, index: int):
        if index < 0 or index >= length:
            raise IndexError(f"index {index} out of range for series of length {length}")
        return max(0, index - (self.window_size - 1)), index + 1

    def window(self, weights: Sequence[float], index: int) -> List[float]:
        start, end = self.window_bounds(len(weights), index)
        return list(weights[start:end])

    def at(self, weights: Sequence[float], index: int) -> float:
        """MA7 at ``index``, rounded to one decimal."""
        values = self.window(weights, index)
        if self.rounding == ROUNDING_FLOAT:
            return round1(float(np.mean(np.asarray(values, dtype=float))), self.rounding)
        return round1(mean(values, self.rounding), self.rounding)

    def series(self, weights: Sequence[float]) -> List[float]:
        return [self.at(weights, i) for i in range(len(weights))]
