import datetime
from typing import Iterable, Optional
import numpy as np


class MathTools:
    """Provides essential mathematical utilities for workout calculations."""

    E1RM_REP_DIVISOR: float = 30.0

    @staticmethod
    def at_least_one(value: Optional[int]) -> int:
        """Return ``value`` clamped to a minimum of 1 (``None`` counts as 1)."""
        if value is None:
            return 1
        return max(int(value), 1)

    @classmethod
    def estimated_1rm(cls, weight: float, reps: int) -> float:
        """Return the estimated one-rep max as ``weight * (1 + reps / 30)``.

        Sets without reps carry no strength information and yield ``0.0``.
        """
        if reps <= 0:
            return 0.0
        return weight * (1 + reps / cls.E1RM_REP_DIVISOR)

    @staticmethod
    def volume(sets: Iterable[tuple[int, float]]) -> float:
        """Compute training volume as the sum of reps times weight."""
        vol = 0.0
        for reps, weight in sets:
            vol += reps * weight
        return vol

    @staticmethod
    def mean(values: Iterable[float]) -> Optional[float]:
        """Return the arithmetic mean of ``values`` or ``None`` when empty."""
        data = list(values)
        if not data:
            return None
        return float(np.mean(np.array(data, dtype=float)))

    @staticmethod
    def duration_seconds(
        start: datetime.datetime, end: datetime.datetime
    ) -> int:
        """Return whole seconds elapsed between ``start`` and ``end``."""
        seconds = int((end - start).total_seconds())
        return max(seconds, 0)
