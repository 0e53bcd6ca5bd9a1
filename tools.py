import math
from typing import Iterable

import numpy as np

from exceptions import WorkoutValidationError


class MathTools:
    """Provides essential mathematical utilities for workout calculations."""

    EPLEY_DIVISOR: float = 30.0
    ONE_RM_PERCENTAGES: tuple[int, ...] = (90, 85, 80, 75, 70)

    @staticmethod
    def parse_number(value: object) -> float:
        """Parse user input as a non-negative number.

        Empty, malformed, negative and non-finite input all parse to ``0``.
        """
        if isinstance(value, bool) or value is None:
            return 0.0
        try:
            number = float(str(value).strip()) if isinstance(value, str) else float(value)
        except (TypeError, ValueError):
            return 0.0
        if not math.isfinite(number) or number < 0:
            return 0.0
        return number

    @classmethod
    def epley_1rm(cls, weight: float, reps: int) -> float:
        """Return the estimated one-rep max using the Epley formula."""
        if not (weight > 0 and reps > 0) or not (math.isfinite(weight) and math.isfinite(reps)):
            raise WorkoutValidationError("Please enter valid weight and reps")
        return weight * (1 + reps / cls.EPLEY_DIVISOR)

    @classmethod
    def percentage_table(cls, one_rm: float) -> dict[int, float]:
        """Return training weights for each percentage of ``one_rm``."""
        pct = np.array(cls.ONE_RM_PERCENTAGES, dtype=float)
        loads = one_rm * pct / 100.0
        return {int(p): float(w) for p, w in zip(cls.ONE_RM_PERCENTAGES, loads)}

    @staticmethod
    def volume(sets: Iterable[tuple[float, int]]) -> float:
        """Compute training volume as the sum of weight times reps."""
        pairs = list(sets)
        if not pairs:
            return 0.0
        arr = np.array(pairs, dtype=float)
        return float(np.sum(arr[:, 0] * arr[:, 1]))

    @staticmethod
    def percentages(values: dict[str, float]) -> dict[str, float]:
        """Return each value's share of the total in percent."""
        total = sum(values.values())
        if total == 0:
            return {}
        return {k: v / total * 100.0 for k, v in values.items()}


class TimeFormatter:
    """Format durations for display."""

    @staticmethod
    def hms(milliseconds: int) -> str:
        total = max(0, int(milliseconds)) // 1000
        hours, rest = divmod(total, 3600)
        minutes, seconds = divmod(rest, 60)
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"

    @staticmethod
    def ms(seconds: int) -> str:
        minutes, secs = divmod(max(0, int(seconds)), 60)
        return f"{minutes:02d}:{secs:02d}"


class WeightConverter:
    """Utility for converting between kg and lb."""

    KG_TO_LB = 2.20462

    @staticmethod
    def kg_to_lb(kg: float) -> float:
        return round(kg * WeightConverter.KG_TO_LB, 2)

    @staticmethod
    def lb_to_kg(lb: float) -> float:
        return round(lb / WeightConverter.KG_TO_LB, 2)
