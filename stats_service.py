from __future__ import annotations

import calendar
import datetime
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from models import BodyWeightEntry, Session
from tools import MathTools, WeightConverter

if TYPE_CHECKING:
    from workout_service import WorkoutService


def local_date(ts: str) -> datetime.date:
    """Return the local calendar date of an ISO timestamp."""
    dt = datetime.datetime.fromisoformat(ts)
    if dt.tzinfo is not None:
        dt = dt.astimezone()
    return dt.date()


class StatisticsService:
    """Compute workout statistics from the history.

    The static methods are pure; the instance methods read the live state
    of a :class:`WorkoutService`.
    """

    MUSCLE_WINDOW = 30
    FREQUENCY_DAYS = 7

    def __init__(self, workouts: "WorkoutService") -> None:
        self.workouts = workouts

    def _today(self) -> datetime.date:
        return self.workouts.now().date()

    @staticmethod
    def compute_streak(history: Sequence[Session], today: datetime.date) -> int:
        """Count consecutive training days ending today or yesterday."""
        dates = sorted({local_date(s.date) for s in history}, reverse=True)
        if not dates:
            return 0
        one_day = datetime.timedelta(days=1)
        if dates[0] not in (today, today - one_day):
            return 0
        streak = 1
        for prev, nxt in zip(dates, dates[1:]):
            if prev - nxt != one_day:
                break
            streak += 1
        return streak

    @staticmethod
    def estimate_one_rep_max(weight: float, reps: int) -> Dict[str, object]:
        one_rm = MathTools.epley_1rm(weight, reps)
        return {
            "weight": weight,
            "reps": reps,
            "one_rm": one_rm,
            "percentages": MathTools.percentage_table(one_rm),
        }

    @staticmethod
    def muscle_group_volume(
        history: Sequence[Session], window: int = MUSCLE_WINDOW
    ) -> Dict[str, object]:
        """Return volume per muscle group over the last ``window`` sessions."""
        volumes: Dict[str, float] = {}
        for session in history[:window]:
            for ex in session.exercises:
                muscle = ex.muscle_group or "other"
                volumes[muscle] = volumes.get(muscle, 0.0) + MathTools.volume(
                    (s.weight, s.reps) for s in ex.sets
                )
        total = sum(volumes.values())
        if total == 0:
            return {"volumes": {}, "percentages": {}, "total": 0.0}
        ordered = dict(sorted(volumes.items(), key=lambda kv: kv[1], reverse=True))
        return {
            "volumes": ordered,
            "percentages": MathTools.percentages(ordered),
            "total": total,
        }

    @staticmethod
    def weekly_frequency(
        history: Sequence[Session],
        today: datetime.date,
        days: int = FREQUENCY_DAYS,
    ) -> List[int]:
        """Workouts per day for the last ``days`` days, oldest first."""
        counts = [0] * days
        for session in history:
            diff = (today - local_date(session.date)).days
            if 0 <= diff < days:
                counts[days - 1 - diff] += 1
        return counts

    @staticmethod
    def calendar_month(
        history: Sequence[Session], year: int, month: int
    ) -> Dict[str, object]:
        """Return which days of ``month`` have at least one workout."""
        trained = {
            d.day
            for d in (local_date(s.date) for s in history)
            if d.year == year and d.month == month
        }
        first_weekday, length = calendar.monthrange(year, month)
        return {
            "year": year,
            "month": month,
            "first_weekday": first_weekday,
            "days_in_month": length,
            "workout_days": sorted(trained),
        }

    @staticmethod
    def overview(history: Sequence[Session]) -> Dict[str, float]:
        if not history:
            return {
                "workouts": 0,
                "total_volume": 0.0,
                "total_sets": 0,
                "avg_duration": 0.0,
                "avg_volume": 0.0,
            }
        count = len(history)
        volume = sum(s.total_volume for s in history)
        return {
            "workouts": count,
            "total_volume": round(volume, 2),
            "total_sets": sum(s.total_sets for s in history),
            "avg_duration": round(sum(s.duration for s in history) / count, 2),
            "avg_volume": round(volume / count, 2),
        }

    @staticmethod
    def body_weight_stats(
        log: Sequence[BodyWeightEntry], unit: str = "lbs", stored_unit: str = "lbs"
    ) -> Dict[str, Optional[float]]:
        """Return avg/min/max body weight in ``unit``."""
        if not log:
            return {"current": None, "avg": 0.0, "min": 0.0, "max": 0.0, "change": 0.0}
        if unit == stored_unit:
            weights = [e.weight for e in log]
        elif unit == "kg":
            weights = [WeightConverter.lb_to_kg(e.weight) for e in log]
        else:
            weights = [WeightConverter.kg_to_lb(e.weight) for e in log]
        return {
            "current": weights[-1],
            "avg": round(sum(weights) / len(weights), 2),
            "min": min(weights),
            "max": max(weights),
            "change": round(weights[-1] - weights[0], 2),
        }

    # live-state wrappers

    def streak(self) -> int:
        return self.compute_streak(self.workouts.state.history, self._today())

    def muscle_groups(self, window: int = MUSCLE_WINDOW) -> Dict[str, object]:
        return self.muscle_group_volume(self.workouts.state.history, window)

    def frequency(self, days: int = FREQUENCY_DAYS) -> List[int]:
        return self.weekly_frequency(self.workouts.state.history, self._today(), days)

    def calendar(self, year: int | None = None, month: int | None = None) -> Dict[str, object]:
        today = self._today()
        return self.calendar_month(
            self.workouts.state.history, year or today.year, month or today.month
        )

    def summary(self) -> Dict[str, float]:
        result = self.overview(self.workouts.state.history)
        result["streak"] = self.streak()
        return result

    def body_weight(self, unit: str | None = None) -> Dict[str, Optional[float]]:
        stored = self.workouts.weight_unit
        return self.body_weight_stats(
            self.workouts.state.body_weight_log, unit or stored, stored
        )
