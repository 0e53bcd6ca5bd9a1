import datetime
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from models import PersonalRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordCheck:
    is_new: bool
    had_previous: bool
    record: Optional[PersonalRecord]

    @property
    def improved(self) -> bool:
        """True when an existing record was beaten, not merely created."""
        return self.is_new and self.had_previous


class PersonalRecordTracker:
    """Track the best weight x reps pair per exercise."""

    def __init__(
        self,
        records: dict[str, PersonalRecord],
        clock: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        self.records = records
        self._clock = clock or (lambda: datetime.datetime.now().astimezone())

    @staticmethod
    def key(exercise_name: str) -> str:
        return exercise_name.strip().lower()

    def check(self, exercise_name: str, weight: float, reps: int) -> RecordCheck:
        """Store ``weight`` x ``reps`` if it beats the current record."""
        current = self.records.get(self.key(exercise_name))
        if current is not None and current.dominates(weight, reps):
            return RecordCheck(False, True, current)
        record = PersonalRecord(
            exercise=exercise_name,
            weight=weight,
            reps=reps,
            date=self._clock().isoformat(),
        )
        self.records[self.key(exercise_name)] = record
        if current is not None:
            logger.info("New PR for %s: %s x %s", exercise_name, weight, reps)
        return RecordCheck(True, current is not None, record)

    def get(self, exercise_name: str) -> PersonalRecord | None:
        return self.records.get(self.key(exercise_name))

    def all(self) -> list[PersonalRecord]:
        return sorted(self.records.values(), key=lambda r: r.exercise.lower())
