from __future__ import annotations

import datetime
import time
from dataclasses import dataclass
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def normalize_timestamp(value: str) -> str:
    """Check that ``value`` is an ISO timestamp, rewriting a ``Z`` suffix as ``+00:00``."""
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        datetime.datetime.fromisoformat(value)
    except ValueError:
        raise ValueError(f"invalid ISO timestamp {value!r}")
    return value


class CamelModel(BaseModel):
    """Base model stored with camelCase keys, e.g. ``completedAt``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def dump(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class SetEntry(CamelModel):
    id: int
    weight: float = Field(default=0.0, ge=0)
    reps: int = Field(default=0, ge=0)
    completed_at: Optional[int] = None
    is_record: bool = False

    @property
    def is_complete(self) -> bool:
        return self.weight > 0 and self.reps > 0

    @property
    def volume(self) -> float:
        return self.weight * self.reps


class Exercise(CamelModel):
    id: int
    name: str
    muscle_group: Optional[str] = None
    notes: str = ""
    is_superset: bool = False
    sets: list[SetEntry] = Field(default_factory=list)

    def find_set(self, set_id: int) -> SetEntry | None:
        for entry in self.sets:
            if entry.id == set_id:
                return entry
        return None


class CurrentWorkout(CamelModel):
    """The single workout being logged before it is finished."""

    exercises: list[Exercise] = Field(default_factory=list)
    start_time: Optional[int] = None
    end_time: Optional[int] = None
    notes: str = ""
    body_weight: Optional[float] = None

    @property
    def is_active(self) -> bool:
        return self.start_time is not None and self.end_time is None

    def find_exercise(self, exercise_id: int) -> Exercise | None:
        for exercise in self.exercises:
            if exercise.id == exercise_id:
                return exercise
        return None


class Session(CamelModel):
    """A finished workout; never mutated after it enters the history."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: int
    date: str
    duration: int
    exercises: list[Exercise]
    total_exercises: int
    total_sets: int
    total_volume: float
    notes: str = ""
    body_weight: Optional[float] = None

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        return normalize_timestamp(value)


class PersonalRecord(CamelModel):
    exercise: str
    weight: float
    reps: int
    date: str

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        return normalize_timestamp(value)

    def dominates(self, weight: float, reps: int) -> bool:
        """Return ``True`` if this record is at least as good as ``weight``x``reps``."""
        if weight > self.weight:
            return False
        if weight == self.weight and reps > self.reps:
            return False
        return True


class BodyWeightEntry(CamelModel):
    date: str
    weight: float

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        return normalize_timestamp(value)


class Template(CamelModel):
    id: int
    name: str
    exercises: list[Exercise] = Field(default_factory=list)


class AppState(CamelModel):
    """Everything the application persists between runs."""

    current_workout: Optional[CurrentWorkout] = None
    history: list[Session] = Field(default_factory=list)
    personal_records: dict[str, PersonalRecord] = Field(default_factory=dict)
    body_weight_log: list[BodyWeightEntry] = Field(default_factory=list)
    templates: list[Template] = Field(default_factory=list)
    auto_start_rest: bool = True
    theme: Literal["dark", "light"] = "dark"

    def max_id(self) -> int:
        """Return the largest id used anywhere in the state."""
        ids = [0]
        groups: list[list[Exercise]] = [s.exercises for s in self.history]
        groups.extend(t.exercises for t in self.templates)
        if self.current_workout is not None:
            groups.append(self.current_workout.exercises)
        ids.extend(s.id for s in self.history)
        ids.extend(t.id for t in self.templates)
        for exercises in groups:
            for ex in exercises:
                ids.append(ex.id)
                ids.extend(s.id for s in ex.sets)
        return max(ids)


@dataclass(frozen=True)
class SetWeight:
    value: object


@dataclass(frozen=True)
class SetReps:
    value: object


SetUpdate = Union[SetWeight, SetReps]


class IdGenerator:
    """Hand out unique, increasing integer ids based on the wall clock.

    Two ids requested within the same millisecond still differ because the
    generator never returns a value at or below the last one issued.
    """

    def __init__(self, start: int = 0) -> None:
        self._last = start

    def seed(self, value: int) -> None:
        self._last = max(self._last, value)

    def next_id(self) -> int:
        candidate = time.time_ns() // 1_000_000
        self._last = max(candidate, self._last + 1)
        return self._last


def zeroed_copy(exercises: list[Exercise], ids: IdGenerator | None = None) -> list[Exercise]:
    """Deep copy ``exercises`` with every set emptied.

    When ``ids`` is given the copies get fresh exercise and set ids.
    """
    copies = []
    for exercise in exercises:
        ex = exercise.model_copy(deep=True)
        if ids is not None:
            ex.id = ids.next_id()
        for entry in ex.sets:
            entry.weight = 0.0
            entry.reps = 0
            entry.completed_at = None
            entry.is_record = False
            if ids is not None:
                entry.id = ids.next_id()
        copies.append(ex)
    return copies
