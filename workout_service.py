from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from db import StorageGateway
from exceptions import NotFoundError, PersistenceError, WorkoutValidationError
from exercise_library import lookup_muscle_group
from models import (
    AppState,
    BodyWeightEntry,
    CurrentWorkout,
    Exercise,
    IdGenerator,
    PersonalRecord,
    Session,
    SetEntry,
    SetReps,
    SetUpdate,
    SetWeight,
    Template,
    zeroed_copy,
)
from records_service import PersonalRecordTracker
from rest_timer import RestTimer
from settings_schema import SettingsSchema
from tools import MathTools

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkoutSummary:
    """What the user sees after finishing a workout."""

    session_id: int
    duration: int
    total_exercises: int
    total_sets: int
    total_volume: float
    records: list[str] = field(default_factory=list)


def _local_now() -> datetime.datetime:
    return datetime.datetime.now().astimezone()


class WorkoutService:
    """Own the application state and apply every user action to it.

    State is loaded from ``gateway`` on construction and the full snapshot is
    written back after each mutation. Storage failures are logged and the
    service keeps working from memory.
    """

    def __init__(
        self,
        gateway: StorageGateway | None = None,
        *,
        history_limit: int = 100,
        default_rest_seconds: int = RestTimer.DEFAULT_SECONDS,
        weight_unit: str = "lbs",
        clock: Callable[[], datetime.datetime] | None = None,
        timer: RestTimer | None = None,
    ) -> None:
        self.gateway = gateway
        self.history_limit = history_limit
        self.default_rest_seconds = default_rest_seconds
        self.weight_unit = weight_unit
        self._clock = clock or _local_now
        self.ids = IdGenerator()
        self.timer = timer or RestTimer(default_rest_seconds)
        self.state = self._load()
        self.ids.seed(self.state.max_id())
        self.records = PersonalRecordTracker(self.state.personal_records, self._clock)

    @classmethod
    def from_settings(cls, settings: SettingsSchema, **kwargs) -> "WorkoutService":
        try:
            gateway: StorageGateway | None = StorageGateway(settings.db_path)
        except PersistenceError:
            logger.exception("Storage unavailable, running in memory only")
            gateway = None
        return cls(
            gateway,
            history_limit=settings.history_limit,
            default_rest_seconds=settings.default_rest_seconds,
            weight_unit=settings.weight_unit,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # persistence

    def _load(self) -> AppState:
        if self.gateway is None:
            return AppState()
        try:
            return self.gateway.load()
        except PersistenceError:
            logger.exception("Failed to load from storage")
            return AppState()

    def save(self) -> None:
        if self.gateway is None:
            return
        try:
            self.gateway.save(self.state)
        except PersistenceError:
            logger.exception("Failed to save to storage")

    def now(self) -> datetime.datetime:
        return self._clock()

    def _now_ms(self) -> int:
        return int(self._clock().timestamp() * 1000)

    # ------------------------------------------------------------------
    # lookups

    def _exercise(self, exercise_id: int) -> Exercise:
        workout = self.state.current_workout
        exercise = workout.find_exercise(exercise_id) if workout else None
        if exercise is None:
            raise NotFoundError(f"exercise {exercise_id} not found")
        return exercise

    @staticmethod
    def _set(exercise: Exercise, set_id: int) -> SetEntry:
        entry = exercise.find_set(set_id)
        if entry is None:
            raise NotFoundError(f"set {set_id} not found")
        return entry

    def _template(self, template_id: int) -> Template:
        for template in self.state.templates:
            if template.id == template_id:
                return template
        raise NotFoundError(f"template {template_id} not found")

    # ------------------------------------------------------------------
    # read accessors

    @property
    def current_workout(self) -> CurrentWorkout | None:
        return self.state.current_workout

    def history(self, offset: int = 0, limit: Optional[int] = None) -> list[Session]:
        sessions = self.state.history[offset:]
        return sessions[:limit] if limit is not None else sessions

    def last_session(self) -> Session | None:
        return self.state.history[0] if self.state.history else None

    def personal_records(self) -> list[PersonalRecord]:
        return self.records.all()

    def personal_record(self, exercise_name: str) -> PersonalRecord | None:
        return self.records.get(exercise_name)

    @property
    def body_weight_log(self) -> list[BodyWeightEntry]:
        return self.state.body_weight_log

    @property
    def templates(self) -> list[Template]:
        return self.state.templates

    def elapsed(self, now: datetime.datetime | None = None) -> int:
        """Milliseconds since the in-progress workout started."""
        workout = self.state.current_workout
        if workout is None or workout.start_time is None:
            return 0
        moment = now or self._clock()
        return max(0, int(moment.timestamp() * 1000) - workout.start_time)

    # ------------------------------------------------------------------
    # workout lifecycle

    def start_workout(self, seed_exercises: list[Exercise] | None = None) -> CurrentWorkout:
        """Begin a new workout, optionally copying the structure of ``seed_exercises``."""
        workout = CurrentWorkout(
            exercises=zeroed_copy(seed_exercises, self.ids) if seed_exercises else [],
            start_time=self._now_ms(),
            body_weight=self.current_body_weight(),
        )
        self.state.current_workout = workout
        self.save()
        logger.info("Workout started with %d exercises", len(workout.exercises))
        return workout

    def repeat_last_workout(self) -> CurrentWorkout:
        last = self.last_session()
        if last is None:
            raise WorkoutValidationError("No previous workouts to repeat")
        return self.start_workout(last.exercises)

    def load_template(self, template_id: int) -> CurrentWorkout | None:
        try:
            template = self._template(template_id)
        except NotFoundError:
            return None
        return self.start_workout(template.exercises)

    def discard_workout(self) -> None:
        if self.state.current_workout is None:
            return
        self.state.current_workout = None
        self.timer.stop()
        self.save()
        logger.warning("In-progress workout discarded")

    def add_exercise(
        self,
        name: str,
        muscle_group: str | None = None,
        notes: str = "",
        is_superset: bool = False,
    ) -> Exercise:
        name = (name or "").strip()
        if not name:
            raise WorkoutValidationError("Please enter an exercise name")
        workout = self.state.current_workout
        if workout is None:
            raise WorkoutValidationError("Start a workout before adding exercises")
        exercise = Exercise(
            id=self.ids.next_id(),
            name=name,
            muscle_group=(muscle_group or "").strip() or lookup_muscle_group(name),
            notes=(notes or "").strip(),
            is_superset=is_superset,
        )
        workout.exercises.append(exercise)
        self.save()
        return exercise

    def add_set(self, exercise_id: int) -> SetEntry | None:
        try:
            exercise = self._exercise(exercise_id)
        except NotFoundError:
            return None
        entry = SetEntry(id=self.ids.next_id())
        exercise.sets.append(entry)
        self.save()
        return entry

    def update_set(self, exercise_id: int, set_id: int, update: SetUpdate) -> SetEntry | None:
        """Apply ``update`` to a set and handle its completion.

        The first time a set has both weight and reps it is stamped complete,
        checked against the exercise's personal record and, if enabled, the
        rest timer starts.
        """
        try:
            exercise = self._exercise(exercise_id)
            entry = self._set(exercise, set_id)
        except NotFoundError:
            return None
        if isinstance(update, SetWeight):
            entry.weight = MathTools.parse_number(update.value)
        elif isinstance(update, SetReps):
            entry.reps = int(MathTools.parse_number(update.value))
        else:
            raise TypeError(f"unsupported set update {update!r}")

        if entry.is_complete and entry.completed_at is None:
            entry.completed_at = self._now_ms()
            entry.is_record = self.records.check(exercise.name, entry.weight, entry.reps).is_new
            if self.state.auto_start_rest:
                self.timer.start(self.default_rest_seconds)
        self.save()
        return entry

    def delete_set(self, exercise_id: int, set_id: int) -> None:
        try:
            exercise = self._exercise(exercise_id)
            entry = self._set(exercise, set_id)
        except NotFoundError:
            return
        exercise.sets.remove(entry)
        self.save()

    def delete_exercise(self, exercise_id: int) -> None:
        try:
            exercise = self._exercise(exercise_id)
        except NotFoundError:
            return
        self.state.current_workout.exercises.remove(exercise)
        self.save()

    def finish_workout(self, notes: str | None = None) -> WorkoutSummary:
        workout = self.state.current_workout
        if workout is None or not workout.exercises:
            raise WorkoutValidationError("Add at least one exercise before finishing")
        self.timer.stop()
        now = self._clock()
        workout.end_time = int(now.timestamp() * 1000)
        if notes is not None:
            workout.notes = notes.strip()

        exercises = [ex.model_copy(deep=True) for ex in workout.exercises]
        all_sets = [s for ex in exercises for s in ex.sets]
        session = Session(
            id=self.ids.next_id(),
            date=now.isoformat(),
            duration=workout.end_time - (workout.start_time or workout.end_time),
            exercises=exercises,
            total_exercises=len(exercises),
            total_sets=len(all_sets),
            total_volume=MathTools.volume((s.weight, s.reps) for s in all_sets),
            notes=workout.notes,
            body_weight=workout.body_weight,
        )
        self.state.history.insert(0, session)
        del self.state.history[self.history_limit:]
        self.state.current_workout = None
        self.save()
        logger.info(
            "Workout finished: %d exercises, %d sets, volume %.1f",
            session.total_exercises,
            session.total_sets,
            session.total_volume,
        )
        return WorkoutSummary(
            session_id=session.id,
            duration=session.duration,
            total_exercises=session.total_exercises,
            total_sets=session.total_sets,
            total_volume=session.total_volume,
            records=self._session_records(exercises),
        )

    def _session_records(self, exercises: list[Exercise]) -> list[str]:
        """Describe the sets that set a record and still hold it."""
        found = []
        for ex in exercises:
            record = self.records.get(ex.name)
            if record is None:
                continue
            for entry in ex.sets:
                if entry.is_record and (entry.weight, entry.reps) == (record.weight, record.reps):
                    found.append(f"{ex.name}: {entry.weight:g}{self.weight_unit} × {entry.reps}")
        return found

    # ------------------------------------------------------------------
    # templates

    def save_as_template(self, name: str) -> Template:
        name = (name or "").strip()
        if not name:
            raise WorkoutValidationError("Please enter a template name")
        workout = self.state.current_workout
        if workout is None:
            raise WorkoutValidationError("Start a workout before saving a template")
        template = Template(
            id=self.ids.next_id(),
            name=name,
            exercises=zeroed_copy(workout.exercises, self.ids),
        )
        self.state.templates.append(template)
        self.save()
        logger.info("Template %s saved", name)
        return template

    def delete_template(self, template_id: int) -> None:
        try:
            template = self._template(template_id)
        except NotFoundError:
            return
        self.state.templates.remove(template)
        self.save()

    # ------------------------------------------------------------------
    # body weight and preferences

    def log_body_weight(self, weight: object) -> BodyWeightEntry:
        value = MathTools.parse_number(weight)
        if value <= 0:
            raise WorkoutValidationError("Please enter a valid weight")
        entry = BodyWeightEntry(date=self._clock().isoformat(), weight=value)
        self.state.body_weight_log.append(entry)
        self.save()
        return entry

    def current_body_weight(self) -> float | None:
        log = self.state.body_weight_log
        return log[-1].weight if log else None

    def set_auto_start_rest(self, enabled: bool) -> None:
        self.state.auto_start_rest = bool(enabled)
        self.save()

    def set_theme(self, theme: str) -> None:
        if theme not in ("dark", "light"):
            raise WorkoutValidationError(f"unknown theme {theme!r}")
        self.state.theme = theme
        self.save()

    def toggle_theme(self) -> str:
        self.set_theme("light" if self.state.theme == "dark" else "dark")
        return self.state.theme

    def restore_collections(
        self,
        history: list[Session],
        records: dict[str, PersonalRecord],
        body_weight_log: list[BodyWeightEntry],
        templates: list[Template],
    ) -> None:
        """Replace the stored collections, e.g. from an imported backup."""
        self.state.history = history[: self.history_limit]
        self.state.personal_records = records
        self.state.body_weight_log = body_weight_log
        self.state.templates = templates
        self.records.records = records
        self.ids.seed(self.state.max_id())
        self.save()
