import datetime
import json
import logging
from typing import Callable

from fastapi import APIRouter, Body, FastAPI, HTTPException, Query, Response

from config import APP_VERSION, YamlConfig
from exceptions import WorkoutValidationError
from export_service import ExportService, backup_filename
from exercise_library import EXERCISE_LIBRARY
from logger import setup_logger
from models import SetReps, SetWeight
from stats_service import StatisticsService
from workout_service import WorkoutService

logger = logging.getLogger(__name__)


class FitTrackAPI:
    """Provides REST endpoints for workout logging."""

    def __init__(
        self,
        db_path: str | None = None,
        yaml_path: str = "settings.yaml",
        *,
        clock: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        self.config = YamlConfig(yaml_path)
        self.settings = self.config.settings()
        setup_logger(level=self.settings.log_level)
        if db_path:
            self.settings = self.settings.model_copy(update={"db_path": db_path})
        self.db_path = self.settings.db_path
        self.workouts = WorkoutService.from_settings(self.settings, clock=clock)
        self.statistics = StatisticsService(self.workouts)
        self.exports = ExportService(self.workouts)
        self.timer = self.workouts.timer
        self.app = FastAPI(
            title="FitTrack API",
            description="REST API for workout logging and statistics",
            version=APP_VERSION,
        )
        self._setup_routes()
        logger.info("FitTrack API %s using %s", APP_VERSION, self.db_path)

    def _current(self) -> dict | None:
        workout = self.workouts.current_workout
        return workout.dump() if workout else None

    def _setup_routes(self) -> None:
        workout_router = APIRouter(prefix="/workout", tags=["Workout"])
        templates_router = APIRouter(prefix="/templates", tags=["Templates"])
        stats_router = APIRouter(prefix="/stats", tags=["Statistics"])
        timer_router = APIRouter(prefix="/rest-timer", tags=["Rest Timer"])
        settings_router = APIRouter(prefix="/settings", tags=["Settings"])

        @self.app.get("/health")
        def health():
            return {
                "status": "ok",
                "version": APP_VERSION,
                "storage": self.workouts.gateway is not None,
            }

        @self.app.get("/library")
        def library():
            return [{"name": n, "muscle_group": m} for n, m in EXERCISE_LIBRARY]

        @workout_router.get("")
        def get_current_workout():
            return self._current()

        @workout_router.post("")
        def start_workout():
            self.workouts.start_workout()
            return self._current()

        @workout_router.post("/repeat")
        def repeat_workout():
            try:
                self.workouts.repeat_last_workout()
            except WorkoutValidationError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return self._current()

        @workout_router.post("/template/{template_id}")
        def start_from_template(template_id: int):
            self.workouts.load_template(template_id)
            return self._current()

        @workout_router.delete("")
        def discard_workout():
            self.workouts.discard_workout()
            return {"status": "discarded"}

        @workout_router.get("/elapsed")
        def elapsed():
            ms = self.workouts.elapsed()
            return {"elapsed": ms}

        @workout_router.post("/exercises")
        def add_exercise(
            name: str,
            muscle_group: str | None = None,
            notes: str = "",
            superset: bool = False,
        ):
            try:
                ex = self.workouts.add_exercise(name, muscle_group, notes, superset)
            except WorkoutValidationError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return ex.dump()

        @workout_router.delete("/exercises/{exercise_id}")
        def delete_exercise(exercise_id: int):
            self.workouts.delete_exercise(exercise_id)
            return self._current()

        @workout_router.post("/exercises/{exercise_id}/sets")
        def add_set(exercise_id: int):
            entry = self.workouts.add_set(exercise_id)
            return entry.dump() if entry else None

        @workout_router.put("/exercises/{exercise_id}/sets/{set_id}")
        def update_set(
            exercise_id: int,
            set_id: int,
            weight: str | None = None,
            reps: str | None = None,
        ):
            entry = None
            if weight is not None:
                entry = self.workouts.update_set(exercise_id, set_id, SetWeight(weight))
            if reps is not None:
                entry = self.workouts.update_set(exercise_id, set_id, SetReps(reps))
            return entry.dump() if entry else None

        @workout_router.delete("/exercises/{exercise_id}/sets/{set_id}")
        def delete_set(exercise_id: int, set_id: int):
            self.workouts.delete_set(exercise_id, set_id)
            return self._current()

        @workout_router.post("/finish")
        def finish_workout(notes: str | None = None):
            try:
                summary = self.workouts.finish_workout(notes)
            except WorkoutValidationError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {
                "id": summary.session_id,
                "duration": summary.duration,
                "total_exercises": summary.total_exercises,
                "total_sets": summary.total_sets,
                "total_volume": summary.total_volume,
                "records": summary.records,
            }

        @workout_router.post("/template")
        def save_template(name: str):
            try:
                template = self.workouts.save_as_template(name)
            except WorkoutValidationError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return template.dump()

        @self.app.get("/history")
        def history(offset: int = 0, limit: int = 10):
            return [s.dump() for s in self.workouts.history(offset, limit)]

        @self.app.get("/history/summary")
        def history_summary():
            text = self.exports.last_session_text()
            if text is None:
                raise HTTPException(status_code=404, detail="no workouts yet")
            return {"text": text}

        @self.app.get("/records")
        def records():
            return [r.dump() for r in self.workouts.personal_records()]

        @self.app.get("/records/{exercise}")
        def record(exercise: str):
            rec = self.workouts.personal_record(exercise)
            return rec.dump() if rec else None

        @self.app.get("/body-weight")
        def body_weight_log():
            return [e.dump() for e in self.workouts.body_weight_log]

        @self.app.post("/body-weight")
        def log_body_weight(weight: str):
            try:
                entry = self.workouts.log_body_weight(weight)
            except WorkoutValidationError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return entry.dump()

        @templates_router.get("")
        def list_templates():
            return [t.dump() for t in self.workouts.templates]

        @templates_router.delete("/{template_id}")
        def delete_template(template_id: int):
            self.workouts.delete_template(template_id)
            return {"status": "deleted"}

        @stats_router.get("/streak")
        def streak():
            return {"streak": self.statistics.streak()}

        @stats_router.get("/one-rm")
        def one_rm(weight: float, reps: int):
            try:
                return self.statistics.estimate_one_rep_max(weight, reps)
            except WorkoutValidationError as e:
                raise HTTPException(status_code=400, detail=str(e))

        @stats_router.get("/muscle-groups")
        def muscle_groups(window: int = Query(StatisticsService.MUSCLE_WINDOW, ge=1)):
            return self.statistics.muscle_groups(window)

        @stats_router.get("/frequency")
        def frequency(days: int = Query(StatisticsService.FREQUENCY_DAYS, ge=1)):
            return self.statistics.frequency(days)

        @stats_router.get("/calendar")
        def calendar_view(year: int | None = None, month: int | None = None):
            return self.statistics.calendar(year, month)

        @stats_router.get("/overview")
        def overview():
            return self.statistics.summary()

        @stats_router.get("/body-weight")
        def body_weight_stats(unit: str | None = None):
            return self.statistics.body_weight(unit)

        @timer_router.get("")
        def timer_state():
            return self.timer.snapshot()

        @timer_router.post("/start")
        def timer_start(seconds: int | None = None):
            self.timer.start(seconds)
            return self.timer.snapshot()

        @timer_router.post("/pause")
        def timer_pause():
            self.timer.pause()
            return self.timer.snapshot()

        @timer_router.post("/resume")
        def timer_resume():
            self.timer.resume()
            return self.timer.snapshot()

        @timer_router.post("/stop")
        def timer_stop():
            self.timer.stop()
            return self.timer.snapshot()

        @timer_router.post("/tick")
        def timer_tick():
            self.timer.tick()
            return self.timer.snapshot()

        @settings_router.get("")
        def get_settings():
            return {
                "auto_start_rest": self.workouts.state.auto_start_rest,
                "theme": self.workouts.state.theme,
                "weight_unit": self.workouts.weight_unit,
            }

        @settings_router.put("/auto-rest")
        def set_auto_rest(enabled: bool):
            self.workouts.set_auto_start_rest(enabled)
            return {"auto_start_rest": self.workouts.state.auto_start_rest}

        @settings_router.put("/theme")
        def set_theme(theme: str):
            try:
                self.workouts.set_theme(theme)
            except WorkoutValidationError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"theme": self.workouts.state.theme}

        @settings_router.post("/theme/toggle")
        def toggle_theme():
            return {"theme": self.workouts.toggle_theme()}

        @self.app.get("/export/json")
        def export_json():
            return Response(
                self.exports.export_json(),
                media_type="application/json",
                headers={
                    "Content-Disposition": f"attachment; filename={backup_filename('json')}"
                },
            )

        @self.app.get("/export/csv")
        def export_csv():
            return Response(
                self.exports.export_csv(),
                media_type="text/csv",
                headers={
                    "Content-Disposition": f"attachment; filename={backup_filename('csv')}"
                },
            )

        @self.app.post("/import/json")
        def import_json(payload: dict = Body(...)):
            try:
                self.exports.import_json(json.dumps(payload))
            except WorkoutValidationError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"workouts": len(self.workouts.history())}

        self.app.include_router(workout_router)
        self.app.include_router(templates_router)
        self.app.include_router(stats_router)
        self.app.include_router(timer_router)
        self.app.include_router(settings_router)


def create_app() -> FastAPI:
    return FitTrackAPI().app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app())
