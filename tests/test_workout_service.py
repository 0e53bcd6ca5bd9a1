import os
import sys
import json
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from helpers import FakeClock
from db import StorageGateway
from exceptions import PersistenceError, WorkoutValidationError
from models import SetReps, SetWeight
from rest_timer import TimerState
from workout_service import WorkoutService


class FailingGateway(StorageGateway):
    def save(self, state) -> None:
        raise PersistenceError("disk full")


class WorkoutServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_workout_service.db"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        self.clock = FakeClock()
        self.service = self._service()

    def tearDown(self) -> None:
        if os.path.exists(self.db_path):
            os.remove(self.db_path)

    def _service(self, **kwargs) -> WorkoutService:
        return WorkoutService(StorageGateway(self.db_path), clock=self.clock, **kwargs)

    def _log_set(self, service, exercise_id, weight, reps):
        entry = service.add_set(exercise_id)
        service.update_set(exercise_id, entry.id, SetWeight(weight))
        service.update_set(exercise_id, entry.id, SetReps(reps))
        return entry

    def _finish_one(self, service, weight=100, reps=5, name="Bench Press"):
        service.start_workout()
        ex = service.add_exercise(name)
        self._log_set(service, ex.id, weight, reps)
        return service.finish_workout()

    def test_full_workout(self) -> None:
        workout = self.service.start_workout()
        self.assertTrue(workout.is_active)
        bench = self.service.add_exercise("  bench press ", notes="pause reps")
        self.assertEqual(bench.name, "bench press")
        self.assertEqual(bench.muscle_group, "chest")
        self.assertEqual(bench.notes, "pause reps")
        self._log_set(self.service, bench.id, 100, 10)
        self._log_set(self.service, bench.id, "110", "8")
        curl = self.service.add_exercise("Zottman Curl", muscle_group="arms", is_superset=True)
        self.assertTrue(curl.is_superset)
        self.service.add_set(curl.id)

        self.clock.advance(minutes=45)
        self.assertEqual(self.service.elapsed(), 45 * 60 * 1000)
        summary = self.service.finish_workout("good day")

        self.assertEqual(summary.duration, 45 * 60 * 1000)
        self.assertEqual(summary.total_exercises, 2)
        self.assertEqual(summary.total_sets, 3)
        self.assertEqual(summary.total_volume, 100 * 10 + 110 * 8)
        self.assertIsNone(self.service.current_workout)
        session = self.service.last_session()
        self.assertEqual(session.notes, "good day")
        self.assertEqual(session.total_volume, 1880.0)
        self.assertEqual(session.date, self.clock.now.isoformat())

    def test_unknown_muscle_group_left_unset(self) -> None:
        self.service.start_workout()
        ex = self.service.add_exercise("Sled Push")
        self.assertIsNone(ex.muscle_group)

    def test_add_exercise_validation(self) -> None:
        with self.assertRaises(WorkoutValidationError):
            self.service.add_exercise("Squat")
        self.service.start_workout()
        with self.assertRaises(WorkoutValidationError):
            self.service.add_exercise("   ")
        self.assertEqual(self.service.current_workout.exercises, [])

    def test_unknown_ids_are_ignored(self) -> None:
        self.service.start_workout()
        ex = self.service.add_exercise("Squat")
        entry = self.service.add_set(ex.id)
        self.assertIsNone(self.service.add_set(999))
        self.assertIsNone(self.service.update_set(999, entry.id, SetWeight(10)))
        self.assertIsNone(self.service.update_set(ex.id, 999, SetReps(10)))
        self.service.delete_set(ex.id, 999)
        self.service.delete_exercise(999)
        self.assertEqual(len(self.service.current_workout.exercises), 1)
        self.assertEqual(len(ex.sets), 1)

    def test_update_set_parses_invalid_values_as_zero(self) -> None:
        self.service.start_workout()
        ex = self.service.add_exercise("Squat")
        entry = self.service.add_set(ex.id)
        self.service.update_set(ex.id, entry.id, SetWeight("heavy"))
        self.service.update_set(ex.id, entry.id, SetReps(""))
        self.assertEqual(entry.weight, 0.0)
        self.assertEqual(entry.reps, 0)
        self.assertIsNone(entry.completed_at)
        with self.assertRaises(TypeError):
            self.service.update_set(ex.id, entry.id, "weight")

    def test_completion_fires_once(self) -> None:
        self.service.start_workout()
        ex = self.service.add_exercise("Deadlift")
        entry = self._log_set(self.service, ex.id, 200, 5)
        first = entry.completed_at
        self.assertIsNotNone(first)
        self.assertEqual(self.service.personal_record("deadlift").weight, 200)

        self.clock.advance(seconds=30)
        self.service.update_set(ex.id, entry.id, SetWeight(250))
        self.assertEqual(entry.completed_at, first)
        # the set was already complete, so no new record check happens
        self.assertEqual(self.service.personal_record("Deadlift").weight, 200)

    def test_records_reported_on_finish(self) -> None:
        self._finish_one(self.service, 100, 5)
        self.service.start_workout()
        ex = self.service.add_exercise("Bench Press")
        self._log_set(self.service, ex.id, 90, 12)
        self._log_set(self.service, ex.id, 105, 3)
        summary = self.service.finish_workout()
        self.assertEqual(summary.records, ["Bench Press: 105lbs × 3"])

    def test_first_record_reported(self) -> None:
        summary = self._finish_one(self.service, 100, 5)
        self.assertEqual(summary.records, ["Bench Press: 100lbs × 5"])
        self.assertIsNotNone(self.service.personal_record("bench press"))
        self.assertTrue(self.service.last_session().exercises[0].sets[0].is_record)

    def test_superseded_record_not_reported(self) -> None:
        self._finish_one(self.service, 100, 5)
        self.service.start_workout()
        ex = self.service.add_exercise("Bench Press")
        self._log_set(self.service, ex.id, 105, 5)
        self._log_set(self.service, ex.id, 110, 5)
        summary = self.service.finish_workout()
        self.assertEqual(summary.records, ["Bench Press: 110lbs × 5"])

    def test_deleted_record_sets_not_reported(self) -> None:
        self._finish_one(self.service, 100, 5)
        self.service.start_workout()
        bench = self.service.add_exercise("Bench Press")
        self._log_set(self.service, bench.id, 105, 5)
        self._log_set(self.service, bench.id, 110, 5)
        self.service.delete_exercise(bench.id)
        squat = self.service.add_exercise("Squat")
        self.service.add_set(squat.id)
        summary = self.service.finish_workout()
        self.assertEqual(summary.records, [])

        self.service.start_workout()
        row = self.service.add_exercise("Barbell Row")
        entry = self._log_set(self.service, row.id, 95, 8)
        self._log_set(self.service, row.id, 80, 10)
        self.service.delete_set(row.id, entry.id)
        self.assertEqual(self.service.finish_workout().records, [])

    def test_repeated_workout_clears_record_flags(self) -> None:
        self._finish_one(self.service, 100, 5)
        workout = self.service.repeat_last_workout()
        self.assertFalse(workout.exercises[0].sets[0].is_record)

    def test_finish_requires_exercise(self) -> None:
        with self.assertRaises(WorkoutValidationError):
            self.service.finish_workout()
        self.service.start_workout()
        with self.assertRaises(WorkoutValidationError):
            self.service.finish_workout()
        self.assertIsNotNone(self.service.current_workout)
        self.assertEqual(self.service.history(), [])

    def test_zero_sets_count_but_add_no_volume(self) -> None:
        self.service.start_workout()
        ex = self.service.add_exercise("Plank")
        self.service.add_set(ex.id)
        entry = self.service.add_set(ex.id)
        self.service.update_set(ex.id, entry.id, SetWeight(50))
        summary = self.service.finish_workout()
        self.assertEqual(summary.total_sets, 2)
        self.assertEqual(summary.total_volume, 0.0)

    def test_session_decoupled_from_live_workout(self) -> None:
        self.service.start_workout()
        ex = self.service.add_exercise("Squat")
        entry = self._log_set(self.service, ex.id, 100, 5)
        self.service.finish_workout()
        entry.weight = 999
        self.assertEqual(self.service.last_session().exercises[0].sets[0].weight, 100)

    def test_history_eviction(self) -> None:
        service = self._service(history_limit=3)
        ids = [self._finish_one(service, 10 + i, 5).session_id for i in range(4)]
        kept = [s.id for s in service.history()]
        self.assertEqual(kept, list(reversed(ids[1:])))
        self.assertEqual(service.history(1, 1)[0].id, ids[2])

    def test_repeat_last_workout(self) -> None:
        with self.assertRaises(WorkoutValidationError):
            self.service.repeat_last_workout()
        self._finish_one(self.service, 100, 5)
        last = self.service.last_session()
        workout = self.service.repeat_last_workout()
        self.assertEqual([e.name for e in workout.exercises], ["Bench Press"])
        copied = workout.exercises[0].sets[0]
        self.assertEqual((copied.weight, copied.reps, copied.completed_at), (0.0, 0, None))
        self.assertNotEqual(copied.id, last.exercises[0].sets[0].id)
        self.assertEqual(last.exercises[0].sets[0].weight, 100)

    def test_templates(self) -> None:
        with self.assertRaises(WorkoutValidationError):
            self.service.save_as_template("Push")
        self.service.start_workout()
        ex = self.service.add_exercise("Overhead Press")
        self._log_set(self.service, ex.id, 95, 8)
        with self.assertRaises(WorkoutValidationError):
            self.service.save_as_template("  ")
        template = self.service.save_as_template("Push Day")
        self.assertEqual(template.exercises[0].sets[0].weight, 0.0)
        self.assertEqual(ex.sets[0].weight, 95)
        self.service.finish_workout()

        self.assertIsNone(self.service.load_template(12345))
        workout = self.service.load_template(template.id)
        self.assertEqual(workout.exercises[0].name, "Overhead Press")
        self.assertEqual(workout.exercises[0].muscle_group, "shoulders")

        self.service.delete_template(12345)
        self.service.delete_template(template.id)
        self.assertEqual(self.service.templates, [])

    def test_body_weight(self) -> None:
        self.assertIsNone(self.service.current_body_weight())
        with self.assertRaises(WorkoutValidationError):
            self.service.log_body_weight("0")
        self.service.log_body_weight(180)
        self.service.log_body_weight("178.5")
        self.assertEqual(self.service.current_body_weight(), 178.5)
        workout = self.service.start_workout()
        self.assertEqual(workout.body_weight, 178.5)

    def test_auto_start_rest(self) -> None:
        self.service.start_workout()
        ex = self.service.add_exercise("Squat")
        self._log_set(self.service, ex.id, 100, 5)
        self.assertEqual(self.service.timer.state, TimerState.RUNNING)
        self.assertEqual(self.service.timer.remaining, 90)
        self.service.finish_workout()
        self.assertEqual(self.service.timer.state, TimerState.IDLE)

        self.service.set_auto_start_rest(False)
        self.service.start_workout()
        ex = self.service.add_exercise("Squat")
        self._log_set(self.service, ex.id, 100, 5)
        self.assertEqual(self.service.timer.state, TimerState.IDLE)

    def test_theme(self) -> None:
        self.assertEqual(self.service.state.theme, "dark")
        self.assertEqual(self.service.toggle_theme(), "light")
        with self.assertRaises(WorkoutValidationError):
            self.service.set_theme("blue")

    def test_unique_ids(self) -> None:
        self.service.start_workout()
        ex = self.service.add_exercise("Squat")
        ids = [self.service.add_set(ex.id).id for _ in range(50)]
        self.assertEqual(len(set(ids)), 50)
        self.assertEqual(ids, sorted(ids))

    def test_state_persisted_and_resumed(self) -> None:
        self._finish_one(self.service, 100, 5)
        self.service.log_body_weight(180)
        self.service.set_auto_start_rest(False)
        self.service.toggle_theme()
        self.service.start_workout()
        ex = self.service.add_exercise("Squat")
        self.service.add_set(ex.id)

        reloaded = self._service()
        self.assertEqual(reloaded.state, self.service.state)
        self.assertEqual(reloaded.current_workout.exercises[0].name, "Squat")
        self.assertFalse(reloaded.state.auto_start_rest)
        self.assertEqual(reloaded.state.theme, "light")
        new_set = reloaded.add_set(ex.id)
        self.assertGreater(new_set.id, ex.sets[0].id)

    def test_finished_workout_not_resumed(self) -> None:
        gateway = StorageGateway(self.db_path)
        gateway.repo.set(
            "currentWorkout",
            json.dumps({"exercises": [], "startTime": 1000, "endTime": 2000}),
        )
        self.assertIsNone(self._service().current_workout)
        gateway.repo.set("currentWorkout", json.dumps({"exercises": [], "startTime": None}))
        self.assertIsNone(self._service().current_workout)

    def test_corrupt_key_skipped(self) -> None:
        self.service.log_body_weight(180)
        StorageGateway(self.db_path).repo.set("workoutHistory", "{not json")
        with self.assertLogs("db", level="ERROR"):
            reloaded = self._service()
        self.assertEqual(reloaded.history(), [])
        self.assertEqual(reloaded.current_body_weight(), 180)

    def test_persistence_failure_keeps_memory_state(self) -> None:
        service = WorkoutService(FailingGateway(self.db_path), clock=self.clock)
        with self.assertLogs("workout_service", level="ERROR"):
            service.start_workout()
            ex = service.add_exercise("Squat")
        self.assertEqual(service.current_workout.exercises[0].id, ex.id)

    def test_in_memory_service(self) -> None:
        service = WorkoutService(clock=self.clock)
        self._finish_one(service)
        self.assertEqual(len(service.history()), 1)


if __name__ == "__main__":
    unittest.main()
