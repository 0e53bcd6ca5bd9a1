from __future__ import annotations

import csv
import datetime
import io
import json
from typing import TYPE_CHECKING, Sequence

from pydantic import ValidationError

from exceptions import WorkoutValidationError
from models import BodyWeightEntry, PersonalRecord, Session, Template
from stats_service import local_date
from tools import TimeFormatter

if TYPE_CHECKING:
    from workout_service import WorkoutService

CSV_HEADER = ["Date", "Exercise", "Sets", "Reps", "Weight", "Volume", "Notes"]


def _num(value: float) -> str:
    return f"{value:g}"


class ExportService:
    """Serialize the workout log for backups and spreadsheets."""

    def __init__(self, workouts: "WorkoutService") -> None:
        self.workouts = workouts

    def export_json(self) -> str:
        """Return the full log as JSON with an ``exportDate`` stamp."""
        state = self.workouts.state
        data = {
            "workoutHistory": [s.dump() for s in state.history],
            "personalRecords": {k: r.dump() for k, r in state.personal_records.items()},
            "bodyWeightLog": [e.dump() for e in state.body_weight_log],
            "workoutTemplates": [t.dump() for t in state.templates],
            "exportDate": self.workouts.now().isoformat(),
        }
        return json.dumps(data, indent=2)

    def import_json(self, text: str) -> None:
        """Replace history, records, body weights and templates from ``text``."""
        try:
            data = json.loads(text)
            history = [Session.model_validate(s) for s in data.get("workoutHistory", [])]
            records = {
                k: PersonalRecord.model_validate(v)
                for k, v in data.get("personalRecords", {}).items()
            }
            weights = [
                BodyWeightEntry.model_validate(e) for e in data.get("bodyWeightLog", [])
            ]
            templates = [
                Template.model_validate(t) for t in data.get("workoutTemplates", [])
            ]
        except (json.JSONDecodeError, ValidationError, AttributeError, TypeError) as e:
            raise WorkoutValidationError(f"invalid backup: {e}") from e
        self.workouts.restore_collections(history, records, weights, templates)

    @staticmethod
    def history_csv(history: Sequence[Session]) -> str:
        """One row per set; ``Sets`` is always 1."""
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for session in history:
            date = local_date(session.date).isoformat()
            for ex in session.exercises:
                for entry in ex.sets:
                    writer.writerow(
                        [
                            date,
                            ex.name,
                            1,
                            entry.reps,
                            _num(entry.weight),
                            _num(entry.volume),
                            ex.notes or "",
                        ]
                    )
        return buf.getvalue()

    def export_csv(self) -> str:
        return self.history_csv(self.workouts.state.history)

    @staticmethod
    def session_text(session: Session, unit: str = "lbs") -> str:
        """Plain-text summary of ``session`` for sharing."""
        day = local_date(session.date)
        lines = [
            "Workout Complete!",
            f"Date: {day.isoformat()}",
            f"Duration: {TimeFormatter.hms(session.duration)}",
            f"{session.total_exercises} exercises | {session.total_sets} sets",
            f"Total Volume: {session.total_volume:,.0f} {unit}",
            "",
            "Exercises:",
        ]
        lines.extend(f"- {ex.name}: {len(ex.sets)} sets" for ex in session.exercises)
        return "\n".join(lines)

    def last_session_text(self) -> str | None:
        last = self.workouts.last_session()
        if last is None:
            return None
        return self.session_text(last, self.workouts.weight_unit)


def backup_filename(kind: str, now: datetime.datetime | None = None) -> str:
    stamp = (now or datetime.datetime.now()).strftime("%Y%m%d")
    return f"fittrack-data-{stamp}.{kind}"
