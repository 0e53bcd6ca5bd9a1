import sqlite3
import json
import logging
from contextlib import contextmanager
from typing import Any, List, Tuple

from pydantic import ValidationError

from exceptions import PersistenceError
from models import (
    AppState,
    BodyWeightEntry,
    CurrentWorkout,
    PersonalRecord,
    Session,
    Template,
)

logger = logging.getLogger(__name__)


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "kv_store": (
            """CREATE TABLE kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );""",
            ["key", "value"],
        ),
    }

    def __init__(self, db_path: str = "fittrack.db") -> None:
        self._db_path = db_path
        self._ensure_schema()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            for table, (sql, _columns) in self._TABLE_DEFINITIONS.items():
                exists = conn.execute(
                    "SELECT name FROM sqlite_master WHERE type='table' AND name=?;",
                    (table,),
                ).fetchone()
                if not exists:
                    conn.execute(sql)


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def executemany(self, query: str, rows: List[Tuple]) -> None:
        with self._connection() as conn:
            conn.executemany(query, rows)

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()

    def _delete_all(self, table: str) -> None:
        self.execute(f"DELETE FROM {table};")


class KeyValueRepository(BaseRepository):
    """Repository for a flat bag of JSON values keyed by name."""

    def get(self, key: str) -> str | None:
        rows = self.fetch_all("SELECT value FROM kv_store WHERE key = ?;", (key,))
        return rows[0][0] if rows else None

    def set(self, key: str, value: str) -> None:
        self.execute(
            "INSERT INTO kv_store (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, value),
        )

    def set_many(self, items: dict[str, str]) -> None:
        """Write all ``items`` in a single transaction."""
        self.executemany(
            "INSERT INTO kv_store (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            list(items.items()),
        )

    def fetch_items(self) -> dict[str, str]:
        rows = self.fetch_all("SELECT key, value FROM kv_store ORDER BY key;")
        return {k: v for k, v in rows}

    def delete(self, key: str) -> None:
        self.execute("DELETE FROM kv_store WHERE key = ?;", (key,))

    def clear(self) -> None:
        self._delete_all("kv_store")


class StorageGateway:
    """Load and save the complete application state.

    Every collection lives under its own key so a corrupt value only loses
    that collection.
    """

    HISTORY_KEY = "workoutHistory"
    CURRENT_KEY = "currentWorkout"
    RECORDS_KEY = "personalRecords"
    BODY_WEIGHT_KEY = "bodyWeightLog"
    TEMPLATES_KEY = "workoutTemplates"
    AUTO_REST_KEY = "autoStartRest"
    THEME_KEY = "currentTheme"

    def __init__(self, db_path: str = "fittrack.db") -> None:
        self.db_path = db_path
        try:
            self.repo = KeyValueRepository(db_path)
        except sqlite3.Error as e:
            raise PersistenceError(f"cannot open {db_path}: {e}") from e

    def save(self, state: AppState) -> None:
        current = state.current_workout.dump() if state.current_workout else None
        items = {
            self.HISTORY_KEY: [s.dump() for s in state.history],
            self.CURRENT_KEY: current,
            self.RECORDS_KEY: {k: r.dump() for k, r in state.personal_records.items()},
            self.BODY_WEIGHT_KEY: [e.dump() for e in state.body_weight_log],
            self.TEMPLATES_KEY: [t.dump() for t in state.templates],
            self.AUTO_REST_KEY: state.auto_start_rest,
        }
        encoded = {key: json.dumps(value) for key, value in items.items()}
        # the theme is stored as a bare string, not JSON
        encoded[self.THEME_KEY] = state.theme
        try:
            self.repo.set_many(encoded)
        except sqlite3.Error as e:
            raise PersistenceError(f"failed to save state: {e}") from e

    def load(self) -> AppState:
        try:
            raw = self.repo.fetch_items()
        except sqlite3.Error as e:
            raise PersistenceError(f"failed to load state: {e}") from e
        state = AppState()
        history = self._decode(raw, self.HISTORY_KEY)
        if history is not None:
            state.history = self._parse(
                self.HISTORY_KEY, lambda: [Session.model_validate(s) for s in history], []
            )
        records = self._decode(raw, self.RECORDS_KEY)
        if records is not None:
            state.personal_records = self._parse(
                self.RECORDS_KEY,
                lambda: {k: PersonalRecord.model_validate(v) for k, v in records.items()},
                {},
            )
        weights = self._decode(raw, self.BODY_WEIGHT_KEY)
        if weights is not None:
            state.body_weight_log = self._parse(
                self.BODY_WEIGHT_KEY,
                lambda: [BodyWeightEntry.model_validate(w) for w in weights],
                [],
            )
        templates = self._decode(raw, self.TEMPLATES_KEY)
        if templates is not None:
            state.templates = self._parse(
                self.TEMPLATES_KEY,
                lambda: [Template.model_validate(t) for t in templates],
                [],
            )
        auto_rest = self._decode(raw, self.AUTO_REST_KEY)
        if auto_rest is not None:
            state.auto_start_rest = bool(auto_rest)
        theme = raw.get(self.THEME_KEY)
        if theme in ("dark", "light"):
            state.theme = theme
        current = self._decode(raw, self.CURRENT_KEY)
        if current:
            workout = self._parse(
                self.CURRENT_KEY, lambda: CurrentWorkout.model_validate(current), None
            )
            if workout is not None and workout.is_active:
                state.current_workout = workout
            elif workout is not None:
                logger.warning("Discarding stored workout that is not in progress")
        return state

    @staticmethod
    def _decode(raw: dict[str, str], key: str) -> Any:
        value = raw.get(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.exception("Stored value for %s is not valid JSON", key)
            return None

    @staticmethod
    def _parse(key: str, build, default):
        try:
            return build()
        except (ValidationError, AttributeError, TypeError):
            logger.exception("Stored value for %s has an unexpected shape", key)
            return default
