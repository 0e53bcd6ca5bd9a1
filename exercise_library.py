"""Built-in exercises and the muscle group each one trains."""

from typing import Optional

EXERCISE_LIBRARY: list[tuple[str, str]] = [
    ("Bench Press", "chest"),
    ("Incline Bench Press", "chest"),
    ("Dumbbell Flyes", "chest"),
    ("Push-ups", "chest"),
    ("Deadlift", "back"),
    ("Barbell Row", "back"),
    ("Pull-ups", "back"),
    ("Lat Pulldown", "back"),
    ("Cable Rows", "back"),
    ("Squat", "legs"),
    ("Leg Press", "legs"),
    ("Lunges", "legs"),
    ("Leg Curl", "legs"),
    ("Leg Extension", "legs"),
    ("Calf Raises", "legs"),
    ("Overhead Press", "shoulders"),
    ("Lateral Raises", "shoulders"),
    ("Front Raises", "shoulders"),
    ("Face Pulls", "shoulders"),
    ("Bicep Curls", "arms"),
    ("Hammer Curls", "arms"),
    ("Tricep Dips", "arms"),
    ("Tricep Extensions", "arms"),
    ("Skull Crushers", "arms"),
    ("Plank", "core"),
    ("Crunches", "core"),
    ("Russian Twists", "core"),
    ("Hanging Leg Raises", "core"),
]

_BY_NAME = {name.lower(): muscle for name, muscle in EXERCISE_LIBRARY}


def lookup_muscle_group(name: str) -> Optional[str]:
    """Return the muscle group for ``name`` ignoring case, if known."""
    return _BY_NAME.get(name.strip().lower())
