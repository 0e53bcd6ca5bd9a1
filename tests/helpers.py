import datetime

from models import Exercise, Session, SetEntry


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime.datetime | None = None) -> None:
        self.now = start or datetime.datetime(2024, 5, 10, 18, 0, 0)

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += datetime.timedelta(**kwargs)


def make_session(
    when: datetime.datetime,
    sets: list[tuple[float, int]] | None = None,
    name: str = "Bench Press",
    muscle_group: str | None = "chest",
    session_id: int = 1,
) -> Session:
    entries = [
        SetEntry(id=i + 1, weight=w, reps=r) for i, (w, r) in enumerate(sets or [])
    ]
    exercise = Exercise(id=100, name=name, muscle_group=muscle_group, sets=entries)
    return Session(
        id=session_id,
        date=when.isoformat(),
        duration=60_000,
        exercises=[exercise],
        total_exercises=1,
        total_sets=len(entries),
        total_volume=sum(w * r for w, r in (sets or [])),
    )
