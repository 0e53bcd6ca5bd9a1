import enum
import logging
from typing import Callable

from tools import TimeFormatter

logger = logging.getLogger(__name__)


class TimerState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETE = "complete"


class RestTimer:
    """Countdown between sets, advanced one second per ``tick`` call.

    The host owns the clock; the timer never schedules anything itself.
    """

    DEFAULT_SECONDS = 90

    def __init__(self, default_seconds: int = DEFAULT_SECONDS) -> None:
        self.default_seconds = default_seconds
        self.state = TimerState.IDLE
        self.remaining = 0
        self.duration = 0
        self._listeners: list[Callable[["RestTimer"], None]] = []

    def on_complete(self, callback: Callable[["RestTimer"], None]) -> None:
        self._listeners.append(callback)

    def start(self, seconds: object = None) -> TimerState:
        """Start a countdown, replacing any running or paused one."""
        try:
            duration = int(seconds) if seconds is not None else 0
        except (TypeError, ValueError):
            duration = 0
        if duration <= 0:
            duration = self.default_seconds
        self.duration = duration
        self.remaining = duration
        self.state = TimerState.RUNNING
        return self.state

    def pause(self) -> TimerState:
        if self.state is TimerState.RUNNING:
            self.state = TimerState.PAUSED
        return self.state

    def resume(self) -> TimerState:
        if self.state is TimerState.PAUSED:
            self.state = TimerState.RUNNING
        return self.state

    def stop(self) -> TimerState:
        self.state = TimerState.IDLE
        self.remaining = 0
        return self.state

    def tick(self) -> TimerState:
        """Advance the countdown by one second."""
        if self.state is not TimerState.RUNNING:
            return self.state
        self.remaining -= 1
        if self.remaining <= 0:
            self.remaining = 0
            self.state = TimerState.COMPLETE
            logger.info("Rest of %ss complete", self.duration)
            for callback in list(self._listeners):
                callback(self)
        return self.state

    @property
    def is_active(self) -> bool:
        return self.state in (TimerState.RUNNING, TimerState.PAUSED)

    def display(self) -> str:
        return TimeFormatter.ms(self.remaining)

    def snapshot(self) -> dict:
        return {
            "state": self.state.value,
            "remaining": self.remaining,
            "duration": self.duration,
            "display": self.display(),
        }
