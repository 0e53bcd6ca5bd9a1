class WorkoutValidationError(ValueError):
    """Raised when user input cannot be applied to the workout log."""


class NotFoundError(LookupError):
    """Raised when an exercise, set or template id does not exist."""


class PersistenceError(RuntimeError):
    """Raised when the storage gateway fails to read or write state."""
