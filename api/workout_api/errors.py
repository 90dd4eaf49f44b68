"""Error taxonomy shared by the store, the enrichment collaborators and the API."""


class WorkoutError(Exception):
    """Base class; ``message`` is safe to show to API clients."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(WorkoutError):
    pass


class InvalidDateFormat(ValidationError):
    def __init__(self, value: str) -> None:
        super().__init__(
            f"Invalid date '{value}': expected 'today', 'yesterday' or YYYY-MM-DD"
        )
        self.value = value


class InvalidTimeframe(ValidationError):
    def __init__(self, value: str) -> None:
        super().__init__(f"Invalid timeframe '{value}'")
        self.value = value


class DuplicateKey(WorkoutError):
    def __init__(self, workout_name: str) -> None:
        super().__init__(f"Workout '{workout_name}' already exists")
        self.workout_name = workout_name


class EnrichmentUnavailable(WorkoutError):
    pass


class StoreUnavailable(WorkoutError):
    pass
