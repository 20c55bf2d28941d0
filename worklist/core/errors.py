class WorklistError(Exception):
    pass


class NotFoundError(WorklistError):
    pass


class ValidationError(WorklistError):
    pass


class ConflictError(WorklistError):
    def __init__(self, goal_id: str, expected: int, actual: int):
        self.goal_id = goal_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"goal '{goal_id}' changed underneath us (expected version {expected}, found {actual})"
        )


class PermissionDeniedError(WorklistError):
    pass


class TransientFetchError(WorklistError):
    pass


class DataIntegrityWarning(WorklistError, UserWarning):
    """Malformed routine data. Logged and skipped, never surfaced to the user."""

    def __init__(self, routine_id: str, reason: str):
        self.routine_id = routine_id
        self.reason = reason
        super().__init__(f"routine '{routine_id}': {reason}")


class AmbiguousError(WorklistError):
    def __init__(self, ref: str, count: int = 0, sample: list[str] | None = None):
        self.ref = ref
        self.count = count
        self.sample = sample or []
        count_note = f" ({count})" if count else ""
        note = f": {', '.join(self.sample)}" if self.sample else ""
        super().__init__(f"ambiguous ref '{ref}' matches multiple items{count_note}{note}")
