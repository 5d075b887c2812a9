"""Exception hierarchy for choreloop.

- ConfigError: bad configuration or recurrence expression
- StoreError: database failure, the current operation was rolled back
- DataIntegrityWarning: a persisted row that cannot be rendered; callers
  log it and drop the row instead of failing the request
"""


class ChoreLoopError(Exception):
    """Base exception for choreloop errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ConfigError(ChoreLoopError):
    """Configuration could not be loaded or validated."""


class InvalidRecurrenceExpression(ConfigError):
    """A chore's recurrence expression cannot be parsed."""

    def __init__(self, expression: str, reason: str, title: str = None):
        self.expression = expression
        self.reason = reason
        self.title = title
        if title:
            message = f'Invalid recurrence expression "{expression}" for chore "{title}": {reason}'
        else:
            message = f'Invalid recurrence expression "{expression}": {reason}'
        super().__init__(message)


class StoreError(ChoreLoopError):
    """A database operation failed and was rolled back."""


class DataIntegrityWarning(ChoreLoopError):
    """A persisted chore instance cannot be turned into a display row."""


class UnknownStatusError(DataIntegrityWarning):
    def __init__(self, status: str):
        self.status = status
        super().__init__(f'Unknown status "{status}"')


class StatusInvariantError(DataIntegrityWarning):
    """An assigned instance is both upcoming and overdue.

    Only possible when overdue_time <= expected_completion_time, which the
    generator never writes.
    """

    def __init__(self, expected_completion_time: int, overdue_time: int, now: int):
        self.expected_completion_time = expected_completion_time
        self.overdue_time = overdue_time
        self.now = now
        super().__init__(
            f'Instance is both upcoming and overdue '
            f'(expected={expected_completion_time}, overdue={overdue_time}, now={now})'
        )
