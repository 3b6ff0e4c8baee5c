class TaskError(Exception):
    """Base exception for task lifecycle errors."""


class InvalidTransitionError(TaskError):
    """Raised when a status change would break pipeline ordering."""


class TaskNotFoundError(TaskError):
    """Raised when no task with the requested id exists."""
