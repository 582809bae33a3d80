"""Errors raised by task handlers and collaborators."""

from __future__ import annotations


class TaskExecutionError(RuntimeError):
    """Base class for per-task failures converted into failed results."""


class TaskPreconditionError(TaskExecutionError):
    """A task cannot start because its input or environment is invalid."""


class CommandRejectedError(TaskPreconditionError):
    """Command or arguments violate the command policy."""


class CommandNotFoundError(TaskExecutionError):
    """Executable could not be started."""


class ProcessFailedError(TaskExecutionError):
    """External process exited with a non-zero code."""

    def __init__(self, message: str, *, exit_code: int) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class LineEditError(ValueError):
    """A line change does not fit the current file content."""
