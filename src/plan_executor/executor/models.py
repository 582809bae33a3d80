"""Domain models for plan tasks and their execution results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import ClassVar

DEPENDENCIES_NOT_MET = "Dependencies not met"


def utc_now() -> datetime:
    """Current UTC timestamp."""

    return datetime.now(tz=UTC)


class TaskStatus(str, Enum):
    """Task lifecycle states."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"


class TaskType(str, Enum):
    """Discriminator of the task variants."""

    FILE_CREATE = "file-create"
    FILE_MODIFY = "file-modify"
    FILE_DELETE = "file-delete"
    COMMAND_RUN = "command-run"
    AI_QUERY = "ai-query"
    VALIDATION = "validation"


class ValidationType(str, Enum):
    """Toolchain checks a validation task can run."""

    SYNTAX = "syntax"
    LINT = "lint"
    TEST = "test"
    BUILD = "build"


class ChangeType(str, Enum):
    """Line-level edit kinds for file-modify tasks."""

    INSERT = "insert"
    DELETE = "delete"
    REPLACE = "replace"


@dataclass(slots=True)
class LineChange:
    """One line edit; ``line`` is 0-based."""

    type: ChangeType
    content: str = ""
    line: int | None = None


@dataclass(slots=True)
class TaskMetadata:
    """Scheduling policy attached to a task."""

    dependencies: tuple[str, ...] = ()
    retryable: bool = False
    max_retries: int | None = None


@dataclass(slots=True)
class TaskResult:
    """Outcome of one task attempt (or a synthesized dependency skip)."""

    success: bool
    duration_ms: int
    timestamp: datetime
    output: str | None = None
    error: str | None = None
    skipped: bool = False

    @classmethod
    def succeeded(cls, *, output: str, duration_ms: int) -> TaskResult:
        return cls(success=True, output=output, duration_ms=duration_ms, timestamp=utc_now())

    @classmethod
    def failed(cls, *, error: str, duration_ms: int) -> TaskResult:
        return cls(success=False, error=error, duration_ms=duration_ms, timestamp=utc_now())

    @classmethod
    def dependencies_not_met(cls) -> TaskResult:
        """Result for a task skipped because a dependency has no successful result."""

        return cls(
            success=False,
            error=DEPENDENCIES_NOT_MET,
            duration_ms=0,
            timestamp=utc_now(),
            skipped=True,
        )


@dataclass(slots=True, kw_only=True)
class Task:
    """Common fields of every plan step.

    Only ``status``, ``started_at``, ``completed_at`` and ``result`` are
    written by the executor; everything else is owned by the caller.
    """

    task_type: ClassVar[str] = ""

    id: str
    description: str
    metadata: TaskMetadata = field(default_factory=TaskMetadata)
    status: TaskStatus = TaskStatus.PENDING
    started_at: datetime | None = None
    completed_at: datetime | None = None
    result: TaskResult | None = None


@dataclass(slots=True, kw_only=True)
class FileCreateTask(Task):
    task_type: ClassVar[str] = TaskType.FILE_CREATE

    file_path: str
    content: str


@dataclass(slots=True, kw_only=True)
class FileModifyTask(Task):
    task_type: ClassVar[str] = TaskType.FILE_MODIFY

    file_path: str
    changes: list[LineChange] = field(default_factory=list)


@dataclass(slots=True, kw_only=True)
class FileDeleteTask(Task):
    task_type: ClassVar[str] = TaskType.FILE_DELETE

    file_path: str


@dataclass(slots=True, kw_only=True)
class CommandRunTask(Task):
    task_type: ClassVar[str] = TaskType.COMMAND_RUN

    command: str
    args: list[str] = field(default_factory=list)


@dataclass(slots=True, kw_only=True)
class AIQueryTask(Task):
    task_type: ClassVar[str] = TaskType.AI_QUERY

    query: str


@dataclass(slots=True, kw_only=True)
class ValidationTask(Task):
    task_type: ClassVar[str] = TaskType.VALIDATION

    validation_type: ValidationType
    target: str | None = None


AnyTask = (
    FileCreateTask
    | FileModifyTask
    | FileDeleteTask
    | CommandRunTask
    | AIQueryTask
    | ValidationTask
)


@dataclass(slots=True)
class ExecutionContext:
    """Run-scoped settings shared by every task of a batch."""

    working_directory: Path
    environment: dict[str, str] = field(default_factory=dict)
    dry_run: bool = False

    def resolve(self, file_path: str) -> Path:
        """Resolve a task path against the working directory."""

        path = Path(file_path)
        if path.is_absolute():
            return path
        return Path(self.working_directory) / path
