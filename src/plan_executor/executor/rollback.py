"""Inspectable undo operations for durable file changes."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from plan_executor.executor.ports import FileSystem


@dataclass(slots=True, frozen=True)
class DeleteFile:
    """Undo of a file creation."""

    path: Path


@dataclass(slots=True, frozen=True)
class RestoreFile:
    """Undo of a modification or deletion: write back the captured content."""

    path: Path
    content: str


RollbackOperation = DeleteFile | RestoreFile


@dataclass(slots=True, frozen=True)
class RollbackAction:
    """Undo record pushed after a file task has applied its change."""

    task_id: str
    description: str
    operation: RollbackOperation

    def undo(self, filesystem: FileSystem) -> None:
        operation = self.operation
        if isinstance(operation, DeleteFile):
            filesystem.remove(operation.path)
        elif isinstance(operation, RestoreFile):
            filesystem.write_text(operation.path, operation.content)
        else:
            raise TypeError(f"Unsupported rollback operation: {operation!r}")


@dataclass(slots=True)
class RollbackSummary:
    """Counters reported by one rollback pass."""

    applied: int = 0
    failed: int = 0


@dataclass(slots=True)
class RollbackStack:
    """LIFO stack of applied undo actions."""

    _actions: list[RollbackAction] = field(default_factory=list)

    def push(self, action: RollbackAction) -> None:
        self._actions.append(action)

    def pop(self) -> RollbackAction:
        return self._actions.pop()

    def snapshot(self) -> tuple[RollbackAction, ...]:
        """Actions in push order (the last one is undone first)."""

        return tuple(self._actions)

    def clear(self) -> None:
        self._actions.clear()

    def __len__(self) -> int:
        return len(self._actions)
