"""Collaborator interfaces consumed by the task executor."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(slots=True)
class ProcessResult:
    """Captured outcome of one external process."""

    exit_code: int
    stdout: str
    stderr: str
    timed_out: bool = False


class FileSystem(Protocol):
    """Durable file primitives used by file tasks and rollback."""

    def exists(self, path: Path) -> bool:
        """Return True when ``path`` exists."""

    def read_text(self, path: Path) -> str:
        """Read UTF-8 text; raise FileNotFoundError when absent."""

    def write_text(self, path: Path, content: str) -> None:
        """Create or overwrite ``path`` with ``content``."""

    def remove(self, path: Path) -> None:
        """Delete the file at ``path``."""


class ProcessRunner(Protocol):
    """Runs one program without a shell."""

    def run(
        self,
        command: str,
        args: list[str],
        *,
        cwd: Path,
        env: dict[str, str] | None = None,
    ) -> ProcessResult:
        """Run ``command`` with ``args`` and capture its output."""


class AiProvider(Protocol):
    """Opaque text-in/text-out model call."""

    def ask(self, query: str) -> str:
        """Return the model response to ``query``."""
