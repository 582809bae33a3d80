"""Subprocess implementation of the process-runner port."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from plan_executor.executor.errors import CommandNotFoundError, TaskPreconditionError
from plan_executor.executor.ports import ProcessResult

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = 124


class SubprocessRunner:
    """Run argv lists with captured text output and an optional timeout."""

    def __init__(self, *, timeout_seconds: float | None = None) -> None:
        self.timeout_seconds = timeout_seconds

    def run(
        self,
        command: str,
        args: list[str],
        *,
        cwd: Path,
        env: dict[str, str] | None = None,
    ) -> ProcessResult:
        if not Path(cwd).is_dir():
            raise TaskPreconditionError(f"Working directory does not exist: {cwd}")

        process_env = None
        if env:
            process_env = os.environ.copy()
            process_env.update(env)

        try:
            completed = subprocess.run(  # noqa: S603
                [command, *args],
                cwd=cwd,
                env=process_env,
                check=False,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
            )
        except subprocess.TimeoutExpired as error:
            logger.warning("Command timed out after %ss: %s", self.timeout_seconds, command)
            return ProcessResult(
                exit_code=TIMEOUT_EXIT_CODE,
                stdout=_as_text(error.stdout),
                stderr=_as_text(error.stderr) or f"Timed out after {self.timeout_seconds}s",
                timed_out=True,
            )
        except FileNotFoundError as error:
            raise CommandNotFoundError(f"Command not found: {command}") from error

        return ProcessResult(
            exit_code=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )


def _as_text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value
