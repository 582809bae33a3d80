"""Fixed toolchain invocations behind validation tasks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from plan_executor.executor.models import ValidationType


@dataclass(slots=True, frozen=True)
class ValidationCommand:
    """Resolved command for one validation type."""

    command: str
    args: tuple[str, ...]
    error_channel: Literal["stdout", "stderr"]
    failure_label: str
    success_message: str
    include_stdout_preview: bool = False


def validation_command(validation_type: ValidationType, target: str | None) -> ValidationCommand:
    """Map a validation type to its toolchain command."""

    if validation_type == ValidationType.SYNTAX:
        return ValidationCommand(
            command="tsc",
            args=("--noEmit", "--skipLibCheck"),
            error_channel="stderr",
            failure_label="TypeScript errors",
            success_message="TypeScript syntax check passed",
        )
    if validation_type == ValidationType.LINT:
        return ValidationCommand(
            command="npx",
            args=("eslint", target or ".", "--max-warnings=0"),
            error_channel="stdout",
            failure_label="ESLint errors",
            success_message="Lint check passed",
        )
    if validation_type == ValidationType.TEST:
        return ValidationCommand(
            command="npm",
            args=("test", "--", "--passWithNoTests"),
            error_channel="stdout",
            failure_label="Tests failed",
            success_message="Tests passed",
            include_stdout_preview=True,
        )
    if validation_type == ValidationType.BUILD:
        return ValidationCommand(
            command="npm",
            args=("run", "build"),
            error_channel="stderr",
            failure_label="Build failed",
            success_message="Build succeeded",
        )
    raise ValueError(f"Unknown validation type: {validation_type}")
