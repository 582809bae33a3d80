"""Task executor: sequential run loop, per-type handlers and rollback."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import replace
from typing import Any

from plan_executor.ai.base import AiProviderError
from plan_executor.config import ExecutorSettings
from plan_executor.executor.errors import (
    ProcessFailedError,
    TaskExecutionError,
    TaskPreconditionError,
)
from plan_executor.executor.filesystem import LocalFileSystem
from plan_executor.executor.line_edits import apply_line_changes
from plan_executor.executor.models import (
    AIQueryTask,
    CommandRunTask,
    ExecutionContext,
    FileCreateTask,
    FileDeleteTask,
    FileModifyTask,
    Task,
    TaskResult,
    TaskStatus,
    TaskType,
    ValidationTask,
    ValidationType,
    utc_now,
)
from plan_executor.executor.policy import CommandPolicy
from plan_executor.executor.ports import AiProvider, FileSystem, ProcessRunner
from plan_executor.executor.process import SubprocessRunner
from plan_executor.executor.rollback import (
    DeleteFile,
    RestoreFile,
    RollbackAction,
    RollbackOperation,
    RollbackStack,
    RollbackSummary,
)
from plan_executor.executor.validation import validation_command
from plan_executor.sanitization import sanitize_preview

logger = logging.getLogger(__name__)

DRY_RUN_PREFIX = "[DRY RUN]"
DEFAULT_MAX_RETRIES = 3
DEFAULT_OUTPUT_PREVIEW_CHARS = 500


class TaskExecutor:
    """Runs plan tasks one at a time and owns their history and undo stack.

    One instance serves one plan; concurrent ``execute_tasks`` calls on the
    same instance are not supported.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        filesystem: FileSystem | None = None,
        process_runner: ProcessRunner | None = None,
        ai_provider: AiProvider | None = None,
        command_policy: CommandPolicy | None = None,
        default_max_retries: int = DEFAULT_MAX_RETRIES,
        retry_backoff_seconds: float = 1.0,
        output_preview_chars: int = DEFAULT_OUTPUT_PREVIEW_CHARS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.filesystem = filesystem or LocalFileSystem()
        self.process_runner = process_runner or SubprocessRunner()
        self.ai_provider = ai_provider
        self.command_policy = command_policy or CommandPolicy()
        self.default_max_retries = default_max_retries
        self.retry_backoff_seconds = retry_backoff_seconds
        self.output_preview_chars = output_preview_chars
        self._sleep = sleep
        self._rollback_stack = RollbackStack()
        self._history: dict[str, TaskResult] = {}
        self._handlers: dict[str, Callable[[Any, ExecutionContext], str]] = {
            TaskType.FILE_CREATE: self._execute_file_create,
            TaskType.FILE_MODIFY: self._execute_file_modify,
            TaskType.FILE_DELETE: self._execute_file_delete,
            TaskType.COMMAND_RUN: self._execute_command,
            TaskType.AI_QUERY: self._execute_ai_query,
            TaskType.VALIDATION: self._execute_validation,
        }

    @classmethod
    def from_settings(
        cls,
        settings: ExecutorSettings,
        *,
        ai_provider: AiProvider | None = None,
        filesystem: FileSystem | None = None,
        process_runner: ProcessRunner | None = None,
    ) -> TaskExecutor:
        """Build an executor from environment-driven settings."""

        return cls(
            filesystem=filesystem,
            process_runner=process_runner
            or SubprocessRunner(timeout_seconds=settings.command_timeout_seconds),
            ai_provider=ai_provider,
            command_policy=CommandPolicy(allowed_commands=settings.allowed_commands),
            default_max_retries=settings.default_max_retries,
            retry_backoff_seconds=settings.retry_backoff_seconds,
            output_preview_chars=settings.output_preview_chars,
        )

    def execute_task(self, task: Task, context: ExecutionContext) -> TaskResult:
        """Execute one task; failures come back as a failed result, never raised."""

        started = time.monotonic()
        task.status = TaskStatus.IN_PROGRESS
        task.started_at = utc_now()
        logger.info("Executing task %s: %s", task.id, task.description)

        try:
            handler = self._handlers.get(task.task_type)
            if handler is None:
                raise TaskExecutionError(f"Unknown task type: {task.task_type}")
            output = handler(task, context)
        except Exception as error:  # noqa: BLE001
            result = TaskResult.failed(
                error=str(error) or type(error).__name__,
                duration_ms=_elapsed_ms(started),
            )
            self._settle(task, TaskStatus.FAILED, result)
            logger.error(
                "Task failed: %s: %s%s",
                task.description,
                result.error,
                _failure_detail(error),
            )
            return result

        result = TaskResult.succeeded(output=output, duration_ms=_elapsed_ms(started))
        self._settle(task, TaskStatus.COMPLETED, result)
        logger.info("Task completed: %s (%d ms)", task.description, result.duration_ms)
        return result

    def execute_tasks(self, tasks: Sequence[Task], context: ExecutionContext) -> list[TaskResult]:
        """Run tasks in order with dependency gating, retries and halt-on-fatal.

        The returned list is shorter than ``tasks`` only when a non-retryable
        failure halted the batch.
        """

        results: list[TaskResult] = []
        for task in tasks:
            if not self._dependencies_met(task):
                logger.warning(
                    "Skipping task %s due to unmet dependencies: %s",
                    task.id,
                    ", ".join(task.metadata.dependencies),
                )
                results.append(TaskResult.dependencies_not_met())
                continue

            result = self.execute_task(task, context)
            results.append(result)
            if result.success:
                continue

            if not task.metadata.retryable:
                logger.error("Stopping execution due to non-retryable failure of task %s", task.id)
                break

            results[-1] = self._retry(task, context, result)

        return results

    def rollback(self) -> RollbackSummary:
        """Undo every recorded file change, most recent first.

        A failing undo is logged and the unwind continues. Task statuses and
        results are left untouched.
        """

        summary = RollbackSummary()
        logger.info("Rolling back %d actions", len(self._rollback_stack))
        while self._rollback_stack:
            action = self._rollback_stack.pop()
            logger.info("Undo %s (task %s)", action.description, action.task_id)
            try:
                action.undo(self.filesystem)
            except Exception as error:  # noqa: BLE001
                summary.failed += 1
                logger.error("Rollback failed: %s: %s", action.description, error)
                continue
            summary.applied += 1

        logger.info("Rollback complete: applied=%d failed=%d", summary.applied, summary.failed)
        return summary

    def rollback_actions(self) -> tuple[RollbackAction, ...]:
        """Pending undo actions in the order they were recorded."""

        return self._rollback_stack.snapshot()

    def clear_rollback(self) -> None:
        self._rollback_stack.clear()

    def get_history(self) -> dict[str, TaskResult]:
        """Copy of the task id -> latest result map."""

        return {task_id: replace(result) for task_id, result in self._history.items()}

    def clear_history(self) -> None:
        self._history.clear()

    def _retry(self, task: Task, context: ExecutionContext, failed: TaskResult) -> TaskResult:
        max_retries = task.metadata.max_retries
        if max_retries is None:
            max_retries = self.default_max_retries

        result = failed
        for attempt in range(1, max_retries + 1):
            logger.info("Retrying task (%d/%d): %s", attempt, max_retries, task.description)
            self._sleep(self.retry_backoff_seconds * attempt)
            result = self.execute_task(task, context)
            if result.success:
                break
        return result

    def _dependencies_met(self, task: Task) -> bool:
        for dependency_id in task.metadata.dependencies:
            dependency_result = self._history.get(dependency_id)
            if dependency_result is None or not dependency_result.success:
                return False
        return True

    def _settle(self, task: Task, status: TaskStatus, result: TaskResult) -> None:
        task.status = status
        task.completed_at = result.timestamp
        task.result = result
        self._history[task.id] = result

    def _add_rollback(self, task_id: str, operation: RollbackOperation, description: str) -> None:
        self._rollback_stack.push(
            RollbackAction(task_id=task_id, description=description, operation=operation),
        )

    def _execute_file_create(self, task: FileCreateTask, context: ExecutionContext) -> str:
        if context.dry_run:
            return f"{DRY_RUN_PREFIX} Would create file: {task.file_path}"

        path = context.resolve(task.file_path)
        if self.filesystem.exists(path):
            raise TaskPreconditionError(f"File already exists: {task.file_path}")

        self.filesystem.write_text(path, task.content)
        self._add_rollback(task.id, DeleteFile(path=path), f"Delete file: {task.file_path}")
        return f"Created file: {task.file_path}"

    def _execute_file_modify(self, task: FileModifyTask, context: ExecutionContext) -> str:
        if context.dry_run:
            return f"{DRY_RUN_PREFIX} Would modify file: {task.file_path}"

        path = context.resolve(task.file_path)
        original_content = self.filesystem.read_text(path)
        modified_content = apply_line_changes(original_content, task.changes)

        self.filesystem.write_text(path, modified_content)
        self._add_rollback(
            task.id,
            RestoreFile(path=path, content=original_content),
            f"Restore file: {task.file_path}",
        )
        return f"Modified file: {task.file_path}"

    def _execute_file_delete(self, task: FileDeleteTask, context: ExecutionContext) -> str:
        if context.dry_run:
            return f"{DRY_RUN_PREFIX} Would delete file: {task.file_path}"

        path = context.resolve(task.file_path)
        content = self.filesystem.read_text(path)

        self.filesystem.remove(path)
        self._add_rollback(
            task.id,
            RestoreFile(path=path, content=content),
            f"Restore file: {task.file_path}",
        )
        return f"Deleted file: {task.file_path}"

    def _execute_command(self, task: CommandRunTask, context: ExecutionContext) -> str:
        if context.dry_run:
            return f"{DRY_RUN_PREFIX} Would run command: {_render_argv(task.command, task.args)}"

        self.command_policy.check(task.command, task.args)
        outcome = self.process_runner.run(
            task.command,
            list(task.args),
            cwd=context.working_directory,
            env=context.environment or None,
        )
        if outcome.timed_out:
            logger.warning("Command timed out: %s", _render_argv(task.command, task.args))
        if outcome.exit_code != 0:
            raise ProcessFailedError(
                f"Command failed with code {outcome.exit_code}: {sanitize_preview(outcome.stderr)}",
                exit_code=outcome.exit_code,
            )
        if outcome.stdout.strip():
            return outcome.stdout
        return f"Command succeeded: {_render_argv(task.command, task.args)}"

    def _execute_ai_query(self, task: AIQueryTask, context: ExecutionContext) -> str:
        if context.dry_run:
            return f"{DRY_RUN_PREFIX} Would query AI: {task.query}"

        if self.ai_provider is None:
            raise TaskPreconditionError("No AI provider configured for ai-query tasks.")
        return self.ai_provider.ask(task.query)

    def _execute_validation(self, task: ValidationTask, context: ExecutionContext) -> str:
        if context.dry_run:
            kind = getattr(task.validation_type, "value", task.validation_type)
            return f"{DRY_RUN_PREFIX} Would validate ({kind}): {task.target or '.'}"

        spec = validation_command(ValidationType(task.validation_type), task.target)
        outcome = self.process_runner.run(
            spec.command,
            list(spec.args),
            cwd=context.working_directory,
            env=context.environment or None,
        )
        if outcome.timed_out:
            logger.warning("Validation timed out: %s", _render_argv(spec.command, spec.args))
        if outcome.exit_code != 0:
            diagnostics = outcome.stdout if spec.error_channel == "stdout" else outcome.stderr
            raise ProcessFailedError(
                f"{spec.failure_label}:\n{sanitize_preview(diagnostics)}",
                exit_code=outcome.exit_code,
            )
        if spec.include_stdout_preview:
            return f"{spec.success_message}:\n{outcome.stdout[: self.output_preview_chars]}"
        return spec.success_message


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _render_argv(command: str, args: Sequence[str]) -> str:
    return " ".join([command, *args])


def _failure_detail(error: Exception) -> str:
    if isinstance(error, ProcessFailedError):
        return f" (exit code {error.exit_code})"
    if isinstance(error, AiProviderError):
        return " (transient)" if error.transient else " (permanent)"
    return ""
