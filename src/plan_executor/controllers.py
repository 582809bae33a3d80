"""Controllers for plan CLI commands."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from plan_executor.ai import HttpChatProvider, build_ai_provider
from plan_executor.config import Settings
from plan_executor.executor.engine import TaskExecutor
from plan_executor.executor.models import AnyTask, ExecutionContext, TaskResult, TaskType
from plan_executor.executor.ports import AiProvider
from plan_executor.plan import PlanError, read_plan


@dataclass(slots=True)
class PlanRunCommand:
    """CLI input for executing a plan."""

    plan_path: Path
    working_directory: Path | None
    dry_run: bool
    environment: tuple[str, ...] = ()
    rollback_on_failure: bool = False


@dataclass(slots=True)
class PlanCheckCommand:
    """CLI input for plan validation."""

    plan_path: Path


@dataclass(slots=True)
class PlanCommandResult:
    """Report lines to render in CLI."""

    lines: list[str]
    success: bool


@dataclass(slots=True)
class PlanRunSummary:
    """Aggregate counters for one plan run."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    not_run: int = 0


def summarize_results(tasks: Sequence[AnyTask], results: Sequence[TaskResult]) -> PlanRunSummary:
    """Count outcomes; tasks beyond the result list were never attempted."""

    summary = PlanRunSummary(total=len(tasks), not_run=max(0, len(tasks) - len(results)))
    for result in results:
        if result.success:
            summary.succeeded += 1
        elif result.skipped:
            summary.skipped += 1
        else:
            summary.failed += 1
    return summary


class PlanCliController:
    """Coordinates plan loading, execution and reporting."""

    def run(self, command: PlanRunCommand) -> PlanCommandResult:
        try:
            settings = Settings.from_env(working_directory=command.working_directory)
            settings.validate()
            environment = _parse_environment(command.environment)
            tasks = read_plan(command.plan_path)
        except (OSError, ValueError) as error:
            return PlanCommandResult(lines=[f"Plan run aborted: {error}"], success=False)

        context = ExecutionContext(
            working_directory=settings.working_directory,
            environment=environment,
            dry_run=command.dry_run or settings.dry_run,
        )
        with _ai_provider(settings) as ai_provider:
            executor = TaskExecutor.from_settings(settings.executor, ai_provider=ai_provider)
            results = executor.execute_tasks(tasks, context)

            lines = [
                f"Plan: {command.plan_path} ({len(tasks)} tasks)"
                + (" [dry run]" if context.dry_run else ""),
            ]
            lines.extend(_render_result(task, result) for task, result in zip(tasks, results))
            summary = summarize_results(tasks, results)
            lines.append(
                "Run summary: "
                f"total={summary.total} succeeded={summary.succeeded} "
                f"failed={summary.failed} skipped={summary.skipped} not_run={summary.not_run}",
            )

            success = summary.failed == 0 and summary.skipped == 0 and summary.not_run == 0
            if not success and command.rollback_on_failure and not context.dry_run:
                rollback = executor.rollback()
                lines.append(
                    f"Rollback: applied={rollback.applied} failed={rollback.failed}",
                )

        return PlanCommandResult(lines=lines, success=success)

    def check(self, command: PlanCheckCommand) -> PlanCommandResult:
        try:
            tasks = read_plan(command.plan_path)
        except (OSError, PlanError) as error:
            return PlanCommandResult(lines=[f"Invalid plan: {error}"], success=False)

        known_ids: set[str] = set()
        lines = [f"Plan: {command.plan_path} ({len(tasks)} tasks)"]
        success = True
        for index, task in enumerate(tasks, start=1):
            dependencies = ", ".join(task.metadata.dependencies) or "-"
            retry = (
                f"retryable max_retries={task.metadata.max_retries}"
                if task.metadata.retryable
                else "fatal"
            )
            lines.append(
                f"{index}. {task.id} {_type_label(task)} deps={dependencies} {retry}: "
                f"{task.description}",
            )
            unknown = [dep for dep in task.metadata.dependencies if dep not in known_ids]
            if unknown:
                success = False
                lines.append(f"   dependency not defined earlier in plan: {', '.join(unknown)}")
            known_ids.add(task.id)
        return PlanCommandResult(lines=lines, success=success)


@contextmanager
def _ai_provider(settings: Settings) -> Iterator[AiProvider | None]:
    provider = build_ai_provider(settings.ai)
    try:
        yield provider
    finally:
        if isinstance(provider, HttpChatProvider):
            provider.close()


def _parse_environment(pairs: Sequence[str]) -> dict[str, str]:
    environment: dict[str, str] = {}
    for pair in pairs:
        key, separator, value = pair.partition("=")
        if not separator or not key.strip():
            raise ValueError(f"Invalid --env value {pair!r}. Expected KEY=VALUE.")
        environment[key.strip()] = value
    return environment


def _render_result(task: AnyTask, result: TaskResult) -> str:
    if result.skipped:
        label = "skipped"
    elif result.success:
        label = "ok"
    else:
        label = "failed"
    detail = _truncate((result.output if result.success else result.error) or "")
    return f"[{label}] {task.id} {_type_label(task)} {result.duration_ms}ms: {detail}"


def _truncate(value: str, *, limit: int = 240) -> str:
    compact = value.strip().replace("\n", " ")
    if len(compact) <= limit:
        return compact
    return compact[:limit] + "..."


def _type_label(task: AnyTask) -> str:
    return TaskType(task.task_type).value
