"""JSON plan documents: the task list handed to the executor."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from uuid import uuid4

from plan_executor.executor.models import (
    AIQueryTask,
    AnyTask,
    ChangeType,
    CommandRunTask,
    FileCreateTask,
    FileDeleteTask,
    FileModifyTask,
    LineChange,
    TaskMetadata,
    TaskType,
    ValidationTask,
    ValidationType,
)


class PlanError(ValueError):
    """Plan document is malformed."""


def read_plan(path: Path) -> list[AnyTask]:
    """Load and validate a plan document."""

    try:
        payload = json.loads(path.read_text("utf-8"))
    except json.JSONDecodeError as error:
        raise PlanError(f"Plan {path} is not valid JSON: {error}") from error
    return parse_plan(payload)


def write_plan(path: Path, tasks: list[AnyTask]) -> None:
    """Persist tasks as a plan document using deterministic formatting."""

    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"tasks": [task_to_dict(task) for task in tasks]}
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), "utf-8")


def parse_plan(payload: Any) -> list[AnyTask]:
    """Build tasks from a decoded plan document."""

    if isinstance(payload, list):
        raw_tasks = payload
    elif isinstance(payload, dict):
        raw_tasks = payload.get("tasks")
    else:
        raise PlanError("Plan must be a JSON object with a 'tasks' array")
    if not isinstance(raw_tasks, list):
        raise PlanError("plan.tasks must be an array")

    tasks: list[AnyTask] = []
    seen_ids: set[str] = set()
    for index, raw in enumerate(raw_tasks):
        task = parse_task(raw, where=f"tasks[{index}]")
        if task.id in seen_ids:
            raise PlanError(f"tasks[{index}].id duplicates an earlier task: {task.id!r}")
        seen_ids.add(task.id)
        tasks.append(task)
    return tasks


def parse_task(raw: Any, *, where: str = "task") -> AnyTask:  # noqa: C901
    """Build one task from its JSON object."""

    if not isinstance(raw, dict):
        raise PlanError(f"{where} must be an object")

    type_raw = raw.get("type")
    try:
        task_type = TaskType(type_raw)
    except ValueError as error:
        supported = ", ".join(item.value for item in TaskType)
        raise PlanError(
            f"{where}.type must be one of: {supported} (got {type_raw!r})",
        ) from error

    task_id = raw.get("id")
    if task_id is None:
        task_id = str(uuid4())
    elif not isinstance(task_id, str) or not task_id.strip():
        raise PlanError(f"{where}.id must be a non-empty string")

    metadata = _parse_metadata(raw.get("metadata", {}), where=f"{where}.metadata")
    description = raw.get("description")
    if description is not None and not isinstance(description, str):
        raise PlanError(f"{where}.description must be a string")

    common: dict[str, Any] = {"id": task_id, "metadata": metadata}

    if task_type == TaskType.FILE_CREATE:
        file_path = _required_str(raw, "file_path", where)
        content = raw.get("content", "")
        if not isinstance(content, str):
            raise PlanError(f"{where}.content must be a string")
        return FileCreateTask(
            description=description or f"Create {file_path}",
            file_path=file_path,
            content=content,
            **common,
        )

    if task_type == TaskType.FILE_MODIFY:
        file_path = _required_str(raw, "file_path", where)
        raw_changes = raw.get("changes")
        if not isinstance(raw_changes, list):
            raise PlanError(f"{where}.changes must be an array")
        changes = [
            _parse_change(item, where=f"{where}.changes[{change_index}]")
            for change_index, item in enumerate(raw_changes)
        ]
        return FileModifyTask(
            description=description or f"Modify {file_path}",
            file_path=file_path,
            changes=changes,
            **common,
        )

    if task_type == TaskType.FILE_DELETE:
        file_path = _required_str(raw, "file_path", where)
        return FileDeleteTask(
            description=description or f"Delete {file_path}",
            file_path=file_path,
            **common,
        )

    if task_type == TaskType.COMMAND_RUN:
        command = _required_str(raw, "command", where)
        args = raw.get("args", [])
        if not isinstance(args, list) or not all(isinstance(arg, str) for arg in args):
            raise PlanError(f"{where}.args must be an array of strings")
        return CommandRunTask(
            description=description or f"Run {' '.join([command, *args])}",
            command=command,
            args=list(args),
            **common,
        )

    if task_type == TaskType.AI_QUERY:
        query = _required_str(raw, "query", where)
        return AIQueryTask(description=description or "Query AI", query=query, **common)

    validation_raw = raw.get("validation_type")
    try:
        validation_type = ValidationType(validation_raw)
    except ValueError as error:
        supported = ", ".join(item.value for item in ValidationType)
        raise PlanError(
            f"{where}.validation_type must be one of: {supported} (got {validation_raw!r})",
        ) from error
    target = raw.get("target")
    if target is not None and not isinstance(target, str):
        raise PlanError(f"{where}.target must be a string when provided")
    return ValidationTask(
        description=description or f"Validate ({validation_type.value})",
        validation_type=validation_type,
        target=target,
        **common,
    )


def task_to_dict(task: AnyTask) -> dict[str, Any]:
    """Serialize the caller-owned fields of a task."""

    payload: dict[str, Any] = {
        "id": task.id,
        "type": TaskType(task.task_type).value,
        "description": task.description,
        "metadata": {
            "dependencies": list(task.metadata.dependencies),
            "retryable": task.metadata.retryable,
            "max_retries": task.metadata.max_retries,
        },
    }
    if isinstance(task, FileCreateTask):
        payload.update(file_path=task.file_path, content=task.content)
    elif isinstance(task, FileModifyTask):
        payload.update(
            file_path=task.file_path,
            changes=[
                {"type": change.type.value, "line": change.line, "content": change.content}
                for change in task.changes
            ],
        )
    elif isinstance(task, FileDeleteTask):
        payload.update(file_path=task.file_path)
    elif isinstance(task, CommandRunTask):
        payload.update(command=task.command, args=list(task.args))
    elif isinstance(task, AIQueryTask):
        payload.update(query=task.query)
    elif isinstance(task, ValidationTask):
        payload.update(validation_type=task.validation_type.value, target=task.target)
    return payload


def _parse_metadata(raw: Any, *, where: str) -> TaskMetadata:
    if not isinstance(raw, dict):
        raise PlanError(f"{where} must be an object")

    dependencies = raw.get("dependencies", [])
    if not isinstance(dependencies, list) or not all(
        isinstance(item, str) and item.strip() for item in dependencies
    ):
        raise PlanError(f"{where}.dependencies must be an array of task ids")

    retryable = raw.get("retryable", False)
    if not isinstance(retryable, bool):
        raise PlanError(f"{where}.retryable must be a boolean")

    max_retries = raw.get("max_retries")
    if max_retries is not None and (
        not isinstance(max_retries, int) or isinstance(max_retries, bool) or max_retries < 0
    ):
        raise PlanError(f"{where}.max_retries must be an integer >= 0")

    return TaskMetadata(
        dependencies=tuple(dict.fromkeys(dependencies)),
        retryable=retryable,
        max_retries=max_retries,
    )


def _parse_change(raw: Any, *, where: str) -> LineChange:
    if not isinstance(raw, dict):
        raise PlanError(f"{where} must be an object")
    try:
        change_type = ChangeType(raw.get("type"))
    except ValueError as error:
        raise PlanError(f"{where}.type must be one of: insert, delete, replace") from error

    line = raw.get("line")
    if line is not None and (not isinstance(line, int) or isinstance(line, bool) or line < 0):
        raise PlanError(f"{where}.line must be an integer >= 0 when provided")

    content = raw.get("content", "")
    if not isinstance(content, str):
        raise PlanError(f"{where}.content must be a string")
    return LineChange(type=change_type, content=content, line=line)


def _required_str(raw: dict[str, Any], key: str, where: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value.strip():
        raise PlanError(f"{where}.{key} must be a non-empty string")
    return value
