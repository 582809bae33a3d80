"""In-memory line edits applied by file-modify tasks."""

from __future__ import annotations

from collections.abc import Iterable

from plan_executor.executor.errors import LineEditError
from plan_executor.executor.models import ChangeType, LineChange


def apply_line_changes(content: str, changes: Iterable[LineChange]) -> str:
    """Apply changes in order and return the new file content.

    Each change sees the line array as left by the previous one. Indices are
    lenient: a negative ``insert``/``delete`` index counts from the end and is
    clamped to the first line, a ``delete`` past the end does nothing, and a
    ``replace`` past the end pads the gap with empty lines. A negative
    ``replace`` index is ignored.
    """

    lines = content.split("\n")
    for change in changes:
        if change.type == ChangeType.INSERT:
            if change.line is None:
                lines.append(change.content)
            else:
                lines.insert(change.line, change.content)
            continue

        if change.line is None:
            continue
        if change.type == ChangeType.DELETE:
            index = _clamp_start(change.line, len(lines))
            del lines[index : index + 1]
        elif change.type == ChangeType.REPLACE:
            if change.line < 0:
                continue
            if change.line >= len(lines):
                lines.extend([""] * (change.line + 1 - len(lines)))
            lines[change.line] = change.content
        else:
            raise LineEditError(f"Unsupported change type: {change.type!r}")

    return "\n".join(lines)


def _clamp_start(line: int, length: int) -> int:
    if line < 0:
        return max(length + line, 0)
    return line
