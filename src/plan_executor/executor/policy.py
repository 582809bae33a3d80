"""Allow-list policy for command-run tasks."""

from __future__ import annotations

import re
from dataclasses import dataclass

from plan_executor.executor.errors import CommandRejectedError

DEFAULT_ALLOWED_COMMANDS: tuple[str, ...] = (
    "npm",
    "npx",
    "cargo",
    "python",
    "python3",
    "node",
    "tsc",
    "git",
    "eslint",
    "prettier",
    "jest",
    "vitest",
    "mkdir",
    "cp",
    "mv",
    "rm",
)
SHELL_METACHARACTERS: tuple[str, ...] = (";", "&&", "||", "|", "`", "$(")

_PATH_SEPARATORS = re.compile(r"[/\\]")


def command_base_name(command: str) -> str:
    """Last path component of ``command`` (``/usr/bin/git`` -> ``git``)."""

    return _PATH_SEPARATORS.split(command)[-1] or command


@dataclass(slots=True)
class CommandPolicy:
    """Reject commands outside the allow-list and arguments with shell syntax."""

    allowed_commands: tuple[str, ...] = DEFAULT_ALLOWED_COMMANDS

    def check(self, command: str, args: list[str]) -> None:
        base_name = command_base_name(command)
        if base_name not in self.allowed_commands:
            raise CommandRejectedError(
                f"Command {base_name!r} is not allowed. "
                f"Allowed commands: {', '.join(self.allowed_commands)}",
            )

        joined_args = " ".join(args)
        for token in SHELL_METACHARACTERS:
            if token in joined_args:
                raise CommandRejectedError(f"Forbidden shell syntax in arguments: {token}")
