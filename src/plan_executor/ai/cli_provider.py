"""Subprocess-based AI provider for CLI agents."""

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path
from tempfile import TemporaryDirectory

from plan_executor.ai.base import AiProviderError
from plan_executor.sanitization import sanitize_preview

logger = logging.getLogger(__name__)


class CliAgentProvider:
    """Answer queries by running a command template such as ``claude -p {prompt}``.

    Supported placeholders: ``{prompt}``, ``{prompt_file}`` and ``{model}``.
    """

    def __init__(
        self,
        *,
        command_template: str,
        model: str = "",
        timeout_seconds: float = 120.0,
        transient_exit_codes: tuple[int, ...] = (137, 143),
    ) -> None:
        self.command_template = command_template
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.transient_exit_codes = transient_exit_codes

    def ask(self, query: str) -> str:
        with TemporaryDirectory(prefix="plan-executor-ai-") as temp_dir:
            prompt_file = Path(temp_dir) / "prompt.txt"
            prompt_file.write_text(query, "utf-8")
            argv = build_agent_argv(
                command_template=self.command_template,
                model=self.model,
                prompt=query,
                prompt_file=prompt_file,
            )
            try:
                completed = subprocess.run(  # noqa: S603
                    argv,
                    check=False,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout_seconds,
                )
            except subprocess.TimeoutExpired as error:
                raise AiProviderError(
                    f"AI agent timed out after {self.timeout_seconds}s: {argv[0]}",
                    transient=True,
                ) from error
            except FileNotFoundError as error:
                raise AiProviderError(
                    f"AI agent command not found: {argv[0]}",
                    transient=False,
                ) from error
            except OSError as error:
                raise AiProviderError(
                    f"AI agent failed to start: {error}",
                    transient=True,
                ) from error

        if completed.returncode != 0:
            diagnostics = sanitize_preview(completed.stderr or completed.stdout, max_chars=500)
            logger.warning("AI agent %s exited with code %d", argv[0], completed.returncode)
            raise AiProviderError(
                f"AI agent exited with code {completed.returncode}: {diagnostics}",
                transient=completed.returncode in self.transient_exit_codes,
            )

        response = completed.stdout.strip()
        if not response:
            raise AiProviderError("AI agent returned empty output.", transient=True)
        return response


def build_agent_argv(
    *,
    command_template: str,
    model: str,
    prompt: str,
    prompt_file: Path,
) -> list[str]:
    """Render the command template into an argv list without a shell."""

    stripped = command_template.strip()
    if not stripped:
        raise AiProviderError("AI agent command template is empty.", transient=False)
    if "{prompt}" not in stripped and "{prompt_file}" not in stripped:
        raise AiProviderError(
            "AI agent command template must include {prompt} or {prompt_file}.",
            transient=False,
        )

    try:
        rendered = stripped.format(
            model=shlex.quote(model),
            prompt=shlex.quote(prompt),
            prompt_file=shlex.quote(str(prompt_file)),
        )
    except (KeyError, IndexError, ValueError) as error:
        raise AiProviderError(
            f"Unsupported command template placeholder: {error}",
            transient=False,
        ) from error

    argv = shlex.split(rendered)
    if not argv:
        raise AiProviderError("AI agent command template rendered empty command.", transient=False)
    return argv
