"""Shared test fixtures."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

from plan_executor.executor.ports import ProcessResult

ECHO_AGENT_COMMAND_TEMPLATE = (
    f"{sys.executable} -m plan_executor.ai.echo_agent --prompt-file {{prompt_file}}"
)


class FakeProcessRunner:
    """Process runner returning queued results and recording every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, list[str], Path, dict[str, str] | None]] = []
        self._results: list[ProcessResult] = []

    def queue(self, *results: ProcessResult) -> None:
        self._results.extend(results)

    def run(
        self,
        command: str,
        args: list[str],
        *,
        cwd: Path,
        env: dict[str, str] | None = None,
    ) -> ProcessResult:
        self.calls.append((command, list(args), cwd, env))
        if self._results:
            return self._results.pop(0)
        return ProcessResult(exit_code=0, stdout="", stderr="")


class SpyAiProvider:
    """AI provider that records queries and answers from a script."""

    def __init__(self, answer: str = "answer") -> None:
        self.answer = answer
        self.queries: list[str] = []

    def ask(self, query: str) -> str:
        self.queries.append(query)
        return self.answer


@pytest.fixture()
def process_runner() -> FakeProcessRunner:
    return FakeProcessRunner()


@pytest.fixture()
def ai_provider() -> SpyAiProvider:
    return SpyAiProvider()


@pytest.fixture()
def echo_agent(monkeypatch):
    """Configure the CLI AI provider to use the local echo agent."""

    monkeypatch.setenv("PLAN_EXECUTOR_AI_PROVIDER", "cli")
    monkeypatch.setenv("PLAN_EXECUTOR_AI_COMMAND_TEMPLATE", ECHO_AGENT_COMMAND_TEMPLATE)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("PLAN_EXECUTOR_"):
            monkeypatch.delenv(name, raising=False)
