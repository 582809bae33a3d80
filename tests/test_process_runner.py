from __future__ import annotations

import sys
from pathlib import Path

import allure
import pytest

from plan_executor.executor.errors import CommandNotFoundError, TaskPreconditionError
from plan_executor.executor.process import TIMEOUT_EXIT_CODE, SubprocessRunner

pytestmark = [
    allure.epic("Plan Execution"),
    allure.feature("Process Runner"),
]


def test_captures_exit_code_and_output(tmp_path: Path) -> None:
    script = "import sys; print('out'); print('err', file=sys.stderr); sys.exit(3)"

    result = SubprocessRunner().run(sys.executable, ["-c", script], cwd=tmp_path)

    assert result.exit_code == 3
    assert result.stdout.strip() == "out"
    assert result.stderr.strip() == "err"
    assert not result.timed_out


def test_runs_in_working_directory(tmp_path: Path) -> None:
    script = "import os; print(os.getcwd())"

    result = SubprocessRunner().run(sys.executable, ["-c", script], cwd=tmp_path)

    assert Path(result.stdout.strip()).resolve() == tmp_path.resolve()


def test_environment_extends_parent_environment(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("PLAN_EXECUTOR_TEST_PARENT", "inherited")
    script = (
        "import os; "
        "print(os.environ['PLAN_EXECUTOR_TEST_PARENT'], os.environ['PLAN_EXECUTOR_TEST_EXTRA'])"
    )

    result = SubprocessRunner().run(
        sys.executable,
        ["-c", script],
        cwd=tmp_path,
        env={"PLAN_EXECUTOR_TEST_EXTRA": "added"},
    )

    assert result.stdout.strip() == "inherited added"


def test_missing_command_raises(tmp_path: Path) -> None:
    with pytest.raises(CommandNotFoundError, match="Command not found: definitely-not-a-command"):
        SubprocessRunner().run("definitely-not-a-command", [], cwd=tmp_path)


def test_missing_working_directory_raises(tmp_path: Path) -> None:
    with pytest.raises(TaskPreconditionError, match="Working directory does not exist"):
        SubprocessRunner().run(sys.executable, ["--version"], cwd=tmp_path / "absent")


def test_timeout_returns_timed_out_result(tmp_path: Path) -> None:
    runner = SubprocessRunner(timeout_seconds=0.5)

    result = runner.run(sys.executable, ["-c", "import time; time.sleep(10)"], cwd=tmp_path)

    assert result.timed_out
    assert result.exit_code == TIMEOUT_EXIT_CODE
    assert result.stderr
