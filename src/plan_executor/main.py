"""CLI entrypoint for plan-executor."""

import logging
from pathlib import Path

import rich_click as click

from plan_executor import __version__
from plan_executor.controllers import PlanCheckCommand, PlanCliController, PlanRunCommand

click.rich_click.USE_MARKDOWN = True
PLAN_CONTROLLER = PlanCliController()


@click.group()
@click.version_option(version=__version__, prog_name="plan-executor")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level for executor diagnostics.",
)
def plan_executor(log_level: str) -> None:
    """Run automation plans with retries and rollback."""

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@plan_executor.command("run")
@click.argument("plan_path", type=click.Path(path_type=Path, exists=True, dir_okay=False))
@click.option(
    "--workdir",
    "working_directory",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Working directory for file paths, commands and validations.",
)
@click.option(
    "--dry-run/--apply",
    default=False,
    show_default=True,
    help="Report intended actions without touching files or running commands.",
)
@click.option(
    "--env",
    "environment",
    multiple=True,
    help="Extra environment variable for commands, as KEY=VALUE. Can be repeated.",
)
@click.option(
    "--rollback-on-failure/--keep-on-failure",
    default=False,
    show_default=True,
    help="Undo applied file changes when any task fails or is skipped.",
)
def run_plan(
    plan_path: Path,
    working_directory: Path | None,
    dry_run: bool,
    environment: tuple[str, ...],
    rollback_on_failure: bool,
) -> None:
    """Execute a plan document task by task."""

    result = PLAN_CONTROLLER.run(
        PlanRunCommand(
            plan_path=plan_path,
            working_directory=working_directory,
            dry_run=dry_run,
            environment=environment,
            rollback_on_failure=rollback_on_failure,
        ),
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Plan did not complete successfully.")


@plan_executor.command("check")
@click.argument("plan_path", type=click.Path(path_type=Path, exists=True, dir_okay=False))
def check_plan(plan_path: Path) -> None:
    """Validate a plan document and list its tasks."""

    result = PLAN_CONTROLLER.check(PlanCheckCommand(plan_path=plan_path))
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Plan is invalid.")


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    plan_executor()
