"""CLI commands for running and inspecting mini-ci checkpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import typer

from .config import DEFAULT_CONFIG_NAME, MiniCIConfig, load_config
from .errors import MiniCIError
from .planning.generator import generate_plan
from .runner import RunController, RunReport
from .state.schema import BuildState
from .state.store import StateStore
from .tools.vcs import GitError, GitRepository

APP_HELP = "Run the build/lint/codegen steps implied by the current branch's changes."
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

app = typer.Typer(
    help=APP_HELP,
    invoke_without_command=True,
    no_args_is_help=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@dataclass(slots=True)
class CliState:
    """Options shared between the root callback and subcommands."""

    config: MiniCIConfig


def _confirm(question: str) -> bool:
    return typer.confirm(question, default=False)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )


def _load_config_or_exit(config: Optional[str]) -> MiniCIConfig:
    try:
        return load_config(config, required=config is not None)
    except MiniCIError as error:
        typer.echo(str(error), err=True)
        raise typer.Exit(code=1) from error


def _open_repo(config: MiniCIConfig) -> GitRepository:
    try:
        return GitRepository(config.repo_root)
    except GitError as error:
        typer.echo(str(error), err=True)
        raise typer.Exit(code=1) from error


def _render_report(report: RunReport) -> None:
    if report.outcome == "declined":
        typer.echo("Aborted: changeset not confirmed.")
    elif report.outcome == "interrupted":
        typer.echo(f"Interrupted; progress for {report.branch} saved.")
    elif report.outcome == "failed":
        typer.echo(f"Failed: {report.failed_command}", err=True)
    else:
        typer.echo(f"All {len(report.commands)} command(s) succeeded on {report.branch}.")


def _render_state(branch: str, state: BuildState | None) -> None:
    if state is None:
        typer.echo(f"No checkpoint recorded for branch {branch}.")
        return
    typer.echo(f"Checkpoint for {branch} ({len(state.plan)} step(s)):")
    for command in state.plan:
        typer.echo(f"- [{state.status_of(command).value}] {command}")


@app.callback()
def main(
    ctx: typer.Context,
    full: bool = typer.Option(
        False,
        "--full",
        help="Re-run every step, ignoring checkpoint status.",
    ),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help=f"Path to the mini-ci configuration file (default: nearest {DEFAULT_CONFIG_NAME} up to the repository root).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging.",
    ),
) -> None:
    """Plan, execute and checkpoint the steps for the current branch."""
    _configure_logging(verbose)
    config_data = _load_config_or_exit(config)
    ctx.obj = CliState(config=config_data)
    if ctx.invoked_subcommand is not None:
        return

    try:
        controller = RunController.from_config(config_data, confirm=_confirm, full_run=full)
        report = controller.run()
    except (MiniCIError, GitError) as error:
        typer.echo(str(error), err=True)
        raise typer.Exit(code=1) from error

    _render_report(report)
    raise typer.Exit(code=report.exit_code)


@app.command()
def status(
    ctx: typer.Context,
    branch: Optional[str] = typer.Option(
        None,
        "--branch",
        "-b",
        help="Branch to inspect (defaults to the current branch).",
    ),
) -> None:
    """Show the stored checkpoint for a branch."""
    state: CliState = ctx.obj
    branch_name = branch
    if branch_name is None:
        branch_name = _open_repo(state.config).current_branch()
    if not branch_name:
        typer.echo("No branch! Pass --branch or check out a named branch.", err=True)
        raise typer.Exit(code=1)

    try:
        store = StateStore.from_config(state.config)
    except GitError as error:
        typer.echo(str(error), err=True)
        raise typer.Exit(code=1) from error
    _render_state(branch_name, store.load().get(branch_name))


@app.command()
def plan(ctx: typer.Context) -> None:
    """Print the plan the current changes would produce, without running it."""
    state: CliState = ctx.obj
    repo = _open_repo(state.config)
    try:
        files = repo.changed_files(state.config.project.base_branch)
    except GitError as error:
        typer.echo(str(error), err=True)
        raise typer.Exit(code=1) from error

    commands = generate_plan(files, state.config.area_rules)
    typer.echo(f"{len(files)} changed file(s) against {state.config.project.base_branch}.")
    if not commands:
        typer.echo("Plan: nothing to run.")
        return
    for command in commands:
        typer.echo(f"- {command}")


if __name__ == "__main__":
    app()
