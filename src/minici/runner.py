"""Run controller that drives a branch plan from checkpoint to persisted state.

A run resolves the branch, plans commands from the changed files, reconciles
the plan with the stored checkpoint, executes the effective commands one at a
time and always writes the resulting state back. SIGINT/SIGTERM are handled
for the duration of :meth:`RunController.run`: the first signal abandons the
current wait and saves the state as it stands, a later signal exits without
waiting for the save. While commands run, the signal only terminates the
running command; the loop records its result and stops before the next one.
"""

from __future__ import annotations

import logging
import signal
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Protocol, Sequence

import typer

from .config import DEFAULT_CONFIRM_THRESHOLD, MiniCIConfig
from .errors import ConfigurationError, RunInterrupted
from .planning.generator import DEFAULT_AREAS, AreaRule, generate_plan
from .planning.reconcile import Confirm, ReconcileMode, reconcile
from .state.schema import BuildState, Database, StepStatus
from .state.store import StateStore
from .tools.executor import CommandExecutor
from .tools.vcs import GitRepository

LOGGER = logging.getLogger(__name__)

RunOutcome = Literal["succeeded", "failed", "interrupted", "declined"]

_HANDLED_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class VersionControl(Protocol):
    def current_branch(self) -> str | None: ...

    def changed_files(self, base: str) -> List[str]: ...


class Executor(Protocol):
    def execute(self, command: str) -> bool: ...

    def cancel(self) -> None: ...


@dataclass(slots=True)
class ShutdownGuard:
    """Cancellation token plus a one-shot flag around persistence."""

    requested: bool = False
    persisting: bool = False

    def request(self) -> None:
        self.requested = True

    def raise_if_requested(self) -> None:
        if self.requested:
            raise RunInterrupted()

    def begin_persist(self) -> bool:
        """Claim the persistence step; ``False`` when it is already claimed."""
        if self.persisting:
            return False
        self.persisting = True
        return True


@dataclass(slots=True)
class RunReport:
    """Terminal outcome of one invocation."""

    outcome: RunOutcome
    branch: str
    commands: List[str] = field(default_factory=list)
    mode: ReconcileMode | None = None
    failed_command: str | None = None
    state: BuildState | None = None

    @property
    def exit_code(self) -> int:
        return 1 if self.outcome == "failed" else 0


class RunController:
    """Owns the in-memory database for a single run."""

    def __init__(
        self,
        store: StateStore,
        repo: VersionControl,
        executor: Executor,
        *,
        confirm: Confirm,
        areas: Sequence[AreaRule] = DEFAULT_AREAS,
        base_branch: str = "main",
        full_run: bool = False,
        confirm_threshold: int = DEFAULT_CONFIRM_THRESHOLD,
    ) -> None:
        self.store = store
        self.repo = repo
        self.executor = executor
        self.confirm = confirm
        self.areas = tuple(areas)
        self.base_branch = base_branch
        self.full_run = full_run
        self.confirm_threshold = confirm_threshold
        self.guard = ShutdownGuard()
        self._interruptible = False

    @classmethod
    def from_config(
        cls,
        config: MiniCIConfig,
        *,
        confirm: Confirm,
        full_run: bool = False,
    ) -> "RunController":
        repo = GitRepository(config.repo_root)
        return cls(
            StateStore.from_config(config),
            repo,
            CommandExecutor(repo.root),
            confirm=confirm,
            areas=config.area_rules,
            base_branch=config.project.base_branch,
            full_run=full_run,
            confirm_threshold=config.run.confirm_threshold,
        )

    # ------------------------------------------------------------------ run
    def run(self) -> RunReport:
        """Execute the branch plan; raises only for setup errors."""

        self.guard = ShutdownGuard()
        database = self.store.load()

        branch = self.repo.current_branch()
        if not branch:
            raise ConfigurationError("No branch! Check out a named branch before running.")

        previous_handlers = self._install_signal_handlers()
        try:
            return self._run_branch(database, branch)
        finally:
            self._restore_signal_handlers(previous_handlers)

    def _run_branch(self, database: Database, branch: str) -> RunReport:
        report = RunReport(outcome="succeeded", branch=branch)
        self._interruptible = True
        try:
            files = self.repo.changed_files(self.base_branch)
            if not self._confirm_changeset(files):
                report.outcome = "declined"
                return report

            plan = generate_plan(files, self.areas)
            reconciliation = reconcile(
                database.get(branch),
                plan,
                full_run=self.full_run,
                confirm=self.confirm,
            )
            report.state = reconciliation.state
            report.commands = list(reconciliation.commands)
            report.mode = reconciliation.mode
            if reconciliation.mode == "resumed":
                typer.echo("Starting from checkpoint")
            _render_plan(branch, reconciliation.commands)

            self._interruptible = False
            report.failed_command = self._execute(reconciliation.commands, reconciliation.state)
            if report.failed_command is not None:
                report.outcome = "failed"
        except RunInterrupted:
            report.outcome = "interrupted"
        finally:
            self._interruptible = False

        if self.guard.requested:
            report.outcome = "interrupted"
            typer.echo("\nGracefully shutting down...")
        self._persist(database, branch, report.state)
        return report

    def _confirm_changeset(self, files: Sequence[str]) -> bool:
        if len(files) <= self.confirm_threshold:
            return True
        return self.confirm(f"{len(files)} files. continue?")

    def _execute(self, commands: Sequence[str], state: BuildState) -> str | None:
        """Run ``commands`` in order; return the first failing command."""

        total = len(commands)
        for index, command in enumerate(commands, start=1):
            self.guard.raise_if_requested()
            typer.echo(f"[{index}/{total}] {command}")
            succeeded = self.executor.execute(command)
            if not succeeded and self.guard.requested:
                raise RunInterrupted()
            if succeeded:
                state.mark(command, StepStatus.SUCCESS)
                typer.echo(f"  ok: {command}")
                continue
            state.mark(command, StepStatus.FAILED)
            typer.echo(f"Command failed: {command}", err=True)
            return command
        return None

    def _persist(self, database: Database, branch: str, state: BuildState | None) -> None:
        if not self.guard.begin_persist():
            return
        if state is not None:
            database[branch] = state
        self.store.save(database)
        LOGGER.debug("Persisted state for branch %s", branch)

    # -------------------------------------------------------------- signals
    def handle_signal(self, signum: int, frame: Any = None) -> None:
        """Signal handler: request shutdown, or exit at once if one is under way."""

        if self.guard.persisting or self.guard.requested:
            LOGGER.warning("Received signal %s during shutdown; exiting immediately", signum)
            raise SystemExit(1)
        self.guard.request()
        if self._interruptible:
            raise RunInterrupted(signum)
        self.executor.cancel()

    def _install_signal_handlers(self) -> Dict[int, Any]:
        if threading.current_thread() is not threading.main_thread():
            LOGGER.debug("Not on the main thread; interrupt handling disabled")
            return {}
        previous: Dict[int, Any] = {}
        for signum in _HANDLED_SIGNALS:
            previous[signum] = signal.signal(signum, self.handle_signal)
        return previous

    @staticmethod
    def _restore_signal_handlers(previous: Dict[int, Any]) -> None:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def _render_plan(branch: str, commands: Sequence[str]) -> None:
    typer.echo(f"Branch: {branch}")
    if not commands:
        typer.echo("Plan: nothing to run.")
        return
    typer.echo(f"Plan ({len(commands)} command(s)):")
    for command in commands:
        typer.echo(f"- {command}")


__all__ = [
    "RunController",
    "RunOutcome",
    "RunReport",
    "ShutdownGuard",
]
