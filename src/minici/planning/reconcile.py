"""Decide how a freshly generated plan relates to the stored checkpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Literal, Sequence

from ..state.schema import BuildState

LOGGER = logging.getLogger(__name__)

ReconcileMode = Literal["fresh", "resumed", "restarted", "full"]
Confirm = Callable[[str], bool]

RESUME_QUESTION = "Restart from last checkpoint?"


@dataclass(slots=True)
class Reconciliation:
    """Active build state and the commands this invocation should run."""

    state: BuildState
    commands: List[str]
    mode: ReconcileMode


def plans_equal(left: Sequence[str], right: Sequence[str]) -> bool:
    """Order-sensitive comparison of two plans."""
    if len(left) != len(right):
        return False
    return all(a == b for a, b in zip(left, right))


def reconcile(
    previous: BuildState | None,
    candidate_plan: Sequence[str],
    *,
    full_run: bool,
    confirm: Confirm,
) -> Reconciliation:
    """Combine ``candidate_plan`` with the stored ``previous`` state.

    A missing or outdated checkpoint always yields a fresh, all-pending state.
    An unchanged plan is either reset (``full_run``) or, after asking the
    operator, resumed from its first unfinished step.
    """

    candidate = list(candidate_plan)

    if previous is None:
        return Reconciliation(BuildState.fresh(candidate), candidate, "fresh")

    if not plans_equal(previous.plan, candidate):
        LOGGER.info("Plan changed since the last run; discarding checkpoint")
        return Reconciliation(BuildState.fresh(candidate), candidate, "fresh")

    if full_run:
        previous.reset()
        return Reconciliation(previous, candidate, "full")

    if candidate and confirm(RESUME_QUESTION):
        return Reconciliation(previous, previous.pending_commands(), "resumed")

    return Reconciliation(BuildState.fresh(candidate), candidate, "restarted")


__all__ = ["Confirm", "Reconciliation", "ReconcileMode", "plans_equal", "reconcile"]
