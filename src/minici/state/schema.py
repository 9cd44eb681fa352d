"""Typed records persisted by the mini-ci state store."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field


class RecordModel(BaseModel):
    """Base Pydantic model with strict field handling."""

    model_config = ConfigDict(extra="forbid", frozen=False, populate_by_name=True)


class StepStatus(str, Enum):
    """Lifecycle states for a single plan step."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class BuildState(RecordModel):
    """Plan and per-step progress recorded for one branch."""

    plan: List[str] = Field(default_factory=list)
    step_details: Dict[str, StepStatus] = Field(default_factory=dict, alias="stepDetails")

    @classmethod
    def fresh(cls, plan: Sequence[str]) -> "BuildState":
        """Return a state for ``plan`` with every step pending."""
        commands = list(plan)
        return cls(
            plan=commands,
            step_details={command: StepStatus.PENDING for command in commands},
        )

    def status_of(self, command: str) -> StepStatus:
        return self.step_details.get(command, StepStatus.PENDING)

    def mark(self, command: str, status: StepStatus) -> None:
        self.step_details[command] = status

    def reset(self) -> None:
        """Return every recorded step (and every planned step) to pending."""
        for command in list(self.step_details):
            self.step_details[command] = StepStatus.PENDING
        for command in self.plan:
            self.step_details.setdefault(command, StepStatus.PENDING)

    def pending_commands(self) -> List[str]:
        """Planned commands that have not succeeded yet, in plan order."""
        return [command for command in self.plan if self.status_of(command) != StepStatus.SUCCESS]

    def to_payload(self) -> Dict[str, object]:
        return self.model_dump(mode="json", by_alias=True)


Database = Dict[str, Optional[BuildState]]


__all__ = ["BuildState", "Database", "RecordModel", "StepStatus"]
