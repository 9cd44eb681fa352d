"""Persisted build state."""

from .schema import BuildState, Database, StepStatus
from .store import StateStore

__all__ = ["BuildState", "Database", "StateStore", "StepStatus"]
