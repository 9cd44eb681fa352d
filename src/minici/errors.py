"""Exception hierarchy shared across mini-ci modules."""

from __future__ import annotations


class MiniCIError(RuntimeError):
    """Base class for errors that abort a run before any command executes."""


class ConfigurationError(MiniCIError):
    """Raised when configuration or environment cannot support a run."""


class RunInterrupted(MiniCIError):
    """Raised from the signal handler to abandon the current wait."""

    def __init__(self, signum: int | None = None) -> None:
        super().__init__(f"Interrupted by signal {signum}" if signum is not None else "Interrupted")
        self.signum = signum


__all__ = ["ConfigurationError", "MiniCIError", "RunInterrupted"]
