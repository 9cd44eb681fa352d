"""mini-ci: checkpointed local build orchestration for a branch's changes."""

__version__ = "0.1.0"
