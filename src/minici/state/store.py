"""Durable JSON storage for per-branch build checkpoints."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

from pydantic import ValidationError

from .schema import BuildState, Database

if TYPE_CHECKING:
    from ..config import MiniCIConfig

LOGGER = logging.getLogger(__name__)


def _decode_database(payload: Any) -> Database:
    if not isinstance(payload, Mapping):
        raise ValueError("state file must contain a JSON object keyed by branch")

    database: Database = {}
    for branch, entry in payload.items():
        if entry is None:
            database[str(branch)] = None
            continue
        try:
            database[str(branch)] = BuildState.model_validate(entry)
        except ValidationError as error:
            LOGGER.warning("Dropping unreadable state for branch %s: %s", branch, error)
    return database


def _encode_database(database: Database) -> dict[str, Any]:
    return {
        branch: state.to_payload() if state is not None else None
        for branch, state in database.items()
    }


class StateStore:
    """JSON-file persistence for the branch -> :class:`BuildState` mapping.

    The store does no locking; two runs against the same file race and the
    last writer wins.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    @classmethod
    def from_config(cls, config: "MiniCIConfig") -> "StateStore":
        return cls(config.state_file)

    def load(self) -> Database:
        """Read the database, returning an empty mapping on any failure."""
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
            return _decode_database(payload)
        except FileNotFoundError:
            LOGGER.warning("No state file at %s, starting fresh", self.path)
        except (OSError, ValueError) as error:
            LOGGER.warning("Could not load state from %s, starting fresh: %s", self.path, error)
        return {}

    def save(self, database: Database) -> None:
        """Serialise ``database`` next to the target, then swap it into place."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        encoded = json.dumps(_encode_database(database), indent=2)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(encoded)
                handle.write("\n")
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        LOGGER.debug("Saved %d branch state(s) to %s", len(database), self.path)


__all__ = ["StateStore"]
