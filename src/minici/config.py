"""Configuration loading for mini-ci runs."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigurationError
from .planning.generator import DEFAULT_AREAS, AreaRule
from .tools.vcs import GitRepository

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "mini-ci.yaml"
DEFAULT_STATE_FILE = ".mini-ci/state.json"
DEFAULT_BASE_BRANCH = "main"
DEFAULT_CONFIRM_THRESHOLD = 30

DEFAULT_CONFIG_TEMPLATE: Dict[str, Any] = {
    "project": {
        "base_branch": DEFAULT_BASE_BRANCH,
    },
    "run": {
        "confirm_threshold": DEFAULT_CONFIRM_THRESHOLD,
    },
}


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ProjectSection(_Section):
    repo_root: Optional[str] = None
    base_branch: str = DEFAULT_BASE_BRANCH


class PathsSection(_Section):
    state_file: Optional[str] = None


class RunSection(_Section):
    confirm_threshold: int = Field(default=DEFAULT_CONFIRM_THRESHOLD, ge=0)


class AreaSection(_Section):
    name: str
    prefix: str
    schema_pattern: str = r"\w+\.graphql"
    schema_commands: List[str] = Field(default_factory=list)
    verify_commands: List[str] = Field(default_factory=list)

    def to_rule(self) -> AreaRule:
        return AreaRule(
            name=self.name,
            prefix=self.prefix,
            schema_pattern=self.schema_pattern,
            schema_commands=tuple(self.schema_commands),
            verify_commands=tuple(self.verify_commands),
        )


class MiniCIConfig(_Section):
    """Validated configuration plus the directory it was loaded from."""

    project: ProjectSection = Field(default_factory=ProjectSection)
    paths: PathsSection = Field(default_factory=PathsSection)
    run: RunSection = Field(default_factory=RunSection)
    areas: List[AreaSection] | None = None
    base_dir: Path = Field(default_factory=Path.cwd, exclude=True)

    @property
    def repo_root(self) -> Path:
        """Configured root, or the git repository enclosing the config directory."""
        if self.project.repo_root:
            return _resolve_against(self.base_dir, self.project.repo_root)
        return GitRepository.discover(self.base_dir).root

    @property
    def state_file(self) -> Path:
        if self.paths.state_file:
            return _resolve_against(self.base_dir, self.paths.state_file)
        return self.repo_root / DEFAULT_STATE_FILE

    @property
    def area_rules(self) -> tuple[AreaRule, ...]:
        if self.areas is None:
            return DEFAULT_AREAS
        return tuple(area.to_rule() for area in self.areas)


def _resolve_against(base: Path, value: str) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base / path
    return path.resolve()


def default_config_data() -> Dict[str, Any]:
    """Return a deep copy of the default configuration template."""
    return copy.deepcopy(DEFAULT_CONFIG_TEMPLATE)


def build_config(data: Dict[str, Any], *, base_dir: Path) -> MiniCIConfig:
    """Validate raw configuration data into a :class:`MiniCIConfig`."""
    try:
        return MiniCIConfig.model_validate({**data, "base_dir": base_dir})
    except ValidationError as error:
        raise ConfigurationError(f"Invalid configuration: {error}") from error


def find_config(start: Path | None = None) -> Path | None:
    """Search ``start`` and its parents for ``mini-ci.yaml``, stopping at the git root."""

    current = (start or Path.cwd()).resolve()
    for candidate in [current, *current.parents]:
        config_path = candidate / DEFAULT_CONFIG_NAME
        if config_path.is_file():
            return config_path
        if (candidate / ".git").exists():
            return None
    return None


def load_config(config_path: Path | str | None = None, *, required: bool = False) -> MiniCIConfig:
    """Load YAML configuration, falling back to defaults when the file is absent.

    Without an explicit path the nearest ``mini-ci.yaml`` between the working
    directory and the repository root is used. ``required`` turns a missing
    file into a :class:`ConfigurationError`; the CLI sets it when the operator
    passed ``--config`` explicitly.
    """

    if config_path is None:
        found = find_config()
        if found is None:
            LOGGER.debug("No %s found; using defaults", DEFAULT_CONFIG_NAME)
            return build_config(default_config_data(), base_dir=Path.cwd().resolve())
        path = found
    else:
        path = Path(config_path)
        if not path.is_absolute():
            path = (Path.cwd() / path).resolve()

    if not path.exists():
        if required:
            raise ConfigurationError(f"Config file not found: {path}")
        LOGGER.debug("No configuration at %s; using defaults", path)
        return build_config(default_config_data(), base_dir=path.parent)

    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as error:
        raise ConfigurationError(f"Failed to parse config: {error}") from error

    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be a mapping at the top level.")

    return build_config(data, base_dir=path.parent)


__all__ = [
    "DEFAULT_CONFIG_NAME",
    "DEFAULT_CONFIRM_THRESHOLD",
    "MiniCIConfig",
    "build_config",
    "default_config_data",
    "find_config",
    "load_config",
]
