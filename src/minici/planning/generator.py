"""Derive the ordered command plan from the files changed on a branch.

Each project area is described by an :class:`AreaRule`. An area is active
when at least one changed path starts with its prefix; an active area first
regenerates schema-derived code (when one of its files matches the schema
pattern) and then runs its verification commands. The plan is the
concatenation of every active area, in table order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Pattern, Sequence

GENERATED_TYPES_COMMANDS: tuple[str, ...] = (
    "bazel build //apex-online:all_gql_types",
    "bazel run //apex-online:update_gql_types",
)

OPERATION_MAPPING_COMMANDS: tuple[str, ...] = (
    "bazel build //apex-online/apex-grql:operation_rpc_mapping",
    "bazel run //apex-online/apex-grql:update_operation_rpc_mapping",
)

SCHEMA_FILE_PATTERN = r"\w+\.graphql"


@dataclass(frozen=True, slots=True)
class AreaRule:
    """Command-generation rule for one path-prefixed project area."""

    name: str
    prefix: str
    schema_commands: tuple[str, ...] = ()
    verify_commands: tuple[str, ...] = ()
    schema_pattern: str = SCHEMA_FILE_PATTERN
    _compiled: Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_compiled", re.compile(self.schema_pattern))

    def select(self, changed_files: Iterable[str]) -> List[str]:
        """Return the subset of ``changed_files`` that belongs to this area."""
        return [path for path in changed_files if path.startswith(self.prefix)]

    def touches_schema(self, files: Iterable[str]) -> bool:
        return any(self._compiled.search(path) for path in files)


DEFAULT_AREAS: tuple[AreaRule, ...] = (
    AreaRule(
        name="bff",
        prefix="apex-online/apex-grql",
        schema_commands=GENERATED_TYPES_COMMANDS,
        verify_commands=(
            "bazel run //apex-online/apex-grql:lint_typescript",
            "bazel build //apex-online/apex-grql:compile_ts",
        ),
    ),
    AreaRule(
        name="ascend-ui",
        prefix="ascend-ui/app",
        schema_commands=GENERATED_TYPES_COMMANDS + OPERATION_MAPPING_COMMANDS,
        verify_commands=(
            "bazel run //ascend-ui/app:ts_lint_test",
            "bazel run //ascend-ui/app:ts_types_test",
        ),
    ),
)


def generate_area_commands(rule: AreaRule, files: Sequence[str]) -> List[str]:
    """Commands for one area given the files already filtered to it."""
    if not files:
        return []
    commands: List[str] = []
    if rule.touches_schema(files):
        commands.extend(rule.schema_commands)
    commands.extend(rule.verify_commands)
    return commands


def generate_plan(
    changed_files: Sequence[str],
    areas: Sequence[AreaRule] = DEFAULT_AREAS,
) -> List[str]:
    """Return the ordered command plan for ``changed_files``."""
    plan: List[str] = []
    for rule in areas:
        plan.extend(generate_area_commands(rule, rule.select(changed_files)))
    return plan


__all__ = [
    "DEFAULT_AREAS",
    "GENERATED_TYPES_COMMANDS",
    "OPERATION_MAPPING_COMMANDS",
    "AreaRule",
    "generate_area_commands",
    "generate_plan",
]
