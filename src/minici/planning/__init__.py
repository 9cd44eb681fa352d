"""
Plan generation and checkpoint reconciliation.
"""

from .generator import DEFAULT_AREAS, AreaRule, generate_area_commands, generate_plan
from .reconcile import Reconciliation, plans_equal, reconcile

__all__ = [
    "DEFAULT_AREAS",
    "AreaRule",
    "Reconciliation",
    "generate_area_commands",
    "generate_plan",
    "plans_equal",
    "reconcile",
]
