"""Return computation, selection, and termination policies."""

from nbv_planner.planning.selection import (
    NoViableCandidateError,
    PlanningError,
    Selection,
    select_best,
)
from nbv_planner.planning.termination import IterationLimit, NeverTerminate
from nbv_planner.planning.utility import UtilityCalculator

__all__ = [
    "IterationLimit",
    "NeverTerminate",
    "NoViableCandidateError",
    "PlanningError",
    "Selection",
    "UtilityCalculator",
    "select_best",
]
