"""Core orchestration, control flow, and interfaces."""

from nbv_planner.core.interfaces import (
    InformationGainEstimator,
    RobotInterface,
    TerminationCriterion,
)
from nbv_planner.core.control import (
    CommandChannel,
    CommandHandler,
    ControlState,
    PlannerCommand,
)
from nbv_planner.core.retry import RetryDriver, RetryOutcome, RetryPolicy, RetryStatus
from nbv_planner.core.orchestrator import PlannerState, ViewPlanner

__all__ = [
    "CommandChannel",
    "CommandHandler",
    "ControlState",
    "InformationGainEstimator",
    "PlannerCommand",
    "PlannerState",
    "RetryDriver",
    "RetryOutcome",
    "RetryPolicy",
    "RetryStatus",
    "RobotInterface",
    "TerminationCriterion",
    "ViewPlanner",
]
