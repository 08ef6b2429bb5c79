"""Data contracts for the next-best-view planner."""

from nbv_planner.schemas.results import (
    CallResult,
    CandidateEvaluation,
    CostException,
    Failed,
    FailureKind,
    IterationResult,
    MovementCost,
    Ok,
    RayParameters,
    ReceiveStatus,
    ReturnSummary,
)
from nbv_planner.schemas.views import Pose, View, ViewSpace

__all__ = [
    "CallResult",
    "CandidateEvaluation",
    "CostException",
    "Failed",
    "FailureKind",
    "IterationResult",
    "MovementCost",
    "Ok",
    "Pose",
    "RayParameters",
    "ReceiveStatus",
    "ReturnSummary",
    "View",
    "ViewSpace",
]
