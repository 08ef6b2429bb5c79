"""Remote call results and per-iteration planning data contracts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar, Union

from pydantic import BaseModel, Field

from nbv_planner.schemas.views import View
from nbv_planner.utils.config import (
    IMAGE_CENTER_X,
    IMAGE_CENTER_Y,
    INVALID_COST,
    MAX_RAY_DEPTH,
    MIN_RAY_DEPTH,
    OCCUPIED_PASSTHROUGH_THRESHOLD,
    RAY_RESOLUTION_X,
    RAY_RESOLUTION_Y,
    RAY_STEP_SIZE,
    SUBWINDOW_HEIGHT,
    SUBWINDOW_WIDTH,
)

T = TypeVar("T")


# =============================================================================
# Call Results
# =============================================================================

class FailureKind(str, Enum):
    """Why a remote capability call did not produce a value."""

    UNAVAILABLE = "unavailable"  # Service not reachable (yet)
    TIMEOUT = "timeout"
    REJECTED = "rejected"        # Service answered but refused the request
    ERROR = "error"              # Unexpected failure inside the adapter


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful capability call."""

    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failed:
    """Failed capability call."""

    kind: FailureKind = FailureKind.UNAVAILABLE
    detail: str = ""

    @property
    def ok(self) -> bool:
        return False


CallResult = Union[Ok[T], Failed]


# =============================================================================
# Capability Payloads
# =============================================================================

class CostException(str, Enum):
    """Exception tag attached to a movement cost answer."""

    NONE = "none"
    UNREACHABLE = "unreachable"
    TIMEOUT = "timeout"
    OTHER = "other"


class MovementCost(BaseModel):
    """Cost of moving between two views, as reported by the cost service."""

    cost: float = Field(default=0.0, ge=0.0, description="Movement cost")
    exception: CostException = Field(
        default=CostException.NONE,
        description="Non-NONE means the cost is unusable",
    )

    model_config = {"frozen": True}

    @property
    def usable(self) -> bool:
        return self.exception == CostException.NONE


class ReceiveStatus(str, Enum):
    """Outcome of a baseline data retrieval request."""

    RECEIVED = "received"
    FAILED_NO_CONNECTION = "failed_no_connection"
    OTHER = "other"


class RayParameters(BaseModel):
    """Ray casting setup passed along with every information gain request."""

    ray_resolution_x: float = RAY_RESOLUTION_X
    ray_resolution_y: float = RAY_RESOLUTION_Y
    ray_step_size: int = RAY_STEP_SIZE
    min_x: float = IMAGE_CENTER_X - SUBWINDOW_WIDTH / 2
    max_x: float = IMAGE_CENTER_X + SUBWINDOW_WIDTH / 2
    min_y: float = IMAGE_CENTER_Y - SUBWINDOW_HEIGHT / 2
    max_y: float = IMAGE_CENTER_Y + SUBWINDOW_HEIGHT / 2
    min_ray_depth: float = MIN_RAY_DEPTH
    max_ray_depth: float = MAX_RAY_DEPTH
    occupied_passthrough_threshold: float = OCCUPIED_PASSTHROUGH_THRESHOLD

    model_config = {"frozen": True}


# =============================================================================
# Planning Results
# =============================================================================

class ReturnSummary(BaseModel):
    """Statistics over the candidate returns of one planning round."""

    best_return: float = 0.0
    winning_margin: float = Field(default=0.0, ge=0.0)
    mean: float = 0.0
    stddev: float = Field(default=0.0, ge=0.0)

    model_config = {"frozen": True}


class CandidateEvaluation(BaseModel):
    """Everything the planner learned about one candidate this round."""

    view: View
    cost: float = INVALID_COST
    cost_exception: CostException = CostException.NONE
    information: list[float] | None = None
    return_value: float | None = None

    @property
    def viable(self) -> bool:
        return self.cost != INVALID_COST


class IterationResult(BaseModel):
    """Result of one completed planning iteration."""

    iteration: int = Field(..., ge=1)
    timestamp: datetime = Field(default_factory=datetime.now)
    view: View = Field(..., description="Selected next-best view")
    summary: ReturnSummary
    cost: float
    information: list[float] | None = None
    candidates_considered: int = 0
    candidates_viable: int = 0
    terminated: bool = False
    move_completed: bool | None = Field(
        default=None,
        description="None when no move was attempted",
    )

    def to_log_dict(self) -> dict[str, Any]:
        """Flat dictionary for logging and CLI output."""
        return {
            "iteration": self.iteration,
            "timestamp": self.timestamp.isoformat(),
            "view_id": self.view.view_id,
            "return_value": self.summary.best_return,
            "winning_margin": self.summary.winning_margin,
            "cost": self.cost,
            "candidates_considered": self.candidates_considered,
            "candidates_viable": self.candidates_viable,
            "terminated": self.terminated,
            "move_completed": self.move_completed,
        }
