"""Abstract base classes for the planner's external collaborators.

These interfaces define the contract between the view planner and the
services it drives. Every remote call is blocking and reports failure
through a ``CallResult`` instead of raising.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from nbv_planner.schemas import (
        CallResult,
        MovementCost,
        Pose,
        RayParameters,
        ReceiveStatus,
        View,
        ViewSpace,
    )


# =============================================================================
# Robot Interfaces
# =============================================================================


class RobotInterface(ABC):
    """Abstract interface to the robot and its reachability model.

    Implementations might include:
    - A ROS / RPC bridge to the real robot
    - A simulated robot for tests and demo runs
    """

    @abstractmethod
    def fetch_view_space(self) -> CallResult[ViewSpace]:
        """Get the feasible view space.

        Returns:
            Ok with the candidate views, or Failed if the service is not
            available yet.
        """
        ...

    @abstractmethod
    def fetch_current_view(self) -> CallResult[View]:
        """Get the view the sensor is currently at."""
        ...

    @abstractmethod
    def retrieve_data(self) -> CallResult[ReceiveStatus]:
        """Ask the robot to sense and integrate data at its current view.

        Returns:
            Ok with the receive status; only RECEIVED means new data is in.
        """
        ...

    @abstractmethod
    def movement_cost(self, start: View, target: View) -> CallResult[MovementCost]:
        """Get the cost of moving from one view to another.

        Args:
            start: View the robot would start from.
            target: Candidate view to move to.

        Returns:
            Ok with the cost description (which may carry an exception
            tag), or Failed if the call itself failed.
        """
        ...

    @abstractmethod
    def move_to(self, target: View) -> CallResult[bool]:
        """Move the sensor to a view.

        Returns:
            Ok(True) if the robot reached the view, Ok(False) if the
            movement itself failed.
        """
        ...


# =============================================================================
# Reconstruction Model Interfaces
# =============================================================================


class InformationGainEstimator(ABC):
    """Abstract interface to the reconstruction model's information metrics."""

    @abstractmethod
    def information_gain(
        self,
        poses: Sequence[Pose],
        metric_names: Sequence[str],
        ray_parameters: RayParameters,
    ) -> CallResult[list[float]]:
        """Estimate the expected information for the given poses.

        Args:
            poses: Poses to evaluate (the planner sends one at a time).
            metric_names: Metrics to compute, in the order the values
                must be returned.
            ray_parameters: Ray casting setup.

        Returns:
            Ok with one value per metric name, or Failed.
        """
        ...


# =============================================================================
# Planning Policy Interfaces
# =============================================================================


class TerminationCriterion(ABC):
    """Decides when the reconstruction is complete."""

    @abstractmethod
    def should_terminate(
        self,
        best_return: float,
        cost: float,
        information: Sequence[float] | None,
    ) -> bool:
        """Check whether planning should stop after the current round.

        Args:
            best_return: Return of the selected view.
            cost: Movement cost of the selected view.
            information: Information vector of the selected view.

        Returns:
            True to end the planning loop.
        """
        ...

    def reset(self) -> None:
        """Reset internal state before a new run.

        Optional - stateless criteria need not override it.
        """
        pass
