"""Simulated robot for tests and demo runs."""

from __future__ import annotations

import logging

import numpy as np

from nbv_planner.core.interfaces import RobotInterface
from nbv_planner.modules.stubs.scene import SimulatedScene
from nbv_planner.schemas import (
    CallResult,
    CostException,
    Failed,
    FailureKind,
    MovementCost,
    Ok,
    ReceiveStatus,
    View,
    ViewSpace,
)

logger = logging.getLogger(__name__)


class SimulatedRobot(RobotInterface):
    """Deterministic robot moving between the views of a simulated scene.

    Movement cost is the Euclidean distance between view positions.
    Failures can be injected to exercise the planner's retry paths:

    - ``view_space_failures`` / ``current_view_failures``: number of
      initial calls answered with UNAVAILABLE.
    - ``data_failures``: number of failed attempts before each successful
      data retrieval.
    - ``move_failures``: number of failed attempts before each successful
      move.
    - ``unreachable``: view ids whose cost is always UNREACHABLE.
    - ``cost_failure_rate``: probability that a view is reported
      unreachable, drawn once when the robot is created.
    """

    def __init__(
        self,
        scene: SimulatedScene,
        start_index: int = 0,
        view_space_failures: int = 0,
        current_view_failures: int = 0,
        data_failures: int = 0,
        move_failures: int = 0,
        unreachable: set[str] | None = None,
        cost_failure_rate: float = 0.0,
        seed: int = 42,
    ) -> None:
        self._scene = scene
        self._current = scene.views[start_index]
        self._view_space_failures = view_space_failures
        self._current_view_failures = current_view_failures
        self._data_failures = data_failures
        self._move_failures = move_failures
        self._unreachable = set(unreachable or ())
        self._rng = np.random.default_rng(seed)
        self._cost_failure_rate = cost_failure_rate

        self._pending_data_failures = data_failures
        self._pending_move_failures = move_failures

        # Statistics
        self.view_space_calls = 0
        self.current_view_calls = 0
        self.data_calls = 0
        self.cost_calls = 0
        self.move_calls = 0
        self.visited: list[str] = [self._current.view_id]

        if cost_failure_rate > 0.0:
            for view in scene.views:
                if self._rng.random() < cost_failure_rate:
                    self._unreachable.add(view.view_id)

    @property
    def current(self) -> View:
        return self._current

    def fetch_view_space(self) -> CallResult[ViewSpace]:
        self.view_space_calls += 1
        if self.view_space_calls <= self._view_space_failures:
            return Failed(FailureKind.UNAVAILABLE, "view space service not ready")
        return Ok(self._scene.view_space())

    def fetch_current_view(self) -> CallResult[View]:
        self.current_view_calls += 1
        if self.current_view_calls <= self._current_view_failures:
            return Failed(FailureKind.UNAVAILABLE, "current view service not ready")
        return Ok(self._current)

    def retrieve_data(self) -> CallResult[ReceiveStatus]:
        self.data_calls += 1
        if self._pending_data_failures > 0:
            self._pending_data_failures -= 1
            return Ok(ReceiveStatus.FAILED_NO_CONNECTION)
        self._pending_data_failures = self._data_failures
        new = self._scene.observe(self._current.pose)
        logger.debug("Observed %d new points at %s", new, self._current.view_id)
        return Ok(ReceiveStatus.RECEIVED)

    def movement_cost(self, start: View, target: View) -> CallResult[MovementCost]:
        self.cost_calls += 1
        if target.view_id in self._unreachable:
            return Ok(MovementCost(exception=CostException.UNREACHABLE))
        return Ok(MovementCost(cost=start.pose.distance_to(target.pose)))

    def move_to(self, target: View) -> CallResult[bool]:
        self.move_calls += 1
        if self._pending_move_failures > 0:
            self._pending_move_failures -= 1
            return Ok(False)
        self._pending_move_failures = self._move_failures
        self._current = target
        self.visited.append(target.view_id)
        return Ok(True)
