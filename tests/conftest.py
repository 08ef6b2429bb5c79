"""Configuration and shared fixtures for pytest."""

from __future__ import annotations

from typing import Callable, Sequence

import pytest

from nbv_planner.core.interfaces import InformationGainEstimator, RobotInterface
from nbv_planner.schemas import (
    CallResult,
    CostException,
    Failed,
    FailureKind,
    MovementCost,
    Ok,
    Pose,
    RayParameters,
    ReceiveStatus,
    View,
    ViewSpace,
)
from nbv_planner.utils.logging import StructuredLogger
from nbv_planner.utils.settings import PlannerSettings


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


# =============================================================================
# Scripted Collaborators
# =============================================================================

def make_view(view_id: str, x: float = 0.0, y: float = 0.0, z: float = 0.0) -> View:
    return View(view_id=view_id, pose=Pose(position=(x, y, z)))


class ScriptedRobot(RobotInterface):
    """Robot whose answers are fixed per view id.

    ``costs`` maps a target view id to a cost, a CostException, or a
    Failed result. ``data_script`` / ``move_script`` are consumed one
    entry per call; once exhausted every call succeeds. ``hooks`` maps a
    method name to a callback invoked with the 1-based call number before
    the answer is produced.
    """

    def __init__(
        self,
        views: Sequence[View],
        costs: dict[str, object] | None = None,
        start: View | None = None,
        data_script: Sequence[CallResult] = (),
        move_script: Sequence[CallResult] = (),
        view_space_failures: int = 0,
    ) -> None:
        self.views = list(views)
        self.costs = dict(costs or {})
        self.current = start or make_view("start")
        self.data_script = list(data_script)
        self.move_script = list(move_script)
        self.view_space_failures = view_space_failures
        self.hooks: dict[str, Callable[[int], None]] = {}
        self.calls: dict[str, int] = {
            "fetch_view_space": 0,
            "fetch_current_view": 0,
            "retrieve_data": 0,
            "movement_cost": 0,
            "move_to": 0,
        }
        self.cost_targets: list[str] = []
        self.moves: list[str] = []

    def _tick(self, name: str) -> int:
        self.calls[name] += 1
        hook = self.hooks.get(name)
        if hook is not None:
            hook(self.calls[name])
        return self.calls[name]

    def fetch_view_space(self) -> CallResult[ViewSpace]:
        n = self._tick("fetch_view_space")
        if n <= self.view_space_failures:
            return Failed(FailureKind.UNAVAILABLE)
        return Ok(ViewSpace(self.views))

    def fetch_current_view(self) -> CallResult[View]:
        self._tick("fetch_current_view")
        return Ok(self.current)

    def retrieve_data(self) -> CallResult[ReceiveStatus]:
        self._tick("retrieve_data")
        if self.data_script:
            return self.data_script.pop(0)
        return Ok(ReceiveStatus.RECEIVED)

    def movement_cost(self, start: View, target: View) -> CallResult[MovementCost]:
        self._tick("movement_cost")
        self.cost_targets.append(target.view_id)
        answer = self.costs.get(target.view_id, 1.0)
        if isinstance(answer, Failed):
            return answer
        if isinstance(answer, CostException):
            return Ok(MovementCost(exception=answer))
        return Ok(MovementCost(cost=float(answer)))

    def move_to(self, target: View) -> CallResult[bool]:
        self._tick("move_to")
        if self.move_script:
            result = self.move_script.pop(0)
        else:
            result = Ok(True)
        if result.ok and result.value:
            self.current = target
            self.moves.append(target.view_id)
        return result


class ScriptedEstimator(InformationGainEstimator):
    """Information vectors fixed per view position.

    ``gains`` maps a view id to a vector or a Failed result; lookups go
    through ``views`` to translate the requested pose back to an id.
    """

    def __init__(self, views: Sequence[View], gains: dict[str, object] | None = None) -> None:
        self._by_pose = {v.pose: v.view_id for v in views}
        self.gains = dict(gains or {})
        self.requests: list[tuple[str, tuple[str, ...]]] = []

    def information_gain(
        self,
        poses: Sequence[Pose],
        metric_names: Sequence[str],
        ray_parameters: RayParameters,
    ) -> CallResult[list[float]]:
        view_id = self._by_pose[poses[0]]
        self.requests.append((view_id, tuple(metric_names)))
        answer = self.gains.get(view_id, [])
        if isinstance(answer, Failed):
            return answer
        return Ok(list(answer))


class FakeSleep:
    """Records sleep calls; optionally runs a hook on each call."""

    def __init__(self, hook: Callable[[int], None] | None = None) -> None:
        self.calls: list[float] = []
        self.hook = hook

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.hook is not None:
            self.hook(len(self.calls))


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def quiet_log():
    """Structured logger that keeps history but prints nothing."""
    return StructuredLogger(console_output=False)


@pytest.fixture
def line_views():
    """Three views along the x axis."""
    return [make_view(f"v{i}", x=float(i + 1)) for i in range(3)]


@pytest.fixture
def settings(tmp_path):
    """Settings writing into a temp dir, one weighted metric."""
    return PlannerSettings(
        output_dir=tmp_path,
        cost_weight=1.0,
        metric_names=("metric1",),
        metric_weights={"metric1": 2.0},
    )
