"""Simulated information gain estimator over a ``SimulatedScene``."""

from __future__ import annotations

from typing import Sequence

from nbv_planner.core.interfaces import InformationGainEstimator
from nbv_planner.modules.stubs.scene import SimulatedScene
from nbv_planner.schemas import CallResult, Failed, FailureKind, Ok, Pose, RayParameters


class SimulatedReconstruction(InformationGainEstimator):
    """Computes information metrics from the scene's observed points.

    Only a few metrics are modeled; any other requested metric reads 0.
    ``fail_every`` makes every n-th call fail, to exercise the cost-only
    fallback of the planner.
    """

    def __init__(self, scene: SimulatedScene, fail_every: int = 0) -> None:
        self._scene = scene
        self._fail_every = fail_every
        self.calls = 0

    def _metrics(self, pose: Pose) -> dict[str, float]:
        unknown, visible = self._scene.unknown_visible(pose)
        known = visible - unknown
        unknown_fraction = unknown / visible if visible else 0.0
        return {
            "NrOfUnknownVoxels": float(unknown),
            "AverageUncertainty": unknown_fraction,
            "AverageEndPointUncertainty": unknown_fraction,
            "UnknownObjectSideFrontier": float(min(unknown, known)),
            "ClassicFrontier": float(min(unknown, known)),
            "TotalNrOfOccupieds": float(known),
        }

    def information_gain(
        self,
        poses: Sequence[Pose],
        metric_names: Sequence[str],
        ray_parameters: RayParameters,
    ) -> CallResult[list[float]]:
        self.calls += 1
        if self._fail_every and self.calls % self._fail_every == 0:
            return Failed(FailureKind.TIMEOUT, "ray casting timed out")
        if not poses:
            return Failed(FailureKind.REJECTED, "no poses given")

        totals = [0.0] * len(metric_names)
        for pose in poses:
            metrics = self._metrics(pose)
            for i, name in enumerate(metric_names):
                totals[i] += metrics.get(name, 0.0)
        return Ok(totals)
