"""Synthetic scene shared by the simulated robot and reconstruction model."""

from __future__ import annotations

import math

import numpy as np

from nbv_planner.schemas import Pose, View, ViewSpace


def yaw_to_quaternion(yaw: float) -> tuple[float, float, float, float]:
    """Quaternion (x, y, z, w) for a rotation about the z axis."""
    return (0.0, 0.0, math.sin(yaw / 2.0), math.cos(yaw / 2.0))


class SimulatedScene:
    """A unit-sphere object surrounded by a ring of candidate views.

    Surface points are sampled deterministically from ``seed``. A point
    is visible from a pose when its outward normal faces the pose within
    ``visibility_angle`` radians. Retrieving data at a pose marks its
    visible points as observed.
    """

    def __init__(
        self,
        n_views: int = 16,
        n_points: int = 400,
        view_radius: float = 2.0,
        view_height: float = 0.5,
        visibility_angle: float = math.radians(60.0),
        seed: int = 42,
    ) -> None:
        if n_views < 1:
            raise ValueError("n_views must be at least 1")
        rng = np.random.default_rng(seed)
        points = rng.normal(size=(n_points, 3))
        self._points = points / np.linalg.norm(points, axis=1, keepdims=True)
        self._observed = np.zeros(n_points, dtype=bool)
        self._cos_visibility = math.cos(visibility_angle)

        self._views: list[View] = []
        for i in range(n_views):
            angle = 2.0 * math.pi * i / n_views
            position = (
                view_radius * math.cos(angle),
                view_radius * math.sin(angle),
                view_height,
            )
            # Look back at the object center
            orientation = yaw_to_quaternion(angle + math.pi)
            self._views.append(
                View(view_id=f"view_{i:03d}", pose=Pose(position=position, orientation=orientation))
            )

    @property
    def views(self) -> list[View]:
        return list(self._views)

    def view_space(self) -> ViewSpace:
        return ViewSpace(self._views)

    @property
    def point_count(self) -> int:
        return len(self._points)

    @property
    def observed_fraction(self) -> float:
        return float(self._observed.mean()) if len(self._observed) else 0.0

    def visible_mask(self, pose: Pose) -> np.ndarray:
        """Boolean mask of the surface points visible from ``pose``."""
        direction = np.asarray(pose.position, dtype=float)[None, :] - self._points
        direction /= np.linalg.norm(direction, axis=1, keepdims=True)
        facing = np.einsum("ij,ij->i", self._points, direction)
        return facing > self._cos_visibility

    def observe(self, pose: Pose) -> int:
        """Mark points visible from ``pose`` as observed; returns newly observed count."""
        mask = self.visible_mask(pose)
        new = int(np.count_nonzero(mask & ~self._observed))
        self._observed |= mask
        return new

    def unknown_visible(self, pose: Pose) -> tuple[int, int]:
        """(unobserved visible points, visible points) from ``pose``."""
        mask = self.visible_mask(pose)
        return int(np.count_nonzero(mask & ~self._observed)), int(np.count_nonzero(mask))

    def reset(self) -> None:
        self._observed[:] = False
