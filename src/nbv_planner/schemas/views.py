"""Pose, view, and view space data contracts."""

from __future__ import annotations

import math
from typing import Iterable, Iterator

from pydantic import BaseModel, Field, field_validator

from nbv_planner.utils.config import QUATERNION_NORM_TOLERANCE


class Pose(BaseModel):
    """A 3D position with a unit quaternion orientation.

    The orientation is stored as (x, y, z, w) and normalized on
    construction; quaternions far from unit length are rejected.
    """

    position: tuple[float, float, float] = Field(
        default=(0.0, 0.0, 0.0),
        description="Position (x, y, z) in the planning frame",
    )
    orientation: tuple[float, float, float, float] = Field(
        default=(0.0, 0.0, 0.0, 1.0),
        description="Unit quaternion (x, y, z, w)",
    )

    model_config = {"frozen": True}

    @field_validator("orientation")
    @classmethod
    def _normalize_orientation(
        cls, value: tuple[float, float, float, float]
    ) -> tuple[float, float, float, float]:
        norm = math.sqrt(sum(c * c for c in value))
        if abs(norm - 1.0) > QUATERNION_NORM_TOLERANCE:
            raise ValueError(f"orientation is not a unit quaternion (norm={norm:.6f})")
        return tuple(c / norm for c in value)

    def distance_to(self, other: Pose) -> float:
        """Euclidean distance between the two positions."""
        return math.dist(self.position, other.position)


class View(BaseModel):
    """A candidate viewpoint.

    Two views are the same view when their identifiers match, regardless
    of pose values.
    """

    view_id: str = Field(..., description="Opaque identifier of this view")
    pose: Pose = Field(..., description="Sensor pose for this view")

    model_config = {"frozen": True}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, View):
            return NotImplemented
        return self.view_id == other.view_id

    def __hash__(self) -> int:
        return hash(self.view_id)


class ViewSpace:
    """Ordered collection of candidate views, each tagged good or bad.

    A view marked bad stays excluded until the whole space is replaced.
    """

    def __init__(self, views: Iterable[View] = ()) -> None:
        self._views: list[View] = []
        self._index: dict[str, int] = {}
        self._bad: set[str] = set()
        self._load(views)

    def _load(self, views: Iterable[View]) -> None:
        views = list(views)
        index: dict[str, int] = {}
        for i, view in enumerate(views):
            if view.view_id in index:
                raise ValueError(f"Duplicate view id in view space: {view.view_id}")
            index[view.view_id] = i
        self._views = views
        self._index = index
        self._bad = set()

    def __len__(self) -> int:
        return len(self._views)

    def __iter__(self) -> Iterator[View]:
        return iter(self._views)

    def __contains__(self, view_id: object) -> bool:
        return view_id in self._index

    def get(self, view_id: str) -> View:
        """Get a view by identifier."""
        return self._views[self._index[view_id]]

    def good_views(self) -> list[View]:
        """Views not marked bad, in space order."""
        return [v for v in self._views if v.view_id not in self._bad]

    def is_bad(self, view_id: str) -> bool:
        return view_id in self._bad

    @property
    def bad_count(self) -> int:
        return len(self._bad)

    def mark_bad(self, view_id: str) -> None:
        """Exclude a view from all future planning rounds.

        Raises:
            KeyError: If the view is not part of this space.
        """
        if view_id not in self._index:
            raise KeyError(view_id)
        self._bad.add(view_id)

    def replace(self, new_space: ViewSpace | Iterable[View]) -> None:
        """Swap in a freshly acquired view space; all bad marks are dropped."""
        self._load(list(new_space))
