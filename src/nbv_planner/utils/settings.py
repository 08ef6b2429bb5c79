"""Planner settings: weights, output location, and timing.

Settings can be built directly, from a flat parameter mapping using the
parameter-server key layout, or from a JSON file holding such a mapping::

    {
        "data_folder": "runs/",
        "cost_weight": 1.0,
        "information_metric/NrOfUnknownVoxels/weight": 2.0
    }
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, Field, model_validator

from nbv_planner.schemas import RayParameters
from nbv_planner.utils.config import (
    DEFAULT_COST_WEIGHT,
    DEFAULT_METRIC_NAMES,
    DEFAULT_METRIC_WEIGHT,
    PAUSE_POLL_INTERVAL,
    RETRY_DELAY,
    SERVICE_POLL_INTERVAL,
    START_POLL_INTERVAL,
)
from nbv_planner.utils.logging import LogCategory, StructuredLogger, get_logger

_METRIC_KEY_PREFIX = "information_metric/"
_METRIC_KEY_SUFFIX = "/weight"


class PlannerSettings(BaseModel):
    """Configuration of a planning run. Every field has a default."""

    output_dir: Path = Field(
        default_factory=Path.cwd,
        description="Directory the planning data file is written to",
    )
    cost_weight: float = Field(default=DEFAULT_COST_WEIGHT, ge=0.0)
    metric_names: tuple[str, ...] = Field(
        default=DEFAULT_METRIC_NAMES,
        description="Information metrics to request, in order",
    )
    metric_weights: dict[str, float] = Field(
        default_factory=dict,
        description="Weight per metric name; missing metrics weigh 0",
    )
    ray_parameters: RayParameters = Field(default_factory=RayParameters)

    start_poll_interval: float = Field(default=START_POLL_INTERVAL, ge=0.0)
    service_poll_interval: float = Field(default=SERVICE_POLL_INTERVAL, ge=0.0)
    retry_delay: float = Field(default=RETRY_DELAY, ge=0.0)
    pause_poll_interval: float = Field(default=PAUSE_POLL_INTERVAL, ge=0.0)

    @model_validator(mode="after")
    def _check_metric_weights(self) -> PlannerSettings:
        unknown = set(self.metric_weights) - set(self.metric_names)
        if unknown:
            raise ValueError(f"Weights given for unknown metrics: {sorted(unknown)}")
        return self

    def missing_weights(self) -> list[str]:
        """Metric names with no configured weight."""
        return [name for name in self.metric_names if name not in self.metric_weights]

    def information_weights(self, log: StructuredLogger | None = None) -> list[float]:
        """Weights in metric order, warning about each metric left at the default."""
        log = log or get_logger()
        for name in self.missing_weights():
            log.warning(
                LogCategory.SYSTEM,
                f"No weight configured for {name} metric. Weight will be set to "
                f"{DEFAULT_METRIC_WEIGHT:g} and the metric thus not considered in calculations.",
            )
        return [self.metric_weights.get(name, DEFAULT_METRIC_WEIGHT) for name in self.metric_names]

    @classmethod
    def from_mapping(cls, params: Mapping[str, Any], **overrides: Any) -> PlannerSettings:
        """Build settings from parameter-server style keys.

        Recognized keys: ``data_folder``, ``cost_weight`` and
        ``information_metric/<name>/weight``. Other keys are passed to the
        model as field names.
        """
        data: dict[str, Any] = {}
        weights: dict[str, float] = {}
        for key, value in params.items():
            if key.startswith(_METRIC_KEY_PREFIX) and key.endswith(_METRIC_KEY_SUFFIX):
                name = key[len(_METRIC_KEY_PREFIX):-len(_METRIC_KEY_SUFFIX)]
                weights[name] = float(value)
            elif key == "data_folder":
                data["output_dir"] = Path(value)
            else:
                data[key] = value
        if weights:
            data.setdefault("metric_weights", {}).update(weights)
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(data)

    @classmethod
    def from_json(cls, path: Path | str, **overrides: Any) -> PlannerSettings:
        """Load a parameter mapping from a JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            params = json.load(f)
        if not isinstance(params, dict):
            raise ValueError(f"Settings file {path} must contain a JSON object")
        return cls.from_mapping(params, **overrides)
