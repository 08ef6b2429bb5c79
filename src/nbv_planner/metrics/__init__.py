"""Planning data recording."""

from nbv_planner.metrics.recorder import BASE_COLUMNS, PlanningDataRecorder, PlanningTable

__all__ = [
    "BASE_COLUMNS",
    "PlanningDataRecorder",
    "PlanningTable",
]
