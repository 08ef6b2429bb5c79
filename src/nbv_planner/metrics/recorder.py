"""Per-iteration planning data recording and table output.

This module provides:
- PlanningTable: Immutable snapshot of recorded rows with text output
- PlanningDataRecorder: Accumulates one row per planning iteration
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Mapping, Sequence

from nbv_planner.schemas import ReturnSummary, View
from nbv_planner.utils.config import DATA_FILE_PREFIX, DATA_FILE_SUFFIX, DEFAULT_METRIC_NAMES
from nbv_planner.utils.logging import LogCategory, StructuredLogger, get_logger

logger = logging.getLogger(__name__)

# Columns every row starts with, before the metric columns
BASE_COLUMNS: tuple[str, ...] = (
    "pos_x",
    "pos_y",
    "pos_z",
    "rot_x",
    "rot_y",
    "rot_z",
    "rot_w",
    "return_value",
    "winning_margin",
    "return_value_mean",
    "return_value_stddev",
    "cost",
)


@dataclass(frozen=True)
class PlanningTable:
    """Snapshot of the recorded planning data."""

    columns: tuple[str, ...]
    rows: tuple[tuple[float, ...], ...]

    def __len__(self) -> int:
        return len(self.rows)

    def column(self, name: str) -> list[float]:
        """All values of one column."""
        idx = self.columns.index(name)
        return [row[idx] for row in self.rows]

    def as_dicts(self) -> list[dict[str, float]]:
        return [dict(zip(self.columns, row)) for row in self.rows]

    def to_text(self) -> str:
        """Header line of column names, then one space-separated line per row."""
        lines = [" ".join(self.columns)]
        for row in self.rows:
            lines.append(" ".join(f"{v:g}" for v in row))
        return "\n".join(lines)

    def write(self, path: Path) -> Path:
        """Write the table to ``path``, replacing any existing file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_text(), encoding="utf-8")
        return path


class PlanningDataRecorder:
    """Accumulates one named-column row per planning iteration.

    The column set starts from the base columns plus one per metric and
    only ever grows: an unknown extra field appends a column, and every
    earlier row reads 0 in it.
    """

    def __init__(
        self,
        metric_names: Sequence[str] = DEFAULT_METRIC_NAMES,
        log: StructuredLogger | None = None,
    ) -> None:
        self._metric_names = tuple(metric_names)
        self._columns: list[str] = []
        self._column_index: dict[str, int] = {}
        self._rows: list[list[float]] = []
        self._log = log or get_logger()
        for name in BASE_COLUMNS + self._metric_names:
            self.add_column(name)

    @property
    def columns(self) -> list[str]:
        return list(self._columns)

    @property
    def row_count(self) -> int:
        return len(self._rows)

    def add_column(self, name: str, default: float = 0.0) -> int:
        """Append a column, back-filling existing rows with ``default``.

        Returns:
            Index of the column (existing index if already present).
        """
        if name in self._column_index:
            return self._column_index[name]
        self._columns.append(name)
        self._column_index[name] = len(self._columns) - 1
        for row in self._rows:
            row.append(default)
        if self._rows:
            self._log.debug(
                LogCategory.RECORDER,
                f"Added column {name!r}, back-filled {len(self._rows)} rows",
            )
        return self._column_index[name]

    def record_iteration(
        self,
        view: View,
        summary: ReturnSummary,
        cost: float,
        information: Sequence[float] | None,
        extra: Mapping[str, float] | None = None,
    ) -> dict[str, float]:
        """Append the row of one completed iteration.

        Args:
            view: Selected view.
            summary: Return statistics of the round.
            cost: Movement cost of the selected view.
            information: Information vector of the selected view.
            extra: Additional named values; unknown names add columns.

        Returns:
            The recorded row as a column -> value mapping.

        Raises:
            ValueError: If an extra name is a base or metric column.
        """
        if extra:
            reserved = sorted(set(extra) & set(BASE_COLUMNS + self._metric_names))
            if reserved:
                raise ValueError(f"Extra values may not replace recorded columns: {reserved}")
            for name in extra:
                self.add_column(name)

        row = [0.0] * len(self._columns)
        position = view.pose.position
        orientation = view.pose.orientation
        values = {
            "pos_x": position[0],
            "pos_y": position[1],
            "pos_z": position[2],
            "rot_x": orientation[0],
            "rot_y": orientation[1],
            "rot_z": orientation[2],
            "rot_w": orientation[3],
            "return_value": summary.best_return,
            "winning_margin": summary.winning_margin,
            "return_value_mean": summary.mean,
            "return_value_stddev": summary.stddev,
            "cost": cost,
        }
        for name, value in values.items():
            row[self._column_index[name]] = float(value)

        information = list(information or [])
        if len(information) > len(self._metric_names):
            self._log.warning(
                LogCategory.RECORDER,
                f"Information vector has {len(information)} values but only "
                f"{len(self._metric_names)} metrics are configured; dropping the excess",
            )
            information = information[: len(self._metric_names)]
        for name, value in zip(self._metric_names, information):
            row[self._column_index[name]] = float(value)

        if extra:
            for name, value in extra.items():
                row[self._column_index[name]] = float(value)

        self._rows.append(row)
        return dict(zip(self._columns, row))

    def flush(self) -> PlanningTable:
        """Snapshot all rows; recording can continue afterwards."""
        return PlanningTable(
            columns=tuple(self._columns),
            rows=tuple(tuple(row) for row in self._rows),
        )

    def save(self, directory: Path | str, timestamp: datetime | None = None) -> Path:
        """Write the current table to ``<directory>/planning_data<timestamp>.data``.

        Returns:
            Path of the written file.
        """
        timestamp = timestamp or datetime.now()
        stamp = timestamp.strftime("%Y%m%d_%H%M%S_%f")
        path = Path(directory) / f"{DATA_FILE_PREFIX}{stamp}{DATA_FILE_SUFFIX}"
        table = self.flush()
        table.write(path)
        logger.debug("Wrote %d planning rows to %s", len(table), path)
        self._log.info(LogCategory.RECORDER, f"Saved {len(table)} rows to {path}")
        return path
