"""Next-best-view selection over scored candidates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from nbv_planner.schemas import ReturnSummary


class PlanningError(Exception):
    """Base class for errors raised by a planning round."""


class NoViableCandidateError(PlanningError):
    """Every candidate of the round was excluded by its movement cost."""


@dataclass(frozen=True)
class Selection:
    """Winner of a planning round."""

    index: int
    summary: ReturnSummary


def select_best(
    returns: Sequence[float | None],
    viable: Sequence[bool] | None = None,
) -> Selection:
    """Pick the candidate with the highest return.

    Single left-to-right scan with a strict comparison, so among equal
    returns the lowest index wins. The runner-up is the best return among
    the remaining viable candidates.

    Args:
        returns: Return per candidate; None marks a non-viable candidate.
        viable: Optional explicit viability flags, same length as returns.

    Returns:
        The selected index with the round's return statistics.

    Raises:
        NoViableCandidateError: If no candidate is viable.
    """
    if viable is None:
        viable = [r is not None for r in returns]
    if len(viable) != len(returns):
        raise ValueError("returns and viable must have the same length")

    best_index: int | None = None
    best: float | None = None
    runner_up: float | None = None
    scored: list[float] = []

    for i, (value, ok) in enumerate(zip(returns, viable)):
        if not ok or value is None:
            continue
        scored.append(value)
        if best is None or value > best:
            runner_up = best
            best = value
            best_index = i
        elif runner_up is None or value > runner_up:
            runner_up = value

    if best_index is None:
        raise NoViableCandidateError("No viable candidate view in this planning round")

    margin = best - runner_up if runner_up is not None else 0.0
    values = np.asarray(scored, dtype=float)

    return Selection(
        index=best_index,
        summary=ReturnSummary(
            best_return=best,
            winning_margin=margin,
            mean=float(values.mean()),
            stddev=float(values.std()),
        ),
    )
