"""Termination criteria for the planning loop."""

from __future__ import annotations

from typing import Sequence

from nbv_planner.core.interfaces import TerminationCriterion


class NeverTerminate(TerminationCriterion):
    """Baseline criterion: the reconstruction never finishes on its own.

    Only an explicit stop command ends the loop.
    """

    def should_terminate(
        self,
        best_return: float,
        cost: float,
        information: Sequence[float] | None,
    ) -> bool:
        return False


class IterationLimit(TerminationCriterion):
    """Stop after a fixed number of planning rounds."""

    def __init__(self, max_iterations: int) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self._max_iterations = max_iterations
        self._rounds = 0

    @property
    def rounds(self) -> int:
        return self._rounds

    def should_terminate(
        self,
        best_return: float,
        cost: float,
        information: Sequence[float] | None,
    ) -> bool:
        self._rounds += 1
        return self._rounds >= self._max_iterations

    def reset(self) -> None:
        self._rounds = 0
