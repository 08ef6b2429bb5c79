"""Utility calculation: turns cost and information into a single return."""

from __future__ import annotations

from typing import Sequence

from nbv_planner.utils.config import DEFAULT_COST_WEIGHT
from nbv_planner.utils.logging import LogCategory, StructuredLogger, get_logger


class UtilityCalculator:
    """Weighted sum of negative movement cost and information gain.

    return = -cost_weight * cost + sum_i(weight_i * information_i)

    Information vectors longer than the weight vector are a configuration
    mismatch: the error is logged and only the cost term is returned.
    """

    def __init__(
        self,
        information_weights: Sequence[float],
        cost_weight: float = DEFAULT_COST_WEIGHT,
        log: StructuredLogger | None = None,
    ) -> None:
        self._weights = [float(w) for w in information_weights]
        self._cost_weight = float(cost_weight)
        self._log = log or get_logger()

    @property
    def cost_weight(self) -> float:
        return self._cost_weight

    @property
    def information_weights(self) -> list[float]:
        return list(self._weights)

    def compute_return(
        self,
        cost: float,
        information: Sequence[float] | None,
    ) -> float:
        """Compute the return of a single candidate.

        Args:
            cost: Movement cost to the candidate.
            information: Information values, or None if they could not be
                estimated.

        Returns:
            The scalar return.
        """
        view_return = -self._cost_weight * cost

        if not information:
            return view_return

        if len(information) > len(self._weights):
            self._log.error(
                LogCategory.SELECTION,
                f"Not enough information weights available ({len(self._weights)}) "
                f"for the number of information values given ({len(information)}). "
                "Information is not considered for return value.",
            )
            return view_return

        for weight, value in zip(self._weights, information):
            view_return += weight * value

        return view_return
