"""Tests for return computation, selection, and termination."""

from __future__ import annotations

import pytest

from nbv_planner.planning import (
    IterationLimit,
    NeverTerminate,
    NoViableCandidateError,
    PlanningError,
    UtilityCalculator,
    select_best,
)
from nbv_planner.utils.logging import LogCategory, LogLevel


# =============================================================================
# UtilityCalculator Tests
# =============================================================================

class TestUtilityCalculator:
    """Tests for the weighted return."""

    def test_worked_example(self, quiet_log):
        """Weights cost=1, metric1=2 give returns 9 and 18."""
        calc = UtilityCalculator([2.0], cost_weight=1.0, log=quiet_log)
        assert calc.compute_return(1.0, [5.0]) == pytest.approx(9.0)
        assert calc.compute_return(2.0, [10.0]) == pytest.approx(18.0)

    def test_cost_weight(self, quiet_log):
        calc = UtilityCalculator([1.0], cost_weight=0.5, log=quiet_log)
        assert calc.compute_return(4.0, [3.0]) == pytest.approx(1.0)

    def test_shorter_vector_uses_leading_weights(self, quiet_log):
        calc = UtilityCalculator([1.0, 10.0, 100.0], log=quiet_log)
        assert calc.compute_return(0.0, [2.0, 3.0]) == pytest.approx(32.0)

    def test_missing_information_is_cost_only(self, quiet_log):
        calc = UtilityCalculator([2.0], log=quiet_log)
        assert calc.compute_return(3.0, None) == pytest.approx(-3.0)
        assert calc.compute_return(3.0, []) == pytest.approx(-3.0)

    def test_too_many_values_is_cost_only(self, quiet_log):
        """No partial credit when there are more values than weights."""
        calc = UtilityCalculator([2.0], log=quiet_log)
        assert calc.compute_return(1.0, [5.0, 7.0]) == pytest.approx(-1.0)

        errors = [
            e for e in quiet_log.filter_by_category(LogCategory.SELECTION)
            if e.level == LogLevel.ERROR
        ]
        assert len(errors) == 1
        assert "Not enough information weights" in errors[0].message


# =============================================================================
# Selection Tests
# =============================================================================

class TestSelectBest:
    """Tests for the argmax scan."""

    def test_worked_example(self):
        selection = select_best([9.0, 18.0])
        assert selection.index == 1
        assert selection.summary.best_return == 18.0
        assert selection.summary.winning_margin == pytest.approx(9.0)

    def test_tie_keeps_lowest_index(self):
        selection = select_best([5.0, 7.0, 7.0, 7.0])
        assert selection.index == 1
        assert selection.summary.winning_margin == 0.0

    def test_single_candidate_margin_zero(self):
        selection = select_best([None, 4.0, None])
        assert selection.index == 1
        assert selection.summary.winning_margin == 0.0

    def test_runner_up_after_best(self):
        """A later second-best still counts as runner-up."""
        selection = select_best([1.0, 10.0, 8.0])
        assert selection.index == 1
        assert selection.summary.winning_margin == pytest.approx(2.0)

    def test_negative_returns(self):
        """All-negative rounds still pick the maximum."""
        selection = select_best([-5.0, -1.0, -3.0])
        assert selection.index == 1
        assert selection.summary.best_return == -1.0
        assert selection.summary.winning_margin == pytest.approx(2.0)

    def test_non_viable_ignored(self):
        selection = select_best([100.0, 1.0, 2.0], viable=[False, True, True])
        assert selection.index == 2
        assert selection.summary.winning_margin == pytest.approx(1.0)

    def test_statistics_over_viable(self):
        selection = select_best([1.0, None, 3.0])
        assert selection.summary.mean == pytest.approx(2.0)
        assert selection.summary.stddev == pytest.approx(1.0)

    @pytest.mark.parametrize(
        "returns",
        [
            [3.0, 1.0, 2.0],
            [0.5, 0.5],
            [-2.0, 4.0, 4.0, -7.0, 1.0],
            [10.0],
        ],
    )
    def test_selected_is_first_maximum(self, returns):
        selection = select_best(returns)
        best = max(returns)
        assert returns[selection.index] == best
        assert selection.index == returns.index(best)
        assert selection.summary.winning_margin >= 0.0

    def test_no_viable_candidate(self):
        with pytest.raises(NoViableCandidateError):
            select_best([None, None])
        with pytest.raises(PlanningError):
            select_best([1.0], viable=[False])

    def test_empty_round(self):
        with pytest.raises(NoViableCandidateError):
            select_best([])

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            select_best([1.0, 2.0], viable=[True])


# =============================================================================
# Termination Tests
# =============================================================================

class TestTermination:

    def test_never_terminate(self):
        criterion = NeverTerminate()
        for _ in range(100):
            assert not criterion.should_terminate(1e9, 0.0, [1.0])

    def test_iteration_limit(self):
        criterion = IterationLimit(3)
        results = [criterion.should_terminate(0.0, 0.0, None) for _ in range(3)]
        assert results == [False, False, True]
        criterion.reset()
        assert criterion.rounds == 0

    def test_iteration_limit_validation(self):
        with pytest.raises(ValueError):
            IterationLimit(0)
