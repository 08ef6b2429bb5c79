"""View planner - runs the next-best-view loop.

The planner enforces the strict sequence:
1. Wait for START
2. Acquire view space → acquire current view → retrieve baseline data
3. Per iteration:
   a. Filter candidates (good views only)
   b. Movement cost per candidate (failures mark the view bad)
   c. Information gain per cost-viable candidate
   d. Returns → select best → record row
   e. Termination check → move → retrieve data
4. Save the planning data once the loop ends
"""

from __future__ import annotations

import math
import time
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from nbv_planner.core.control import CommandChannel, CommandHandler, ControlState
from nbv_planner.core.retry import RetryDriver, RetryPolicy, RetryStatus
from nbv_planner.metrics.recorder import PlanningDataRecorder, PlanningTable
from nbv_planner.planning.selection import NoViableCandidateError, select_best
from nbv_planner.planning.utility import UtilityCalculator
from nbv_planner.schemas import (
    CallResult,
    CandidateEvaluation,
    CostException,
    Failed,
    FailureKind,
    IterationResult,
    ReceiveStatus,
    View,
    ViewSpace,
)
from nbv_planner.utils.logging import LogCategory, StructuredLogger, get_logger
from nbv_planner.utils.settings import PlannerSettings

if TYPE_CHECKING:
    from nbv_planner.core.interfaces import (
        InformationGainEstimator,
        RobotInterface,
        TerminationCriterion,
    )


class PlannerState(str, Enum):
    """Where the planner is in its lifecycle."""

    IDLE = "idle"
    WAITING_FOR_START = "waiting_for_start"
    ACQUIRING_VIEW_SPACE = "acquiring_view_space"
    ACQUIRING_CURRENT_VIEW = "acquiring_current_view"
    RETRIEVING_DATA = "retrieving_data"
    PLANNING = "planning"
    PAUSED = "paused"
    MOVING = "moving"
    TERMINATED = "terminated"


class ViewPlanner:
    """Orchestrates the next-best-view planning loop.

    All collaborators are injected via the constructor. Commands are only
    applied when the planner drains its channel at a checkpoint: while
    waiting for start, between retry attempts, at the pause checkpoints
    and at the end of each iteration. A remote call in flight is never
    interrupted.
    """

    def __init__(
        self,
        robot: RobotInterface,
        estimator: InformationGainEstimator,
        settings: PlannerSettings | None = None,
        termination: TerminationCriterion | None = None,
        control: ControlState | None = None,
        channel: CommandChannel | None = None,
        recorder: PlanningDataRecorder | None = None,
        sleep: Callable[[float], None] = time.sleep,
        log: StructuredLogger | None = None,
    ) -> None:
        """Initialize the planner.

        Args:
            robot: Robot capabilities (view space, cost, motion, data).
            estimator: Information gain estimator.
            settings: Planner settings (defaults if omitted).
            termination: Termination criterion (never terminates if omitted).
            control: Shared control flags.
            channel: Command channel written by external actors.
            recorder: Planning data recorder.
            sleep: Sleep function (injectable for tests).
            log: Structured logger.
        """
        self._robot = robot
        self._estimator = estimator
        self._settings = settings or PlannerSettings()
        if termination is None:
            # planning.termination imports core.interfaces
            from nbv_planner.planning.termination import NeverTerminate
            termination = NeverTerminate()
        self._termination = termination
        self._control = control or ControlState()
        self._sleep = sleep
        self._log = log or get_logger()

        self._recorder = recorder or PlanningDataRecorder(
            self._settings.metric_names, log=self._log
        )
        self._commands = CommandHandler(
            self._control,
            channel=channel,
            on_print=self.save_data,
            log=self._log,
        )
        self._retry = RetryDriver(
            self._control,
            pump=self.process_commands,
            sleep=sleep,
            log=self._log,
        )
        self._utility = UtilityCalculator(
            self._settings.information_weights(self._log),
            cost_weight=self._settings.cost_weight,
            log=self._log,
        )

        self._service_policy = RetryPolicy(
            delay=self._settings.service_poll_interval,
            abortable=False,
            stop_on_request=True,
        )
        self._action_policy = RetryPolicy(delay=self._settings.retry_delay)

        self._state = PlannerState.IDLE
        self._view_space = ViewSpace()
        self._current_view: View | None = None
        self._iteration = 0
        self._saved_paths: list[Path] = []

    # -------------------------------------------------------------------------
    # PROPERTIES
    # -------------------------------------------------------------------------

    @property
    def state(self) -> PlannerState:
        return self._state

    @property
    def control(self) -> ControlState:
        return self._control

    @property
    def channel(self) -> CommandChannel:
        return self._commands.channel

    @property
    def view_space(self) -> ViewSpace:
        return self._view_space

    @property
    def current_view(self) -> View | None:
        return self._current_view

    @property
    def recorder(self) -> PlanningDataRecorder:
        return self._recorder

    @property
    def utility(self) -> UtilityCalculator:
        return self._utility

    @property
    def iteration(self) -> int:
        """Number of planning rounds that selected a view."""
        return self._iteration

    @property
    def saved_paths(self) -> list[Path]:
        """Data files written during this run, oldest first."""
        return list(self._saved_paths)

    # -------------------------------------------------------------------------
    # COMMANDS AND OUTPUT
    # -------------------------------------------------------------------------

    def process_commands(self) -> int:
        """Apply all pending commands. Returns how many were drained."""
        return self._commands.process_pending()

    def save_data(self) -> Path | None:
        """Write the planning data recorded so far to the output directory.

        A failed write is logged and planning continues; the rows stay in
        the recorder for the next save.

        Returns:
            Path of the written file, or None if writing failed.
        """
        try:
            path = self._recorder.save(self._settings.output_dir)
        except OSError as e:
            self._log.error(
                LogCategory.RECORDER,
                f"Could not write planning data to {self._settings.output_dir}: {e}",
            )
            return None
        self._saved_paths.append(path)
        return path

    # -------------------------------------------------------------------------
    # MAIN LOOP
    # -------------------------------------------------------------------------

    def run(
        self,
        on_iteration: Callable[[IterationResult], Any] | None = None,
    ) -> PlanningTable:
        """Run the planner until termination or a stop command.

        Args:
            on_iteration: Called with each completed iteration's result.

        Returns:
            The recorded planning table (also written to file).
        """
        self._termination.reset()

        if not self._wait_for_start():
            return self._finish()
        if not self._acquire_view_space():
            return self._finish()
        if not self._acquire_current_view():
            return self._finish()
        self._retrieve_data()

        self._set_state(PlannerState.PLANNING)
        while True:
            result = self.iterate()
            if result is not None:
                if on_iteration is not None:
                    on_iteration(result)
                if result.terminated:
                    self._log.info(
                        LogCategory.TERMINATION,
                        "The termination criteria was fulfilled and the reconstruction "
                        "is thus considered to have succeeded. The view planner will shut down.",
                        iteration=result.iteration,
                    )
                    break

            self.process_commands()
            if self._control.stop_requested:
                self._log.info(LogCategory.SYSTEM, "Stop requested, leaving the planning loop.")
                break

        return self._finish()

    def iterate(self) -> IterationResult | None:
        """Run one planning round.

        Returns:
            The iteration result, or None if the round ended without a
            decision (no viable candidate, or stopped while re-acquiring
            the view space).
        """
        if self._current_view is None:
            raise RuntimeError("Planner has no current view; acquire it before iterating")

        self._pause_if_requested()

        if self._control.consume_reinit():
            self._log.info(LogCategory.VIEW_SPACE, "Reinitializing view space.")
            acquired = self._acquire_view_space()
            self._set_state(PlannerState.PLANNING)
            if not acquired:
                return None

        self._iteration += 1
        candidates = self._view_space.good_views()

        self._log.info(LogCategory.COST, "Retrieve movement costs...", iteration=self._iteration)
        evaluations = self._evaluate_costs(candidates)
        self._pause_if_requested()

        self._log.info(
            LogCategory.INFORMATION, "Retrieve information gain...", iteration=self._iteration
        )
        self._evaluate_information(evaluations)
        self._pause_if_requested()

        self._log.info(
            LogCategory.SELECTION, "Calculating next best view...", iteration=self._iteration
        )
        for evaluation in evaluations:
            if evaluation.viable:
                evaluation.return_value = self._utility.compute_return(
                    evaluation.cost, evaluation.information
                )

        try:
            selection = select_best(
                [e.return_value for e in evaluations],
                [e.viable for e in evaluations],
            )
        except NoViableCandidateError as e:
            self._log.error(
                LogCategory.SELECTION,
                f"{e} ({len(candidates)} candidates, {self._view_space.bad_count} marked bad). "
                "Skipping the round and reacquiring the view space.",
                iteration=self._iteration,
            )
            # Rounds without a decision are not counted
            self._iteration -= 1
            self._control.request_reinit()
            self._sleep(self._settings.service_poll_interval)
            self.process_commands()
            return None

        best = evaluations[selection.index]
        self._log.info(
            LogCategory.SELECTION,
            f"Next best view selected with winning margin {selection.summary.winning_margin:.4g}",
            iteration=self._iteration,
            view_id=best.view.view_id,
            cost=best.cost,
            return_value=selection.summary.best_return,
        )

        self._recorder.record_iteration(
            best.view, selection.summary, best.cost, best.information
        )

        terminated = self._termination.should_terminate(
            selection.summary.best_return, best.cost, best.information
        )
        move_completed: bool | None = None
        if not terminated:
            move_completed = self._move_to(best.view)
            self._retrieve_data()
            self._set_state(PlannerState.PLANNING)

        return IterationResult(
            iteration=self._iteration,
            view=best.view,
            summary=selection.summary,
            cost=best.cost,
            information=best.information,
            candidates_considered=len(evaluations),
            candidates_viable=sum(1 for e in evaluations if e.viable),
            terminated=terminated,
            move_completed=move_completed,
        )

    # -------------------------------------------------------------------------
    # PHASES
    # -------------------------------------------------------------------------

    def _evaluate_costs(self, candidates: list[View]) -> list[CandidateEvaluation]:
        """Movement cost per candidate; any failure marks the view bad."""
        evaluations = []
        for view in candidates:
            evaluation = CandidateEvaluation(view=view)
            result = self._call(
                "Movement cost", self._robot.movement_cost, self._current_view, view
            )
            if not result.ok:
                evaluation.cost_exception = CostException.OTHER
            elif not result.value.usable:
                evaluation.cost_exception = result.value.exception
            elif not math.isfinite(result.value.cost):
                evaluation.cost_exception = CostException.OTHER
            else:
                evaluation.cost = result.value.cost

            if not evaluation.viable:
                self._view_space.mark_bad(view.view_id)
                self._log.info(
                    LogCategory.COST,
                    f"View excluded from planning ({evaluation.cost_exception.value})",
                    iteration=self._iteration,
                    view_id=view.view_id,
                )
            evaluations.append(evaluation)
        return evaluations

    def _evaluate_information(self, evaluations: list[CandidateEvaluation]) -> None:
        """Information gain for each cost-viable candidate, one pose per call."""
        for evaluation in evaluations:
            if not evaluation.viable:
                continue
            result = self._call(
                "Information gain",
                self._estimator.information_gain,
                [evaluation.view.pose],
                self._settings.metric_names,
                self._settings.ray_parameters,
            )
            if not result.ok:
                reason = result.kind.value
            elif not all(math.isfinite(v) for v in result.value):
                reason = "non-finite value"
            else:
                evaluation.information = list(result.value)
                continue
            self._log.warning(
                LogCategory.INFORMATION,
                f"Information gain unavailable ({reason}); "
                "using the cost-only return for this view",
                iteration=self._iteration,
                view_id=evaluation.view.view_id,
            )

    def _wait_for_start(self) -> bool:
        """Block until START. Returns False if a stop arrives first."""
        self._set_state(PlannerState.WAITING_FOR_START)
        while True:
            self.process_commands()
            if self._control.started:
                self._log.info(LogCategory.SYSTEM, "Start signal received.")
                return True
            if self._control.stop_requested:
                self._log.info(LogCategory.SYSTEM, "Stop requested before start.")
                return False
            self._sleep(self._settings.start_poll_interval)

    def _acquire_view_space(self) -> bool:
        self._set_state(PlannerState.ACQUIRING_VIEW_SPACE)
        outcome = self._retry.run(
            lambda: self._call("View space", self._robot.fetch_view_space),
            self._service_policy,
            label="View space service",
            category=LogCategory.VIEW_SPACE,
        )
        if not outcome.completed:
            return False
        self._view_space.replace(outcome.value)
        self._log.info(
            LogCategory.VIEW_SPACE, f"Acquired view space with {len(self._view_space)} views."
        )
        return True

    def _acquire_current_view(self) -> bool:
        self._set_state(PlannerState.ACQUIRING_CURRENT_VIEW)
        outcome = self._retry.run(
            lambda: self._call("Current view", self._robot.fetch_current_view),
            self._service_policy,
            label="Current view service",
            category=LogCategory.VIEW_SPACE,
        )
        if not outcome.completed:
            return False
        self._current_view = outcome.value
        self._log.info(
            LogCategory.VIEW_SPACE, "Current view acquired.", view_id=outcome.value.view_id
        )
        return True

    def _retrieve_data(self) -> bool:
        self._set_state(PlannerState.RETRIEVING_DATA)
        outcome = self._retry.run(
            lambda: self._call("Data retrieval", self._robot.retrieve_data),
            self._action_policy,
            accept=lambda status: status == ReceiveStatus.RECEIVED,
            label="Data retrieval service",
            category=LogCategory.DATA,
        )
        return outcome.completed

    def _move_to(self, view: View) -> bool:
        """Move to ``view``; after an abort the current view is re-acquired."""
        self._set_state(PlannerState.MOVING)
        outcome = self._retry.run(
            lambda: self._call("Move", self._robot.move_to, view),
            self._action_policy,
            accept=lambda moved: moved is True,
            label="Robot movement service",
            category=LogCategory.MOTION,
        )
        if outcome.completed:
            self._current_view = view
            return True

        if outcome.status == RetryStatus.ABORTED:
            self._log.warning(
                LogCategory.MOTION,
                "Move aborted; the robot position is unknown, reacquiring current view.",
                view_id=view.view_id,
            )
            self._acquire_current_view()
        return False

    def _pause_if_requested(self) -> None:
        self.process_commands()
        if not self._control.paused:
            return
        previous = self._state
        self._set_state(PlannerState.PAUSED)
        self._log.info(LogCategory.SYSTEM, "Paused.")
        while self._control.paused:
            self._sleep(self._settings.pause_poll_interval)
            self.process_commands()
        self._set_state(previous)
        self._log.info(LogCategory.SYSTEM, "Resumed.")

    def _finish(self) -> PlanningTable:
        self._set_state(PlannerState.TERMINATED)
        self._log.info(LogCategory.RECORDER, "Saving data to file.")
        self.save_data()
        return self._recorder.flush()

    # -------------------------------------------------------------------------
    # HELPERS
    # -------------------------------------------------------------------------

    def _set_state(self, state: PlannerState) -> None:
        if state != self._state:
            self._log.debug(
                LogCategory.SYSTEM, f"State {self._state.value} -> {state.value}"
            )
            self._state = state

    def _call(self, label: str, operation: Callable[..., CallResult], *args: Any) -> CallResult:
        """Invoke a capability, turning an escaped exception into Failed(ERROR)."""
        try:
            return operation(*args)
        except Exception as e:
            self._log.error(LogCategory.SYSTEM, f"{label} call raised {e!r}")
            return Failed(FailureKind.ERROR, str(e))
