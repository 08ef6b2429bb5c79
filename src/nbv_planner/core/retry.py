"""Poll-until-success driver for unreliable remote calls.

A ``RetryPolicy`` says how to retry (delay, attempt bound, which control
flags may end the wait); the ``RetryDriver`` runs an operation under a
policy, sleeping and draining pending commands between attempts.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

from nbv_planner.core.control import ControlState
from nbv_planner.schemas import CallResult, Failed
from nbv_planner.utils.config import RETRY_DELAY
from nbv_planner.utils.logging import LogCategory, StructuredLogger, get_logger

T = TypeVar("T")


class RetryStatus(str, Enum):
    """How a retried call ended."""

    COMPLETED = "completed"
    ABORTED = "aborted"      # Cancelled by ABORT_LOOP; the call may not have taken effect
    STOPPED = "stopped"      # Cancelled by STOP_AND_PRINT
    EXHAUSTED = "exhausted"  # max_attempts reached


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration.

    Attributes:
        delay: Fixed sleep between attempts in seconds (no growth).
        max_attempts: Attempt bound, None for unbounded.
        abortable: Whether a pending abort request cancels the wait.
        stop_on_request: Whether a pending stop request cancels the wait.
    """

    delay: float = RETRY_DELAY
    max_attempts: int | None = None
    abortable: bool = True
    stop_on_request: bool = False


@dataclass(frozen=True)
class RetryOutcome(Generic[T]):
    """Result of a retried call."""

    status: RetryStatus
    attempts: int
    value: T | None = None

    @property
    def completed(self) -> bool:
        return self.status == RetryStatus.COMPLETED


class RetryDriver:
    """Runs capability calls until they succeed or are cancelled."""

    def __init__(
        self,
        control: ControlState,
        pump: Callable[[], Any] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        log: StructuredLogger | None = None,
    ) -> None:
        """Initialize the driver.

        Args:
            control: Shared control flags.
            pump: Called after every sleep to process pending commands.
            sleep: Sleep function (injectable for tests).
            log: Structured logger for per-attempt messages.
        """
        self._control = control
        self._pump = pump
        self._sleep = sleep
        self._log = log or get_logger()

    def run(
        self,
        operation: Callable[[], CallResult[T]],
        policy: RetryPolicy,
        accept: Callable[[T], bool] | None = None,
        label: str = "remote call",
        category: LogCategory = LogCategory.SYSTEM,
    ) -> RetryOutcome[T]:
        """Invoke ``operation`` until it succeeds or the wait is cancelled.

        An attempt succeeds when the call returns Ok and ``accept`` (if
        given) approves the value. An abort request is one-shot: it is
        cleared here whether or not it ended the wait.

        Args:
            operation: Zero-argument capability call.
            policy: Retry configuration.
            accept: Predicate on the returned value.
            label: Human readable name used in log messages.
            category: Log category for the messages.

        Returns:
            The outcome with the number of attempts made.
        """
        attempts = 0
        last_value: T | None = None

        while True:
            attempts += 1
            result = operation()

            if isinstance(result, Failed):
                reason = f"{result.kind.value}{': ' + result.detail if result.detail else ''}"
            else:
                last_value = result.value
                if accept is None or accept(result.value):
                    if policy.abortable and self._control.consume_abort():
                        self._log.info(
                            category,
                            f"{label}: abort request arrived after the call succeeded",
                        )
                    self._log.info(category, f"{label} succeeded", attempts=attempts)
                    return RetryOutcome(RetryStatus.COMPLETED, attempts, last_value)
                reason = f"not accepted ({result.value!r})"

            if policy.max_attempts is not None and attempts >= policy.max_attempts:
                self._log.warning(
                    category,
                    f"{label} gave up after {attempts} attempts ({reason})",
                )
                return RetryOutcome(RetryStatus.EXHAUSTED, attempts, last_value)

            self._log.info(
                category,
                f"{label} did not succeed ({reason}). Trying again in {policy.delay:g}s...",
                attempts=attempts,
            )
            self._sleep(policy.delay)
            if self._pump is not None:
                self._pump()

            if policy.abortable and self._control.consume_abort():
                self._log.info(
                    category,
                    f"{label} received loop abortion request and stops trying. "
                    "The call might not have completed.",
                    attempts=attempts,
                )
                return RetryOutcome(RetryStatus.ABORTED, attempts, last_value)

            if policy.stop_on_request and self._control.stop_requested:
                self._log.info(category, f"{label} cancelled by stop request", attempts=attempts)
                return RetryOutcome(RetryStatus.STOPPED, attempts, last_value)
