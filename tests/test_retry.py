"""Tests for the retry driver."""

from __future__ import annotations

import pytest

from nbv_planner.core.control import CommandChannel, CommandHandler, ControlState, PlannerCommand
from nbv_planner.core.retry import RetryDriver, RetryPolicy, RetryStatus
from nbv_planner.schemas import Failed, FailureKind, Ok

from conftest import FakeSleep


class FlakyCall:
    """Fails ``failures`` times, then returns ``value``."""

    def __init__(self, failures: int, value=True, on_call=None):
        self.failures = failures
        self.value = value
        self.on_call = on_call
        self.attempts = 0

    def __call__(self):
        self.attempts += 1
        if self.on_call is not None:
            self.on_call(self.attempts)
        if self.attempts <= self.failures:
            return Failed(FailureKind.UNAVAILABLE)
        return Ok(self.value)


@pytest.fixture
def control():
    return ControlState()


class TestRetryDriver:
    """Tests for RetryDriver.run."""

    @pytest.mark.parametrize("failures", [0, 1, 4])
    def test_attempts_until_success(self, control, quiet_log, failures):
        """N failures then success take N+1 attempts and N sleeps."""
        sleep = FakeSleep()
        driver = RetryDriver(control, sleep=sleep, log=quiet_log)
        call = FlakyCall(failures, value="done")

        outcome = driver.run(call, RetryPolicy(delay=0.25))

        assert outcome.status == RetryStatus.COMPLETED
        assert outcome.completed
        assert outcome.attempts == failures + 1
        assert outcome.value == "done"
        assert sleep.calls == [0.25] * failures

    def test_abort_during_attempt(self, control, quiet_log):
        """An abort arriving during attempt 2 stops retrying after it."""
        channel = CommandChannel()
        handler = CommandHandler(control, channel, log=quiet_log)
        driver = RetryDriver(
            control, pump=handler.process_pending, sleep=FakeSleep(), log=quiet_log
        )

        def on_call(n):
            if n == 2:
                channel.send(PlannerCommand.ABORT_LOOP)

        call = FlakyCall(failures=10, on_call=on_call)
        outcome = driver.run(call, RetryPolicy())

        assert outcome.status == RetryStatus.ABORTED
        assert outcome.attempts == 2
        assert call.attempts == 2
        assert not control.abort_requested

    def test_abort_cleared_on_success(self, control, quiet_log):
        """A pending abort is consumed even when the call succeeds."""
        control.request_abort()
        driver = RetryDriver(control, sleep=FakeSleep(), log=quiet_log)

        outcome = driver.run(FlakyCall(0), RetryPolicy())

        assert outcome.completed
        assert not control.abort_requested

    def test_non_abortable_ignores_abort(self, control, quiet_log):
        control.request_abort()
        driver = RetryDriver(control, sleep=FakeSleep(), log=quiet_log)

        outcome = driver.run(FlakyCall(2), RetryPolicy(abortable=False))

        assert outcome.completed
        assert outcome.attempts == 3
        assert control.abort_requested

    def test_stop_on_request(self, control, quiet_log):
        def stop_after_first_sleep(n):
            control.set_run_state(started=False, paused=False, stop_requested=True)

        driver = RetryDriver(control, sleep=FakeSleep(stop_after_first_sleep), log=quiet_log)

        outcome = driver.run(FlakyCall(10), RetryPolicy(stop_on_request=True))

        assert outcome.status == RetryStatus.STOPPED
        assert outcome.attempts == 1

    def test_stop_ignored_without_policy(self, control, quiet_log):
        control.set_run_state(started=False, paused=False, stop_requested=True)
        driver = RetryDriver(control, sleep=FakeSleep(), log=quiet_log)

        outcome = driver.run(FlakyCall(3), RetryPolicy())

        assert outcome.completed
        assert outcome.attempts == 4

    def test_max_attempts(self, control, quiet_log):
        sleep = FakeSleep()
        driver = RetryDriver(control, sleep=sleep, log=quiet_log)

        outcome = driver.run(FlakyCall(10), RetryPolicy(max_attempts=3))

        assert outcome.status == RetryStatus.EXHAUSTED
        assert outcome.attempts == 3
        assert len(sleep.calls) == 2

    def test_failure_reason_logged(self, control, quiet_log):
        driver = RetryDriver(control, sleep=FakeSleep(), log=quiet_log)
        answers = iter([Failed(FailureKind.TIMEOUT, "no reply"), Ok(True)])

        outcome = driver.run(lambda: next(answers), RetryPolicy(), label="Move")

        assert outcome.completed
        messages = [e.message for e in quiet_log.get_recent_entries()]
        assert any("Move did not succeed (timeout: no reply)" in m for m in messages)

    def test_accept_predicate(self, control, quiet_log):
        """Ok values the predicate rejects count as failed attempts."""
        answers = iter([Ok(False), Ok(False), Ok(True)])
        driver = RetryDriver(control, sleep=FakeSleep(), log=quiet_log)

        outcome = driver.run(lambda: next(answers), RetryPolicy(), accept=lambda v: v is True)

        assert outcome.completed
        assert outcome.attempts == 3
        assert outcome.value is True

    def test_pump_called_between_attempts(self, control, quiet_log):
        pumped = []
        driver = RetryDriver(
            control, pump=lambda: pumped.append(1), sleep=FakeSleep(), log=quiet_log
        )

        driver.run(FlakyCall(2), RetryPolicy())

        assert len(pumped) == 2
