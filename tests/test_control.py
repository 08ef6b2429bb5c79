"""Tests for command handling and the command stream reader."""

from __future__ import annotations

import io
import threading

import pytest

from nbv_planner.core.control import (
    CommandChannel,
    CommandHandler,
    ControlState,
    PlannerCommand,
)
from nbv_planner.modules.command_stream import CommandStreamReader, send_all


@pytest.fixture
def control():
    return ControlState()


@pytest.fixture
def handler(control, quiet_log):
    return CommandHandler(control, log=quiet_log)


class TestPlannerCommand:

    def test_parse_known(self):
        assert PlannerCommand.parse("START") == PlannerCommand.START
        assert PlannerCommand.parse("  PRINT_DATA\n") == PlannerCommand.PRINT_DATA

    def test_parse_unknown(self):
        assert PlannerCommand.parse("start") is None
        assert PlannerCommand.parse("") is None


class TestCommandHandler:
    """Tests for the command table."""

    @pytest.mark.parametrize(
        "token, started, paused, stop",
        [
            ("START", True, False, False),
            ("PAUSE", False, True, False),
            ("STOP_AND_PRINT", False, False, True),
        ],
    )
    def test_run_state_commands(self, control, handler, token, started, paused, stop):
        control.set_run_state(started=True, paused=True, stop_requested=True)

        assert handler.handle(token) == PlannerCommand(token)

        snap = control.snapshot()
        assert (snap.started, snap.paused, snap.stop_requested) == (started, paused, stop)

    def test_reinit_and_abort_flags(self, control, handler):
        handler.handle("REINIT")
        handler.handle("ABORT_LOOP")

        assert control.reinit_requested
        assert control.abort_requested
        assert control.consume_reinit()
        assert not control.consume_reinit()
        assert control.consume_abort()
        assert not control.abort_requested

    def test_flags_untouched_by_run_state(self, control, handler):
        handler.handle("REINIT")
        handler.handle("START")
        handler.handle("PAUSE")
        assert control.reinit_requested

    def test_unknown_token_ignored(self, control, handler):
        before = control.snapshot()

        assert handler.handle("JUMP") is None

        assert control.snapshot() == before
        assert handler.ignored_count == 1
        assert handler.handled_count == 0

    def test_print_data_callback(self, control, quiet_log):
        printed = []
        handler = CommandHandler(control, on_print=lambda: printed.append(True), log=quiet_log)
        before = control.snapshot()

        handler.handle(PlannerCommand.PRINT_DATA)

        assert printed == [True]
        assert control.snapshot() == before

    def test_print_data_without_callback(self, handler):
        assert handler.handle("PRINT_DATA") == PlannerCommand.PRINT_DATA

    def test_process_pending_in_order(self, control, quiet_log):
        channel = CommandChannel()
        handler = CommandHandler(control, channel, log=quiet_log)
        send_all(channel, ["START", "PAUSE", "bogus", "START"])

        assert handler.process_pending() == 4
        assert control.started
        assert not control.paused
        assert channel.pending == 0
        assert handler.ignored_count == 1


class TestCommandChannel:

    def test_drain_order(self):
        channel = CommandChannel()
        channel.send("A")
        channel.send(PlannerCommand.REINIT)
        channel.send("B")
        assert channel.drain() == ["A", "REINIT", "B"]
        assert channel.drain() == []

    def test_concurrent_senders(self):
        channel = CommandChannel()

        def sender():
            for _ in range(200):
                channel.send("PRINT_DATA")

        threads = [threading.Thread(target=sender) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(channel.drain()) == 800


class TestCommandStreamReader:

    def test_reads_tokens(self):
        channel = CommandChannel()
        stream = io.StringIO("START\nREINIT PRINT_DATA\n\nSTOP_AND_PRINT\n")
        reader = CommandStreamReader(stream, channel)

        reader.start()
        reader.join(timeout=2.0)

        assert not reader.running
        assert reader.tokens_read == 4
        assert channel.drain() == ["START", "REINIT", "PRINT_DATA", "STOP_AND_PRINT"]

    def test_stop_is_idempotent(self):
        reader = CommandStreamReader(io.StringIO(""), CommandChannel())
        reader.start()
        reader.stop(timeout=1.0)
        reader.stop(timeout=1.0)
        assert not reader.running
