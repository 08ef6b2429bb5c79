"""Tests for structured logging."""

from __future__ import annotations

import json

import pytest

from nbv_planner.utils.logging import (
    LogCategory,
    LogLevel,
    StructuredLogger,
    create_session_logger,
    get_logger,
    set_logger,
)


@pytest.fixture
def restore_global_logger():
    previous = get_logger()
    yield
    set_logger(previous)


class TestStructuredLogger:
    """Tests for StructuredLogger."""

    def test_level_filtering(self):
        log = StructuredLogger(console_output=False, level=LogLevel.WARNING)
        log.info(LogCategory.COST, "dropped")
        log.warning(LogCategory.COST, "kept")

        assert [e.message for e in log.get_recent_entries()] == ["kept"]

    def test_statistics(self, quiet_log):
        quiet_log.info(LogCategory.SELECTION, "picked", iteration=1, view_id="v0")
        quiet_log.warning(LogCategory.COST, "unreachable")
        quiet_log.error(LogCategory.SYSTEM, "boom")

        stats = quiet_log.get_statistics()
        assert stats["total"] == 3
        assert stats["errors"] == 1
        assert stats["warnings"] == 1
        assert stats["by_category"][LogCategory.SELECTION] == 1

    def test_context_in_console_format(self, quiet_log):
        entry = quiet_log.info(
            LogCategory.SELECTION, "picked", iteration=2, view_id="v1", return_value=1.5
        )
        line = entry.format_console()
        assert "[SELECTION]" in line
        assert "iter=2" in line
        assert "view=v1" in line
        assert "return=1.500" in line

    def test_none_context_dropped(self, quiet_log):
        entry = quiet_log.info(LogCategory.COST, "no view", iteration=1, view_id=None)
        assert entry.context == {"iteration": 1}
        assert entry.view_id is None

    def test_history_bounded(self):
        log = StructuredLogger(console_output=False, max_history=3)
        for i in range(5):
            log.info(LogCategory.COMMAND, f"msg {i}")

        assert [e.message for e in log.get_recent_entries()] == ["msg 2", "msg 3", "msg 4"]
        assert log.get_statistics()["total"] == 5


class TestSessionLogger:

    def test_writes_session_files(self, tmp_path, restore_global_logger):
        log = create_session_logger(session_id="run1", runs_dir=tmp_path, console_output=False)
        assert get_logger() is log

        log.info(LogCategory.MOTION, "moved", view_id="v3")
        log.close()

        logs_dir = tmp_path / "run1" / "logs"
        assert log.logs_dir == logs_dir
        assert "moved" in (logs_dir / "main.log").read_text()

        records = [json.loads(line) for line in (logs_dir / "main.jsonl").read_text().splitlines()]
        moved = [r for r in records if r["message"] == "moved"][0]
        assert moved["category"] == "MOTION"
        assert moved["context"]["view_id"] == "v3"
