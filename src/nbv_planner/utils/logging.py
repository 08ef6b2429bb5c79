"""Structured logging for the view planner.

Every planning decision is logged with enough context to reconstruct a
run afterwards: which views were dropped, which one won and by how much,
and how each remote call behaved.

This module provides:
- LogCategory: planner component an entry belongs to
- StructuredLogger: in-memory history plus console/file output
- SessionLogger: StructuredLogger writing main.log and main.jsonl
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, TextIO


class LogCategory(str, Enum):
    """Planner components, used as the prefix of every entry."""
    VIEW_SPACE = "VIEW_SPACE"      # View space and current view acquisition
    COST = "COST"                  # Movement cost evaluation
    INFORMATION = "INFORMATION"    # Information gain evaluation
    SELECTION = "SELECTION"        # Return computation and NBV choice
    MOTION = "MOTION"              # Move execution
    DATA = "DATA"                  # Baseline data retrieval
    COMMAND = "COMMAND"            # Command channel handling
    RECORDER = "RECORDER"          # Planning data recording
    TERMINATION = "TERMINATION"    # Termination checks
    SYSTEM = "SYSTEM"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


_LEVEL_MAP = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}

# Context keys shown inline on the console, with their format
_CONSOLE_CONTEXT = (
    ("iteration", "iter={}"),
    ("view_id", "view={}"),
    ("cost", "cost={:.3f}"),
    ("return_value", "return={:.3f}"),
)


class LogEntry:
    """One planner log record: category, level, message and context.

    Context is free-form keyword data; ``iteration``, ``view_id``,
    ``cost`` and ``return_value`` are also rendered on the console line.
    """

    def __init__(
        self,
        category: LogCategory,
        level: LogLevel,
        message: str,
        **context: Any,
    ):
        self.timestamp = datetime.now()
        self.category = category
        self.level = level
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    @property
    def iteration(self) -> int | None:
        return self.context.get("iteration")

    @property
    def view_id(self) -> str | None:
        return self.context.get("view_id")

    def to_json(self) -> str:
        record = {
            "timestamp": self.timestamp.isoformat(),
            "category": self.category.value,
            "level": self.level.value,
            "message": self.message,
        }
        if self.context:
            record["context"] = self.context
        return json.dumps(record, default=str)

    def format_console(self) -> str:
        """``HH:MM:SS.mmm [CATEGORY] message (iter=.., view=..)``"""
        ts = self.timestamp.strftime("%H:%M:%S.%f")[:-3]
        shown = [
            fmt.format(self.context[key])
            for key, fmt in _CONSOLE_CONTEXT
            if key in self.context
        ]
        suffix = f" ({', '.join(shown)})" if shown else ""
        return f"{ts} {'[' + self.category.value + ']':14} {self.message}{suffix}"


class StructuredLogger:
    """Category-prefixed logger keeping a bounded history of entries.

    Tests read the history back through ``filter_by_category`` and
    ``get_recent_entries``; the CLI reports ``get_statistics`` at the end
    of a run.
    """

    def __init__(
        self,
        level: LogLevel = LogLevel.INFO,
        console_output: bool = True,
        file_output: TextIO | None = None,
        max_history: int = 10000,
    ):
        """Initialize the logger.

        Args:
            level: Minimum level that is recorded.
            console_output: Print entries to stdout.
            file_output: Optional handle receiving console-formatted lines.
            max_history: Number of entries kept in memory.
        """
        self._level = level
        self._console_output = console_output
        self._file_output = file_output
        self._max_history = max_history
        self._entries: list[LogEntry] = []
        self._counts: dict[LogCategory, int] = {cat: 0 for cat in LogCategory}
        self._warning_count = 0
        self._error_count = 0

    def log(
        self,
        category: LogCategory,
        level: LogLevel,
        message: str,
        **context: Any,
    ) -> LogEntry:
        """Record an entry if ``level`` passes the threshold.

        Returns:
            The entry, whether or not it was recorded.
        """
        entry = LogEntry(category, level, message, **context)
        if _LEVEL_MAP[level] < _LEVEL_MAP[self._level]:
            return entry

        self._counts[category] += 1
        if level == LogLevel.ERROR:
            self._error_count += 1
        elif level == LogLevel.WARNING:
            self._warning_count += 1

        self._entries.append(entry)
        if len(self._entries) > self._max_history:
            del self._entries[: len(self._entries) - self._max_history]

        if self._console_output:
            print(entry.format_console())
        if self._file_output:
            self._write_file(entry)
        return entry

    def _write_file(self, entry: LogEntry) -> None:
        self._file_output.write(entry.format_console() + "\n")
        self._file_output.flush()

    def debug(self, category: LogCategory, message: str, **context: Any) -> LogEntry:
        return self.log(category, LogLevel.DEBUG, message, **context)

    def info(self, category: LogCategory, message: str, **context: Any) -> LogEntry:
        return self.log(category, LogLevel.INFO, message, **context)

    def warning(self, category: LogCategory, message: str, **context: Any) -> LogEntry:
        return self.log(category, LogLevel.WARNING, message, **context)

    def error(self, category: LogCategory, message: str, **context: Any) -> LogEntry:
        return self.log(category, LogLevel.ERROR, message, **context)

    def get_statistics(self) -> dict[str, Any]:
        """Entry counts: total, per category, warnings and errors."""
        return {
            "total": sum(self._counts.values()),
            "by_category": dict(self._counts),
            "warnings": self._warning_count,
            "errors": self._error_count,
        }

    def get_recent_entries(self, count: int = 100) -> list[LogEntry]:
        return self._entries[-count:]

    def filter_by_category(self, category: LogCategory) -> list[LogEntry]:
        return [e for e in self._entries if e.category == category]


class SessionLogger(StructuredLogger):
    """Structured logger that also writes to a session directory.

    Creates ``<runs_dir>/<session_id>/logs/main.log`` (console format)
    and ``main.jsonl`` (one JSON entry per line).
    """

    def __init__(
        self,
        session_id: str,
        runs_dir: str | Path = "runs",
        console_output: bool = True,
        level: LogLevel = LogLevel.INFO,
    ):
        self._session_id = session_id
        self._logs_dir = Path(runs_dir) / session_id / "logs"
        self._logs_dir.mkdir(parents=True, exist_ok=True)

        self._main_log_file = open(self._logs_dir / "main.log", "a", encoding="utf-8")
        self._json_log_file = open(self._logs_dir / "main.jsonl", "a", encoding="utf-8")

        super().__init__(
            level=level,
            console_output=console_output,
            file_output=self._main_log_file,
        )
        self.info(LogCategory.SYSTEM, f"Session started: {session_id}")

    def _write_file(self, entry: LogEntry) -> None:
        super()._write_file(entry)
        self._json_log_file.write(entry.to_json() + "\n")
        self._json_log_file.flush()

    def close(self) -> None:
        """Log the session end and close both files."""
        self.info(LogCategory.SYSTEM, f"Session ended: {self._session_id}")
        self._file_output = None
        self._main_log_file.close()
        self._json_log_file.close()

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def logs_dir(self) -> Path:
        return self._logs_dir


_global_logger: StructuredLogger | None = None


def get_logger() -> StructuredLogger:
    """Process-wide default logger, created on first use."""
    global _global_logger
    if _global_logger is None:
        _global_logger = StructuredLogger()
    return _global_logger


def set_logger(logger: StructuredLogger) -> None:
    global _global_logger
    _global_logger = logger


def create_session_logger(
    session_id: str | None = None,
    runs_dir: str | Path = "runs",
    console_output: bool = True,
    level: LogLevel = LogLevel.INFO,
) -> SessionLogger:
    """Create a session logger and install it as the default.

    Args:
        session_id: Directory name of the session (clock-based if omitted).
        runs_dir: Parent directory of all sessions.
        console_output: Print entries to stdout as well.
        level: Minimum level that is recorded.
    """
    if session_id is None:
        session_id = datetime.now().strftime("%Y%m%d_%H%M%S")
    logger = SessionLogger(
        session_id=session_id,
        runs_dir=runs_dir,
        console_output=console_output,
        level=level,
    )
    set_logger(logger)
    return logger


__all__ = [
    "LogCategory",
    "LogLevel",
    "LogEntry",
    "StructuredLogger",
    "SessionLogger",
    "get_logger",
    "set_logger",
    "create_session_logger",
]
