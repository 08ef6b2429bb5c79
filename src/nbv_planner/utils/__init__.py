"""Utility functions and configuration."""

from nbv_planner.utils.config import DEFAULT_COST_WEIGHT, DEFAULT_METRIC_NAMES
from nbv_planner.utils.logging import (
    create_session_logger,
    get_logger,
    LogCategory,
    LogEntry,
    LogLevel,
    SessionLogger,
    set_logger,
    StructuredLogger,
)

__all__ = [
    "DEFAULT_COST_WEIGHT",
    "DEFAULT_METRIC_NAMES",
    "create_session_logger",
    "get_logger",
    "LogCategory",
    "LogEntry",
    "LogLevel",
    "SessionLogger",
    "set_logger",
    "StructuredLogger",
]
