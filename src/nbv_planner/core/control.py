"""Command channel and the control flags it drives.

Commands arrive as string tokens from any thread. They are queued on a
``CommandChannel`` and only applied to the ``ControlState`` when the
planning loop drains the channel at one of its checkpoints.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from nbv_planner.utils.logging import LogCategory, StructuredLogger, get_logger

logger = logging.getLogger(__name__)


class PlannerCommand(str, Enum):
    """Tokens accepted on the command channel."""

    START = "START"
    PAUSE = "PAUSE"
    STOP_AND_PRINT = "STOP_AND_PRINT"
    REINIT = "REINIT"
    ABORT_LOOP = "ABORT_LOOP"
    PRINT_DATA = "PRINT_DATA"

    @classmethod
    def parse(cls, token: str) -> PlannerCommand | None:
        """Map a raw token to a command; unknown tokens give None."""
        try:
            return cls(token.strip())
        except ValueError:
            return None


@dataclass(frozen=True)
class ControlSnapshot:
    """Consistent copy of all control flags."""

    started: bool
    paused: bool
    stop_requested: bool
    reinit_requested: bool
    abort_requested: bool


class ControlState:
    """Shared control flags with atomic get/set.

    Written by the command handler, read by the planning loop at its
    checkpoints. Every access goes through a single lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._started = False
        self._paused = False
        self._stop_requested = False
        self._reinit_requested = False
        self._abort_requested = False

    @property
    def started(self) -> bool:
        with self._lock:
            return self._started

    @property
    def paused(self) -> bool:
        with self._lock:
            return self._paused

    @property
    def stop_requested(self) -> bool:
        with self._lock:
            return self._stop_requested

    @property
    def reinit_requested(self) -> bool:
        with self._lock:
            return self._reinit_requested

    @property
    def abort_requested(self) -> bool:
        with self._lock:
            return self._abort_requested

    def set_run_state(self, started: bool, paused: bool, stop_requested: bool) -> None:
        """Set the three run flags together."""
        with self._lock:
            self._started = started
            self._paused = paused
            self._stop_requested = stop_requested

    def request_reinit(self) -> None:
        with self._lock:
            self._reinit_requested = True

    def request_abort(self) -> None:
        with self._lock:
            self._abort_requested = True

    def consume_reinit(self) -> bool:
        """Clear the reinit flag, returning whether it was set."""
        with self._lock:
            was_set = self._reinit_requested
            self._reinit_requested = False
            return was_set

    def consume_abort(self) -> bool:
        """Clear the abort flag, returning whether it was set."""
        with self._lock:
            was_set = self._abort_requested
            self._abort_requested = False
            return was_set

    def snapshot(self) -> ControlSnapshot:
        with self._lock:
            return ControlSnapshot(
                started=self._started,
                paused=self._paused,
                stop_requested=self._stop_requested,
                reinit_requested=self._reinit_requested,
                abort_requested=self._abort_requested,
            )


class CommandChannel:
    """Thread-safe queue of raw command tokens.

    ``send`` may be called from any thread; ``drain`` is called by the
    planning loop only.
    """

    def __init__(self) -> None:
        self._queue: queue.Queue[str] = queue.Queue()

    def send(self, token: str | PlannerCommand) -> None:
        if isinstance(token, PlannerCommand):
            token = token.value
        self._queue.put(token)

    def drain(self) -> list[str]:
        """Remove and return all pending tokens in arrival order."""
        tokens = []
        while True:
            try:
                tokens.append(self._queue.get_nowait())
            except queue.Empty:
                return tokens

    @property
    def pending(self) -> int:
        return self._queue.qsize()


class CommandHandler:
    """Applies command tokens to the control state.

    | Token          | started | paused | stop  | side effect        |
    |----------------|---------|--------|-------|--------------------|
    | START          | True    | False  | False |                    |
    | PAUSE          | False   | True   | False |                    |
    | STOP_AND_PRINT | False   | False  | True  |                    |
    | REINIT         |         |        |       | set reinit flag    |
    | ABORT_LOOP     |         |        |       | set abort flag     |
    | PRINT_DATA     |         |        |       | save planning data |
    """

    def __init__(
        self,
        control: ControlState,
        channel: CommandChannel | None = None,
        on_print: Callable[[], None] | None = None,
        log: StructuredLogger | None = None,
    ) -> None:
        self._control = control
        self._channel = channel or CommandChannel()
        self._on_print = on_print
        self._log = log or get_logger()
        self._handled = 0
        self._ignored = 0

    @property
    def channel(self) -> CommandChannel:
        return self._channel

    @property
    def handled_count(self) -> int:
        return self._handled

    @property
    def ignored_count(self) -> int:
        return self._ignored

    def set_print_callback(self, on_print: Callable[[], None] | None) -> None:
        self._on_print = on_print

    def handle(self, token: str | PlannerCommand) -> PlannerCommand | None:
        """Apply a single token immediately.

        Returns:
            The recognized command, or None if the token was ignored.
        """
        if isinstance(token, PlannerCommand):
            command = token
        else:
            command = PlannerCommand.parse(token)
        if command is None:
            self._ignored += 1
            self._log.warning(LogCategory.COMMAND, f"Ignoring unknown command token {token!r}")
            return None

        if command == PlannerCommand.START:
            self._control.set_run_state(started=True, paused=False, stop_requested=False)
        elif command == PlannerCommand.PAUSE:
            self._control.set_run_state(started=False, paused=True, stop_requested=False)
        elif command == PlannerCommand.STOP_AND_PRINT:
            self._control.set_run_state(started=False, paused=False, stop_requested=True)
        elif command == PlannerCommand.REINIT:
            self._control.request_reinit()
        elif command == PlannerCommand.ABORT_LOOP:
            self._control.request_abort()
        elif command == PlannerCommand.PRINT_DATA:
            if self._on_print is not None:
                self._on_print()
            else:
                logger.debug("PRINT_DATA received without a print callback")

        self._handled += 1
        self._log.info(LogCategory.COMMAND, f"Command {command.value} applied")
        return command

    def process_pending(self) -> int:
        """Drain the channel and apply every pending token in order.

        Returns:
            Number of tokens drained.
        """
        tokens = self._channel.drain()
        for token in tokens:
            self.handle(token)
        return len(tokens)
