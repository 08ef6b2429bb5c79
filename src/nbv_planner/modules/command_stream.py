"""Feeds command tokens from a text stream into a command channel.

The reader runs in a background daemon thread so the planning loop can
block on remote calls while commands keep arriving (e.g. typed on
stdin). One or more whitespace-separated tokens per line are accepted.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, TextIO

from nbv_planner.core.control import CommandChannel

logger = logging.getLogger(__name__)


class CommandStreamReader:
    """Background reader pushing tokens from a stream onto a channel."""

    def __init__(self, stream: TextIO, channel: CommandChannel) -> None:
        self._stream = stream
        self._channel = channel
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._tokens_read = 0

    @property
    def tokens_read(self) -> int:
        return self._tokens_read

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the reader thread (no-op if already running)."""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._read_loop,
            name="command-stream-reader",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float | None = 1.0) -> None:
        """Ask the reader to stop after the current line."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def _read_loop(self) -> None:
        try:
            for line in self._stream:
                if self._stop_event.is_set():
                    break
                for token in line.split():
                    self._channel.send(token)
                    self._tokens_read += 1
        except ValueError as e:
            # Stream closed underneath the reader
            logger.debug("Command stream closed: %s", e)
        logger.debug("Command stream reader finished after %d tokens", self._tokens_read)


def send_all(channel: CommandChannel, tokens: Iterable[str]) -> int:
    """Queue every token of ``tokens``; returns how many were sent."""
    count = 0
    for token in tokens:
        channel.send(token)
        count += 1
    return count
