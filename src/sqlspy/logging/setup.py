# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""
Two-phase setup logging.

Settings are loaded before the channel sink exists, so the messages they
produce are queued in order and flushed through the sink once it is attached.
After that, messages go straight to the most recently attached sink.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable
from typing import Final

DEFAULT_CAPACITY: Final = 1000


class SetupLog:
    """Bounded, ordered buffer of setup messages with late-bound sinks.

    Several sinks may be attached at once; the newest receives messages.
    Detaching a sink hands delivery back to the one attached before it.
    When no sink is attached and the buffer is full, the oldest messages are
    dropped and the count is reported on the next flush.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self._lock = threading.Lock()
        self._pending: deque[str] = deque(maxlen=capacity)
        self._dropped = 0
        self._sinks: list[Callable[[str], None]] = []

    def add(self, message: str) -> None:
        """Queue a message, or emit it directly when a sink is attached.

        Args:
            message: Setup message
        """
        with self._lock:
            if not self._sinks:
                if len(self._pending) == self._pending.maxlen:
                    self._dropped += 1
                self._pending.append(message)
                return
            sink = self._sinks[-1]
        sink(message)

    def attach(self, sink: Callable[[str], None]) -> int:
        """Attach a sink and flush queued messages through it, oldest first.

        Args:
            sink: Callable receiving one message per call

        Returns:
            Number of messages flushed
        """
        with self._lock:
            self._sinks.append(sink)
            pending = list(self._pending)
            self._pending.clear()
            dropped, self._dropped = self._dropped, 0
        if dropped:
            sink(f"{dropped} earlier setup messages were dropped")
        for message in pending:
            sink(message)
        return len(pending)

    def detach(self, sink: Callable[[str], None] | None = None) -> None:
        """Stop delivering to a sink.

        Args:
            sink: The sink to remove; every sink when None. A sink that is not
                attached is ignored.
        """
        with self._lock:
            if sink is None:
                self._sinks.clear()
            elif sink in self._sinks:
                self._sinks.remove(sink)

    def clear(self) -> None:
        """Drop queued messages without emitting them."""
        with self._lock:
            self._pending.clear()
            self._dropped = 0

    @property
    def attached(self) -> bool:
        with self._lock:
            return bool(self._sinks)

    @property
    def pending(self) -> tuple[str, ...]:
        """Messages still waiting for a sink."""
        with self._lock:
            return tuple(self._pending)


# Process-wide queue used while settings load
setup_log = SetupLog()
