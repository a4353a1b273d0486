# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""
Registry of open instrumented connections.

The registry hands out connection ids that are never reused and keeps the
set of connections that are currently open. The id counter and the open map
change together under one lock, so a snapshot never sees one without the
other.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlspy.dialects import Dialect
from sqlspy.errors import RegistryError
from sqlspy.errors.component_errors import REGISTRY_SHUTDOWN


@dataclass(frozen=True)
class ConnectionHandle:
    """Identity of one logical connection for as long as it is open."""

    id: int
    opened_at: datetime
    dialect: Dialect = Dialect.DEFAULT


@dataclass(frozen=True)
class RegistrySnapshot:
    """Point-in-time, ascending list of open connection ids."""

    ids: tuple[int, ...]

    @property
    def count(self) -> int:
        return len(self.ids)

    def render(self) -> str:
        if not self.ids:
            return "open connections:  none"
        listed = " ".join(str(conn_id) for conn_id in self.ids)
        return f"open connections:  {listed} ({self.count})"

    def __str__(self) -> str:
        return self.render()


class ConnectionRegistry:
    """Thread-safe id allocator and open-connection set."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last_id = 0
        self._open: dict[int, ConnectionHandle] = {}
        self._shut_down = False

    def open(self, dialect: Dialect = Dialect.DEFAULT) -> ConnectionHandle:
        """Register a newly opened connection.

        Args:
            dialect: Dialect carried on the handle

        Returns:
            The handle with a fresh id

        Raises:
            RegistryError: If the registry has been shut down
        """
        with self._lock:
            if self._shut_down:
                raise RegistryError(
                    "Connection registry has been shut down",
                    code=REGISTRY_SHUTDOWN,
                )
            self._last_id += 1
            handle = ConnectionHandle(self._last_id, datetime.now(UTC), dialect)
            self._open[handle.id] = handle
            return handle

    def close(self, connection_id: int) -> ConnectionHandle | None:
        """Remove a connection from the open set.

        Returns:
            The removed handle, or None if the id was not open
        """
        with self._lock:
            return self._open.pop(connection_id, None)

    def get(self, connection_id: int) -> ConnectionHandle | None:
        with self._lock:
            return self._open.get(connection_id)

    def snapshot(self) -> RegistrySnapshot:
        with self._lock:
            return RegistrySnapshot(tuple(sorted(self._open)))

    def shutdown(self) -> RegistrySnapshot:
        """Stop handing out ids and forget every open connection.

        Returns:
            The connections that were still open
        """
        with self._lock:
            self._shut_down = True
            remaining = RegistrySnapshot(tuple(sorted(self._open)))
            self._open.clear()
            return remaining

    @property
    def is_shut_down(self) -> bool:
        with self._lock:
            return self._shut_down

    def __len__(self) -> int:
        with self._lock:
            return len(self._open)
