# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""
Instrumented DB-API connection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlspy.context import CONNECTION
from sqlspy.dbapi.base import SpyBase
from sqlspy.dbapi.cursor import CursorSpy
from sqlspy.dialects import Dialect, detect_dialect
from sqlspy.registry import ConnectionHandle

if TYPE_CHECKING:
    from sqlspy.runtime import Instrumentation


class ConnectionSpy(SpyBase):
    """
    Wraps a real DB-API connection.

    Creating the spy registers the connection and logs it as opened; closing
    it logs it as closed exactly once, even when the real close fails.
    Cursors it creates are wrapped in CursorSpy.
    """

    _handle: ConnectionHandle

    def __init__(
        self,
        real: Any,
        instrumentation: Instrumentation,
        dialect: Dialect | None = None,
    ) -> None:
        """
        Args:
            real: The driver's connection
            instrumentation: Router, registry and settings to report through
            dialect: Dialect override, detected from the driver if None
        """
        super().__init__(real, instrumentation)
        dialect = dialect or instrumentation.settings.dialect or detect_dialect(real)
        self._handle = instrumentation.registry.open(dialect)
        instrumentation.router.connection_opened(self._handle.id)

    @property
    def connection_id(self) -> int:
        return self._handle.id

    @property
    def handle(self) -> ConnectionHandle:
        return self._handle

    @property
    def dialect(self) -> Dialect:
        return self._handle.dialect

    @property
    def real_connection(self) -> Any:
        return self._real

    def cursor(self, *args: Any, **kwargs: Any) -> CursorSpy:
        ctx = self._context(CONNECTION, "cursor", *args)
        real_cursor = self._invoke(ctx, self._real.cursor, *args, **kwargs)
        return CursorSpy(real_cursor, self)

    def execute(self, operation: str, parameters: Any = None) -> CursorSpy:
        """Shortcut that runs a statement on a new cursor, as sqlite3 offers."""
        return self.cursor().execute(operation, parameters)

    def executemany(self, operation: str, seq_of_parameters: Any) -> CursorSpy:
        return self.cursor().executemany(operation, seq_of_parameters)

    def executescript(self, script: str) -> CursorSpy:
        return self.cursor().executescript(script)

    def commit(self) -> None:
        self._invoke(self._context(CONNECTION, "commit"), self._real.commit)

    def rollback(self) -> None:
        self._invoke(self._context(CONNECTION, "rollback"), self._real.rollback)

    def close(self) -> None:
        """Close the real connection and drop it from the registry."""
        ctx = self._context(CONNECTION, "close")
        router = self._spy.router
        try:
            self._real.close()
            router.method_returned(ctx, "")
        except Exception as exc:
            router.exception_occurred(ctx, exc)
            raise
        finally:
            if self._spy.registry.close(self._handle.id) is not None:
                router.connection_closed(self._handle.id)

    def __enter__(self) -> ConnectionSpy:
        return self

    def __exit__(self, exc_type: Any, exc_value: Any, tb: Any) -> Any:
        real_exit = getattr(self._real, "__exit__", None)
        if real_exit is None:
            self.close()
            return False
        return real_exit(exc_type, exc_value, tb)

    def __repr__(self) -> str:
        return f"<ConnectionSpy {self._handle.id} of {self._real!r}>"
