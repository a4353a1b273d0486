# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""
Instrumented DB-API cursor.

``execute`` with parameters is reported as a PreparedStatement call and its
SQL is rebuilt with the bound values; without parameters it is a Statement
call. Fetch calls are reported as ResultSet calls.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from sqlspy.context import PREPARED_STATEMENT, RESULT_SET, STATEMENT, CallContext
from sqlspy.dbapi.base import SpyBase, describe
from sqlspy.params import BindParameterTracker, substitute
from sqlspy.timing import Elapsed

if TYPE_CHECKING:
    from sqlspy.dbapi.connection import ConnectionSpy


def _rows(rows: Any) -> str:
    return f"{len(rows)} rows" if isinstance(rows, list) else describe(rows)


class CursorSpy(SpyBase):
    """Wraps a real DB-API cursor created through a ConnectionSpy."""

    _connection: ConnectionSpy
    _tracker: BindParameterTracker

    def __init__(self, real: Any, connection: ConnectionSpy) -> None:
        super().__init__(real, connection._spy)
        self._connection = connection
        self._tracker = self._spy.tracker(connection.dialect)

    @property
    def connection_id(self) -> int:
        return self._connection.connection_id

    @property
    def connection(self) -> ConnectionSpy:
        return self._connection

    @property
    def tracker(self) -> BindParameterTracker:
        return self._tracker

    def _literal_sql(self, operation: str, parameters: Any) -> str:
        """SQL as it would be logged for one parameter set."""
        if parameters is None or not self._spy.settings.show_params:
            return operation
        if isinstance(parameters, Mapping):
            # named parameters are not substituted
            self._tracker.clear()
            return operation
        return substitute(operation, self._tracker.bind_all(parameters))

    def _run_sql(
        self,
        ctx: CallContext,
        sql: str,
        call: Any,
        *args: Any,
        filter_sql: str | None = None,
    ) -> Any:
        router = self._spy.router
        router.sql_occurred(ctx, sql, filter_sql=filter_sql)

        def failed(exc: BaseException, elapsed: Elapsed) -> None:
            router.exception_occurred(ctx, exc, sql=sql, elapsed=elapsed)

        result, elapsed = self._spy.recorder.around(call, *args, on_failure=failed)
        router.sql_timing_occurred(ctx, elapsed, sql, filter_sql=filter_sql)
        if result is self._real:
            result = self
        router.method_returned(ctx, describe(result))
        return result

    def execute(self, operation: str, parameters: Any = None) -> Any:
        """Run one statement, logging its literal SQL and timing."""
        if parameters is None:
            ctx = self._context(STATEMENT, "execute", operation)
            return self._run_sql(ctx, operation, self._real.execute, operation)
        ctx = self._context(PREPARED_STATEMENT, "execute")
        sql = self._literal_sql(operation, parameters)
        return self._run_sql(ctx, sql, self._real.execute, operation, parameters)

    def executemany(self, operation: str, seq_of_parameters: Iterable[Any]) -> Any:
        """Run a batch, logged as a numbered list of its literal statements."""
        batch = list(seq_of_parameters)
        ctx = self._context(PREPARED_STATEMENT, "executemany")
        report = self._spy.router.render_batch(
            [self._literal_sql(operation, params) for params in batch]
        )
        return self._run_sql(
            ctx,
            report,
            self._real.executemany,
            operation,
            batch,
            filter_sql=operation,
        )

    def executescript(self, script: str) -> Any:
        """Run a multi-statement script (sqlite3), logged as one Statement."""
        ctx = self._context(STATEMENT, "executescript")
        return self._run_sql(ctx, script, self._real.executescript, script)

    def fetchone(self) -> Any:
        return self._invoke(self._context(RESULT_SET, "fetchone"), self._real.fetchone)

    def fetchmany(self, *args: Any, **kwargs: Any) -> Any:
        ctx = self._context(RESULT_SET, "fetchmany", *args)
        return self._invoke(ctx, self._real.fetchmany, *args, render=_rows, **kwargs)

    def fetchall(self) -> Any:
        ctx = self._context(RESULT_SET, "fetchall")
        return self._invoke(ctx, self._real.fetchall, render=_rows)

    def close(self) -> None:
        self._invoke(self._context(STATEMENT, "close"), self._real.close)

    def __iter__(self) -> CursorSpy:
        return self

    def __next__(self) -> Any:
        row = self.fetchone()
        if row is None:
            raise StopIteration
        return row

    def __repr__(self) -> str:
        return f"<CursorSpy on connection {self.connection_id} of {self._real!r}>"
