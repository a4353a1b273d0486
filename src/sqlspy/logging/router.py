# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""
Routing of observed calls to the channel loggers.

LogRouter is the only place that writes to the sink. It applies the
statement-type filter and the SQL readability rules, picks severities, and
adds call-site attribution when a channel accepts debug detail. Routing
never raises into the instrumented call: a failure is written to stderr and
dropped.
"""

from __future__ import annotations

import functools
import logging
import re
import sys
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Final, TypeVar

from sqlspy.callsite import CallSiteResolver, StackCallSiteResolver
from sqlspy.config.settings import SpySettings
from sqlspy.context import STATEMENT, CallContext, LogEvent
from sqlspy.logging.channels import Channel
from sqlspy.logging.level import LogLevel
from sqlspy.logging.logger import get_channel_logger
from sqlspy.registry import ConnectionRegistry
from sqlspy.timing import Elapsed

F = TypeVar("F", bound=Callable[..., Any])

STATEMENT_WARNING: Final = "{WARNING: Statement used to run SQL} "

_FIRST_KEYWORD = re.compile(r"\s*([A-Za-z]+)")


def _report_failure(where: str, exc: BaseException) -> None:
    sys.stderr.write(f"sqlspy: {where} failed: {exc!r}\n")


def _never_raises(method: F) -> F:
    @functools.wraps(method)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return method(*args, **kwargs)
        except Exception as exc:
            _report_failure(method.__name__, exc)
            return None

    return wrapper  # type: ignore[return-value]


class RenderedSql(str):
    """SQL text already in its logged form; readability rules skip it."""


def first_keyword(sql: str) -> str | None:
    """Leading SQL keyword, lowercased."""
    match = _FIRST_KEYWORD.match(sql)
    return match.group(1).lower() if match else None


def batch_report(statements: Sequence[str]) -> str:
    """Render a batch as a numbered list of statements.

    Numbers are right-justified to the width of the largest one::

        batching 10 statements:
         1:  insert ...
        ...
        10:  insert ...
    """
    width = len(str(len(statements)))
    lines = [f"batching {len(statements)} statements:"]
    lines.extend(
        f"{str(number).rjust(width)}:  {sql}"
        for number, sql in enumerate(statements, start=1)
    )
    return "\n".join(lines)


class LogRouter:
    """Dispatches instrumentation events to the named channels."""

    def __init__(
        self,
        settings: SpySettings,
        resolver: CallSiteResolver | None = None,
        registry: ConnectionRegistry | None = None,
        loggers: Mapping[Channel, logging.Logger] | None = None,
    ) -> None:
        """
        Args:
            settings: Rendering and filtering options
            resolver: Call-site resolver, built from settings if None
            registry: Registry dumped on the connection channel at debug
            loggers: Channel loggers, the standard ``sqlspy.*`` loggers if None
        """
        self.settings = settings
        self.resolver = resolver or StackCallSiteResolver(
            prefix=settings.debug_stack_prefix,
            full=settings.dump_full_debug_stack_trace,
        )
        self.registry = registry
        self._loggers = {
            channel: (loggers or {}).get(channel) or get_channel_logger(channel)
            for channel in Channel
        }
        self._allowed = settings.allowed_statement_types
        self._filtering = settings.sql_filtering_on
        self._thresholds = settings.thresholds

    # Sink access

    def logger(self, channel: Channel) -> logging.Logger:
        return self._loggers[channel]

    def accepts(self, channel: Channel, level: LogLevel) -> bool:
        return self._loggers[channel].isEnabledFor(level.to_stdlib_level())

    def accepts_debug(self, channel: Channel) -> bool:
        return self.accepts(channel, LogLevel.DEBUG)

    def is_enabled(self) -> bool:
        """True when any traffic channel would log at least errors."""
        return any(
            self.accepts(channel, LogLevel.ERROR) for channel in Channel.routed()
        )

    def dispatch(self, event: LogEvent) -> None:
        try:
            self._loggers[event.channel].log(
                event.severity.to_stdlib_level(),
                event.message,
                exc_info=event.error,
            )
        except Exception as exc:
            _report_failure(f"logging to {event.channel.value}", exc)

    def _emit(
        self,
        channel: Channel,
        severity: LogLevel,
        message: str,
        error: BaseException | None = None,
    ) -> None:
        if self.accepts(channel, severity):
            self.dispatch(LogEvent(channel, severity, message, error))

    def _call_site(self) -> str:
        return self.resolver.resolve() or ""

    def _attributed(self, connection_id: int, body: str) -> str:
        """Call site on its own line above the numbered body, when known."""
        site = self._call_site()
        numbered = f"{connection_id}. {body}"
        return f"{site}\n{numbered}" if site else numbered

    def _with_call_site(self, line: str) -> str:
        site = self._call_site()
        return f"{line} {site}" if site else line

    # SQL rendering

    def should_log_sql(self, sql: str) -> bool:
        """Apply the statement-type filter to a SQL string."""
        if not self._filtering:
            return True
        return first_keyword(sql) in self._allowed

    def process_sql(self, sql: str) -> str:
        """Trim, wrap and terminate SQL for readability."""
        if isinstance(sql, RenderedSql):
            return sql
        if self.settings.trim_sql:
            sql = sql.strip()
        max_length = self.settings.dump_sql_max_line_length
        if max_length > 0:
            lines: list[str] = []
            current: list[str] = []
            length = 0
            for token in sql.split():
                current.append(token)
                length += len(token) + 1
                if length > max_length:
                    lines.append(" ".join(current))
                    current = []
                    length = 0
            if current:
                lines.append(" ".join(current))
            sql = "\n".join(lines)
        if self.settings.dump_sql_add_semicolon:
            sql += ";"
        return sql

    def render_batch(self, statements: Sequence[str]) -> RenderedSql:
        """Batch report with each statement processed on its own."""
        processed = [self.process_sql(sql) for sql in statements]
        return RenderedSql(batch_report(processed))

    def _render_sql(self, ctx: CallContext, sql: str) -> str:
        rendered = self.process_sql(sql)
        if self.settings.statement_warn and ctx.class_type == STATEMENT:
            rendered = STATEMENT_WARNING + rendered
        return rendered

    # Events

    @_never_raises
    def exception_occurred(
        self,
        ctx: CallContext,
        error: BaseException,
        sql: str | None = None,
        elapsed: Elapsed | None = None,
    ) -> None:
        """Report a failed call on the audit, SQL and timing channels.

        Args:
            ctx: The failed call
            error: Exception raised by the real driver
            sql: SQL being run, if the call ran any
            elapsed: Time spent before the failure
        """
        header = ctx.header
        if sql is None:
            for channel in (Channel.AUDIT, Channel.SQLONLY, Channel.SQLTIMING):
                self._emit(channel, LogLevel.ERROR, header, error)
            return

        processed = self.process_sql(sql)
        failed = (elapsed or Elapsed(0)).failed_marker()
        self._emit(Channel.AUDIT, LogLevel.ERROR, f"{header} {sql}", error)

        if self.accepts_debug(Channel.SQLONLY):
            message = self._attributed(ctx.connection_id, processed)
        else:
            message = f"{header} {sql}"
        self._emit(Channel.SQLONLY, LogLevel.ERROR, message, error)

        if self.accepts_debug(Channel.SQLTIMING):
            message = self._attributed(ctx.connection_id, f"{processed} {failed}")
        else:
            message = f"{header} FAILED! {processed} {failed}"
        self._emit(Channel.SQLTIMING, LogLevel.ERROR, message, error)

    @_never_raises
    def method_returned(self, ctx: CallContext, return_msg: str) -> None:
        """Report a completed call; fetch calls go to the result-set channel."""
        channel = Channel.RESULTSET if ctx.is_result_set else Channel.AUDIT
        if not self.accepts(channel, LogLevel.INFO):
            return
        line = f"{ctx.header} returned"
        if return_msg:
            line = f"{line} {return_msg}"
        if self.accepts_debug(channel):
            self._emit(channel, LogLevel.DEBUG, self._with_call_site(line))
        else:
            self._emit(channel, LogLevel.INFO, line)

    @_never_raises
    def sql_occurred(
        self, ctx: CallContext, sql: str, filter_sql: str | None = None
    ) -> None:
        """Report SQL about to be run.

        Args:
            ctx: The call running the SQL
            sql: The literal SQL
            filter_sql: Text used for the statement-type filter instead of
                ``sql`` (a batch is filtered by its statements)
        """
        if not self.should_log_sql(filter_sql if filter_sql is not None else sql):
            return
        rendered = self._render_sql(ctx, sql)
        if self.accepts_debug(Channel.SQLONLY):
            message = self._attributed(ctx.connection_id, rendered)
            self._emit(Channel.SQLONLY, LogLevel.DEBUG, message)
        else:
            self._emit(Channel.SQLONLY, LogLevel.INFO, rendered)

    @_never_raises
    def sql_timing_occurred(
        self,
        ctx: CallContext,
        elapsed: Elapsed,
        sql: str,
        filter_sql: str | None = None,
    ) -> None:
        """Report SQL together with how long it took.

        The level comes from the timing thresholds. Entries escalated to
        WARNING or ERROR, and DEBUG entries, carry the call site.
        """
        if not self.accepts(Channel.SQLTIMING, LogLevel.ERROR):
            return
        if not self.should_log_sql(filter_sql if filter_sql is not None else sql):
            return
        level = self._thresholds.classify(
            elapsed.msec, self.accepts_debug(Channel.SQLTIMING)
        )
        body = (
            f"{self._render_sql(ctx, sql)} "
            f"{elapsed.executed_marker(self.settings.timing_unit)}"
        )
        if level is LogLevel.INFO:
            message = body
        else:
            message = self._attributed(ctx.connection_id, body)
        self._emit(Channel.SQLTIMING, level, message)

    @_never_raises
    def connection_opened(self, connection_id: int) -> None:
        self._connection_event(connection_id, "opened")

    @_never_raises
    def connection_closed(self, connection_id: int) -> None:
        self._connection_event(connection_id, "closed")

    def _connection_event(self, connection_id: int, action: str) -> None:
        line = f"{connection_id}. Connection {action}"
        if self.accepts_debug(Channel.CONNECTION):
            self._emit(Channel.CONNECTION, LogLevel.INFO, self._with_call_site(line))
            if self.registry is not None:
                self._emit(
                    Channel.CONNECTION,
                    LogLevel.DEBUG,
                    self.registry.snapshot().render(),
                )
        else:
            self._emit(Channel.CONNECTION, LogLevel.INFO, line)

    @_never_raises
    def debug(self, message: str) -> None:
        """Setup and internal diagnostic message."""
        self._emit(Channel.SETUP, LogLevel.DEBUG, message)

    @_never_raises
    def diagnostic(self, message: str) -> None:
        """Internal problem that was recovered from, such as a formatting failure."""
        self._emit(Channel.SETUP, LogLevel.WARNING, message)
