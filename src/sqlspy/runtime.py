# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""
Wiring of the instrumentation components.

An Instrumentation owns one registry, one router and the settings they were
built from. Building it completes the two-phase setup: messages queued while
settings loaded are flushed to the setup channel.
"""

from __future__ import annotations

import functools
import threading
from collections.abc import Callable
from typing import Any

from sqlspy.callsite import CallSiteResolver
from sqlspy.config.settings import SpySettings, load_settings
from sqlspy.dbapi.connection import ConnectionSpy
from sqlspy.dialects import Dialect, DialectFormatter
from sqlspy.logging.config import LoggingSettings
from sqlspy.logging.logger import configure_logging
from sqlspy.logging.router import LogRouter
from sqlspy.logging.setup import setup_log
from sqlspy.params import BindParameterTracker
from sqlspy.registry import ConnectionRegistry, RegistrySnapshot
from sqlspy.timing import TimingRecorder


class Instrumentation:
    """Settings, router, registry and timing shared by every spy."""

    def __init__(
        self,
        settings: SpySettings | None = None,
        logging_settings: LoggingSettings | None = None,
        resolver: CallSiteResolver | None = None,
        registry: ConnectionRegistry | None = None,
        recorder: TimingRecorder | None = None,
    ) -> None:
        """
        Args:
            settings: Instrumentation settings, loaded from the environment if None
            logging_settings: When given, the channel loggers are configured
                from it; otherwise logging is left to the application
            resolver: Call-site resolver, built from settings if None
            registry: Connection registry, a fresh one if None
            recorder: Timing recorder, a perf_counter based one if None

        Raises:
            ConfigValidationError: If settings loaded from the environment
                are invalid
            LoggingError: If a configured log file cannot be opened
        """
        self.settings = settings if settings is not None else load_settings()
        if logging_settings is not None:
            configure_logging(logging_settings)
        self.registry = registry if registry is not None else ConnectionRegistry()
        self.router = LogRouter(
            self.settings, resolver=resolver, registry=self.registry
        )
        self.formatter = DialectFormatter(
            booleans_as_words=self.settings.dump_boolean_as_true_false,
            diagnostics=self.router.diagnostic,
        )
        self.recorder = recorder if recorder is not None else TimingRecorder()
        self._setup_sink = self.router.debug
        setup_log.attach(self._setup_sink)

    def tracker(self, dialect: Dialect = Dialect.DEFAULT) -> BindParameterTracker:
        """New parameter tracker for a cursor on a connection of this dialect."""
        return BindParameterTracker(
            formatter=self.formatter,
            dialect=dialect,
            show_type_help=self.settings.show_type_help,
        )

    def connect(self, connection: Any, dialect: Dialect | None = None) -> Any:
        """Wrap a real DB-API connection.

        The connection is returned as is when it is already wrapped, or when
        no traffic channel is enabled.

        Args:
            connection: Connection from the real driver
            dialect: Dialect override

        Returns:
            A ConnectionSpy, or the connection itself

        Raises:
            RegistryError: If this instrumentation has been shut down
        """
        if isinstance(connection, ConnectionSpy):
            return connection
        if not self.router.is_enabled():
            return connection
        return ConnectionSpy(connection, self, dialect=dialect)

    def wrap_connect(
        self, connect: Callable[..., Any], dialect: Dialect | None = None
    ) -> Callable[..., Any]:
        """Decorate a driver's ``connect`` so every connection it opens is wrapped."""

        @functools.wraps(connect)
        def spied_connect(*args: Any, **kwargs: Any) -> Any:
            return self.connect(connect(*args, **kwargs), dialect=dialect)

        return spied_connect

    def shutdown(self) -> RegistrySnapshot:
        """Stop the registry and return the connections left open."""
        remaining = self.registry.shutdown()
        self.router.debug(f"sqlspy shut down with {remaining.render()}")
        setup_log.detach(self._setup_sink)
        return remaining


_default: Instrumentation | None = None
_default_lock = threading.Lock()


def get_instrumentation() -> Instrumentation:
    """Process-wide instrumentation, built from the environment on first use.

    Raises:
        ConfigValidationError: If the settings or logging settings in the
            environment are invalid
    """
    global _default
    with _default_lock:
        if _default is None:
            _default = Instrumentation(logging_settings=LoggingSettings.load())
        return _default


def set_instrumentation(instrumentation: Instrumentation | None) -> None:
    """Replace the process-wide instrumentation (None resets it)."""
    global _default
    with _default_lock:
        _default = instrumentation


def shutdown() -> RegistrySnapshot | None:
    """Shut down the process-wide instrumentation if one was built."""
    global _default
    with _default_lock:
        instrumentation, _default = _default, None
    if instrumentation is None:
        return None
    return instrumentation.shutdown()


def spy(connection: Any, dialect: Dialect | None = None) -> Any:
    """Wrap a connection with the process-wide instrumentation."""
    return get_instrumentation().connect(connection, dialect=dialect)
