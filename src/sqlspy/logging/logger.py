# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""
Channel sink configuration.

The sink is Python's standard logging module: one logger per channel, with
handlers and formatters built from LoggingSettings.
"""

from __future__ import annotations

import json
import logging
import sys
from logging import StreamHandler
from typing import Any

from sqlspy.logging.channels import Channel
from sqlspy.logging.config import LoggingSettings
from sqlspy.logging.errors import LOGGING_CONFIGURATION, LoggingError

# Marks handlers installed by configure_logging so reconfiguration only
# replaces its own handlers
_HANDLER_MARK = "_sqlspy_handler"


class StructuredFormatter(logging.Formatter):
    """Formatter that appends extra record fields as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record with structured data.

        Args:
            record: The log record to format

        Returns:
            Formatted log string
        """
        message = super().format(record)
        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        }
        if not extra:
            return message
        ctx_str = " ".join(f"{k}={self._format_value(v)}" for k, v in extra.items())
        return f"{message} {ctx_str}"

    def _format_value(self, value: Any) -> str:
        if isinstance(value, str):
            if " " in value:
                return f'"{value}"'
            return value
        try:
            return json.dumps(value)
        except TypeError:
            return str(value)


class TimingEntryFormatter(logging.Formatter):
    """Writes each timing entry followed by a blank line.

    This is the input format of the offline profiler.
    """

    def __init__(self) -> None:
        super().__init__(fmt="%(message)s")

    def format(self, record: logging.LogRecord) -> str:
        return super().format(record) + "\n"


_STANDARD_ATTRS = frozenset(
    logging.LogRecord(
        "x", logging.INFO, __file__, 0, "", None, None
    ).__dict__
) | {"message", "asctime", "taskName"}


def get_channel_logger(channel: Channel) -> logging.Logger:
    """Standard library logger backing a channel."""
    return logging.getLogger(channel.value)


def _mark(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_MARK, True)
    return handler


def configure_logging(
    settings: LoggingSettings | None = None,
) -> dict[Channel, logging.Logger]:
    """
    Configure every channel logger from the provided settings.

    Args:
        settings: Logging settings (loads from environment if None)

    Returns:
        Mapping of channel to its configured logger

    Raises:
        LoggingError: If a handler cannot be created
    """
    settings = settings or LoggingSettings.load()
    formatter = StructuredFormatter(fmt=settings.format, datefmt=settings.date_format)

    handlers: list[logging.Handler] = []
    try:
        if settings.console_enabled:
            console = StreamHandler(sys.stdout)
            console.setFormatter(formatter)
            handlers.append(_mark(console))
        if settings.file_enabled and settings.file_path:
            file_handler = logging.FileHandler(settings.file_path, encoding="utf-8")
            file_handler.setFormatter(formatter)
            handlers.append(_mark(file_handler))
        timing_handler = None
        if settings.timing_file_path:
            timing_handler = logging.FileHandler(
                settings.timing_file_path, encoding="utf-8"
            )
            timing_handler.setFormatter(TimingEntryFormatter())
            _mark(timing_handler)
    except OSError as exc:
        raise LoggingError.wrap(
            exc,
            message=f"Could not open log file: {exc}",
            code=LOGGING_CONFIGURATION,
        ) from exc

    loggers: dict[Channel, logging.Logger] = {}
    for channel in Channel:
        logger = get_channel_logger(channel)
        logger.setLevel(settings.level_for(channel).to_stdlib_level())

        for handler in list(logger.handlers):
            if getattr(handler, _HANDLER_MARK, False):
                logger.removeHandler(handler)
                handler.close()

        for handler in handlers:
            logger.addHandler(handler)
        if channel is Channel.SQLTIMING and timing_handler is not None:
            logger.addHandler(timing_handler)

        logger.propagate = settings.propagate
        loggers[channel] = logger
    return loggers
