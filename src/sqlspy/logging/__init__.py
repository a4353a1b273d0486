# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy

"""
Channel logging for sqlspy.

The router lives in :mod:`sqlspy.logging.router`; it depends on the
instrumentation settings and is imported from there directly.
"""

from __future__ import annotations

from sqlspy.logging.channels import Channel
from sqlspy.logging.config import LoggingSettings
from sqlspy.logging.errors import LoggingError
from sqlspy.logging.level import LogLevel
from sqlspy.logging.logger import (
    StructuredFormatter,
    TimingEntryFormatter,
    configure_logging,
    get_channel_logger,
)
from sqlspy.logging.setup import SetupLog, setup_log

__all__ = [
    "Channel",
    "LogLevel",
    "LoggingError",
    "LoggingSettings",
    "SetupLog",
    "StructuredFormatter",
    "TimingEntryFormatter",
    "configure_logging",
    "get_channel_logger",
    "setup_log",
]
