# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy

"""
sqlspy: logs the SQL a DB-API driver runs, with bound values filled in,
execution times and connection lifecycle events.
"""

from __future__ import annotations

from sqlspy.dbapi import ConnectionSpy, CursorSpy
from sqlspy.dialects import Dialect, DialectFormatter
from sqlspy.params import UNSET, BindParameterTracker, reconstruct
from sqlspy.registry import ConnectionRegistry
from sqlspy.runtime import (
    Instrumentation,
    get_instrumentation,
    set_instrumentation,
    shutdown,
    spy,
)

__version__ = "0.1.0"

__all__ = [
    "BindParameterTracker",
    "ConnectionRegistry",
    "ConnectionSpy",
    "CursorSpy",
    "Dialect",
    "DialectFormatter",
    "Instrumentation",
    "UNSET",
    "get_instrumentation",
    "reconstruct",
    "set_instrumentation",
    "shutdown",
    "spy",
]
