# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""
Named logical channels the router dispatches to.

Each channel is a standard library logger, so applications enable, silence
or redirect them with ordinary logging configuration.
"""

from __future__ import annotations

from enum import Enum


class Channel(str, Enum):
    """Logger names for each routed channel."""

    # every non row-access method return, plus exceptions
    AUDIT = "sqlspy.audit"
    # fetch and row-access returns, routed apart because of volume
    RESULTSET = "sqlspy.resultset"
    SQLONLY = "sqlspy.sqlonly"
    SQLTIMING = "sqlspy.sqltiming"
    CONNECTION = "sqlspy.connection"
    SETUP = "sqlspy.setup"

    @classmethod
    def routed(cls) -> tuple[Channel, ...]:
        """Channels that carry database traffic (everything but setup)."""
        return (cls.AUDIT, cls.RESULTSET, cls.SQLONLY, cls.SQLTIMING, cls.CONNECTION)
