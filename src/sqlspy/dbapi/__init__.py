# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy

"""
DB-API 2.0 wrappers that report every call to the router.
"""

from __future__ import annotations

from sqlspy.dbapi.connection import ConnectionSpy
from sqlspy.dbapi.cursor import CursorSpy

__all__ = [
    "ConnectionSpy",
    "CursorSpy",
]
