# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""Configuration management for sqlspy.

Settings are read from ``SQLSPY_*`` environment variables; the channel
logging settings live in :mod:`sqlspy.logging.config`.
"""

from __future__ import annotations

from sqlspy.config.errors import ConfigError, ConfigValidationError
from sqlspy.config.settings import (
    STATEMENT_TYPES,
    SpySettings,
    load_settings,
)

__all__ = [
    "ConfigError",
    "ConfigValidationError",
    "STATEMENT_TYPES",
    "SpySettings",
    "load_settings",
]
