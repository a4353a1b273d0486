# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy

"""
Error handling for sqlspy.
"""

from __future__ import annotations

from sqlspy.errors.base import (
    INTERNAL,
    ErrorCategory,
    ErrorCode,
    ErrorSeverity,
    SpyError,
)
from sqlspy.errors.component_errors import (
    FormattingError,
    RegistryError,
)
from sqlspy.errors.registry import registry

__all__ = [
    # Error categories
    "ErrorCategory",
    "ErrorCode",
    "ErrorSeverity",
    "INTERNAL",
    # Base errors
    "SpyError",
    # Component errors
    "FormattingError",
    "RegistryError",
    "registry",
]
