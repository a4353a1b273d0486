# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""
Logging-specific errors for sqlspy.
"""

from __future__ import annotations

from typing import Any, Final

from sqlspy.errors.base import ErrorCategory, ErrorCode, ErrorSeverity, SpyError

LOGGING = ErrorCategory.get_or_create("LOGGING")
LOGGING_ERROR: Final = ErrorCode.get_or_create("LOGGING_ERROR", LOGGING)
LOGGING_CONFIGURATION: Final = ErrorCode.get_or_create(
    "LOGGING_CONFIGURATION", LOGGING
)


class LoggingError(SpyError):
    """Base exception for all logging-related errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = LOGGING_ERROR,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize a logging error.

        Args:
            message: Human-readable error message
            code: Error code
            severity: How severe this error is
            context: Additional context information
            **kwargs: Additional context keys
        """
        super().__init__(
            message,
            code=code,
            severity=severity,
            context=context,
            **kwargs,
        )
