# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy

"""
Component-specific errors for the instrumentation core.

Formatting errors never escape the formatter: they are built so that the
failure can be reported on the diagnostics channel with full context.
Registry errors signal misuse of the connection registry lifecycle.
"""

from __future__ import annotations

from typing import Any, Final

from sqlspy.errors.base import ErrorCategory, ErrorCode, ErrorSeverity, SpyError

FORMATTING = ErrorCategory.get_or_create("FORMATTING")
FORMATTING_ERROR: Final = ErrorCode.get_or_create("FORMATTING_ERROR", FORMATTING)

REGISTRY = ErrorCategory.get_or_create("REGISTRY")
REGISTRY_ERROR: Final = ErrorCode.get_or_create("REGISTRY_ERROR", REGISTRY)
REGISTRY_SHUTDOWN: Final = ErrorCode.get_or_create("REGISTRY_SHUTDOWN", REGISTRY)


class FormattingError(SpyError):
    """Raised internally when a bound value cannot be rendered for a dialect."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = FORMATTING_ERROR,
        severity: ErrorSeverity = ErrorSeverity.WARNING,
        context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            code=code,
            severity=severity,
            context=context,
            **kwargs,
        )


class RegistryError(SpyError):
    """Raised when the connection registry is used outside its lifetime."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = REGISTRY_ERROR,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            code=code,
            severity=severity,
            context=context,
            **kwargs,
        )

