# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""
Configuration-specific error classes.
"""

from __future__ import annotations

from typing import Any, Final

from pydantic import ValidationError

from sqlspy.errors.base import ErrorCategory, ErrorCode, ErrorSeverity, SpyError

CONFIG = ErrorCategory.get_or_create("CONFIG")
CONFIG_ERROR: Final = ErrorCode.get_or_create("CONFIG_ERROR", CONFIG)
CONFIG_VALIDATION_ERROR: Final = ErrorCode.get_or_create(
    "CONFIG_VALIDATION_ERROR", CONFIG
)


class ConfigError(SpyError):
    """Base class for configuration errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = CONFIG_ERROR,
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


class ConfigValidationError(ConfigError):
    """Raised when an option holds a value the settings cannot accept.

    Malformed numbers and flags fall back to their defaults instead, so this
    error always means the configuration cannot be used as given.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = CONFIG_VALIDATION_ERROR,
        severity: ErrorSeverity = ErrorSeverity.CRITICAL,
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

    @classmethod
    def from_validation(
        cls, exc: ValidationError, subject: str = "sqlspy configuration"
    ) -> ConfigValidationError:
        """Summarize a pydantic ValidationError, one problem per field."""
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        error = cls(
            f"Invalid {subject}: {problems}",
            context={"errors": exc.errors(include_url=False)},
        )
        error.__cause__ = exc
        return error
