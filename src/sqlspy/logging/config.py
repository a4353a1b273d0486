# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""
Configuration for the sqlspy channel loggers.

This module defines the configuration settings for the logging sink,
using pydantic-settings for environment-driven settings.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sqlspy.logging.channels import Channel
from sqlspy.logging.level import LogLevel


class LoggingSettings(BaseSettings):
    """
    Configuration settings for the sqlspy channel loggers.
    Loads from environment variables using Pydantic v2's env support.
    """

    model_config = SettingsConfigDict(
        env_prefix="SQLSPY_LOGGING_",
        extra="ignore",
        case_sensitive=False,
        frozen=False,
    )

    level: str = Field(default=LogLevel.INFO, description="Level for all channels")
    channel_levels: dict[str, str] = Field(
        default_factory=dict,
        description="Per-channel level overrides keyed by channel logger name",
    )
    format: str = Field(
        default="%(asctime)s %(name)s [%(levelname)s] %(message)s",
        description="Log message format",
    )
    date_format: str = Field(default="%Y-%m-%d %H:%M:%S")
    console_enabled: bool = Field(default=True, description="Enable console logging")
    file_enabled: bool = Field(default=False, description="Enable file logging")
    file_path: str | None = Field(default=None, description="Path to log file")
    timing_file_path: str | None = Field(
        default=None,
        description="Profiler-ready file for the timing channel",
    )
    propagate: bool = Field(default=False)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: Any) -> str:
        """Validate that the level is a valid log level."""
        if not isinstance(v, str):
            raise ValueError(f"Log level must be a string, got {type(v).__name__}")
        return LogLevel.from_string(v).value

    @field_validator("channel_levels")
    @classmethod
    def validate_channel_levels(cls, v: dict[str, str]) -> dict[str, str]:
        """Validate channel names and their levels."""
        known = {channel.value for channel in Channel}
        validated: dict[str, str] = {}
        for name, level in v.items():
            if name not in known:
                raise ValueError(f"Unknown logging channel: {name}")
            validated[name] = LogLevel.from_string(level).value
        return validated

    def level_for(self, channel: Channel) -> LogLevel:
        """Effective level of a channel."""
        return LogLevel(self.channel_levels.get(channel.value, self.level))

    @classmethod
    def load(cls) -> LoggingSettings:
        """
        Load logging settings from environment variables or defaults.

        Returns:
            LoggingSettings: Loaded and validated settings instance.

        Raises:
            ConfigValidationError: If an environment value is invalid
        """
        from sqlspy.config.errors import ConfigValidationError

        try:
            return cls()
        except ValidationError as exc:
            raise ConfigValidationError.from_validation(
                exc, "sqlspy logging configuration"
            ) from exc
