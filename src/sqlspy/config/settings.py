# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""
Instrumentation settings.

Settings come from ``SQLSPY_*`` environment variables. A malformed number or
flag never stops the instrumentation: it falls back to the field's default
and the problem is queued on the setup log. Options with a fixed set of
choices are different, a bad value there is a fatal ConfigValidationError.
"""

from __future__ import annotations

from typing import Any, Final

from pydantic import (
    Field,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from sqlspy.config.errors import ConfigValidationError
from sqlspy.dialects import Dialect
from sqlspy.logging.setup import setup_log
from sqlspy.timing import TimingThresholds, TimingUnit

ENV_PREFIX: Final = "SQLSPY_"

STATEMENT_TYPES: Final = ("select", "insert", "update", "delete", "create")

_LENIENT_FIELDS: Final = (
    "dump_boolean_as_true_false",
    "dump_sql_max_line_length",
    "dump_sql_add_semicolon",
    "trim_sql",
    "dump_sql_select",
    "dump_sql_insert",
    "dump_sql_update",
    "dump_sql_delete",
    "dump_sql_create",
    "dump_full_debug_stack_trace",
    "sqltiming_warn_threshold",
    "sqltiming_error_threshold",
    "statement_warn",
    "show_type_help",
)


def env_name(field_name: str) -> str:
    return f"{ENV_PREFIX}{field_name.upper()}"


class SpySettings(BaseSettings):
    """
    Options controlling what is logged and how it is rendered.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    dialect: Dialect | None = Field(
        default=None,
        description="Force a dialect instead of detecting it from the driver",
    )
    dump_boolean_as_true_false: bool = False
    dump_sql_max_line_length: int = Field(
        default=90, ge=0, description="Wrap logged SQL at this length, 0 disables"
    )
    dump_sql_add_semicolon: bool = False
    trim_sql: bool = True
    dump_sql_select: bool = True
    dump_sql_insert: bool = True
    dump_sql_update: bool = True
    dump_sql_delete: bool = True
    dump_sql_create: bool = True
    dump_full_debug_stack_trace: bool = False
    debug_stack_prefix: str | None = Field(
        default=None,
        description="Application package prefix used for call-site attribution",
    )
    sqltiming_warn_threshold: int | None = Field(default=None, ge=0)
    sqltiming_error_threshold: int | None = Field(default=None, ge=0)
    timing_unit: TimingUnit = TimingUnit.MSEC
    statement_warn: bool = False
    show_params: bool = True
    show_type_help: bool = False

    @field_validator(*_LENIENT_FIELDS, mode="wrap")
    @classmethod
    def _fall_back_to_default(
        cls,
        value: Any,
        handler: ValidatorFunctionWrapHandler,
        info: ValidationInfo,
    ) -> Any:
        try:
            return handler(value)
        except ValidationError:
            default = cls.model_fields[info.field_name].get_default()
            shown = "disabled" if default is None else default
            setup_log.add(
                f"{env_name(info.field_name)} value {value!r} is not valid, "
                f"using default ({shown})"
            )
            return default

    @field_validator("dialect", "timing_unit", mode="before")
    @classmethod
    def _normalize_choice(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("show_params", mode="before")
    @classmethod
    def _strict_true_false(cls, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in ("true", "false"):
            return text == "true"
        raise ValueError(
            f"Value of {env_name('show_params')} should be either 'true' or "
            f"'false'. Was '{value}'."
        )

    @field_validator("debug_stack_prefix")
    @classmethod
    def _blank_prefix_is_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @property
    def allowed_statement_types(self) -> frozenset[str]:
        """Leading SQL keywords whose statements are dumped."""
        return frozenset(
            keyword
            for keyword in STATEMENT_TYPES
            if getattr(self, f"dump_sql_{keyword}")
        )

    @property
    def sql_filtering_on(self) -> bool:
        return len(self.allowed_statement_types) < len(STATEMENT_TYPES)

    @property
    def thresholds(self) -> TimingThresholds:
        return TimingThresholds.from_limits(
            self.sqltiming_warn_threshold, self.sqltiming_error_threshold
        )

    def describe(self) -> list[str]:
        """One line per explicitly configured option, for the setup log."""
        return [
            f"  {env_name(name)} = {getattr(self, name)}"
            for name in sorted(self.model_fields_set)
        ]


def load_settings(**overrides: Any) -> SpySettings:
    """Load settings from the environment, applying explicit overrides.

    Args:
        **overrides: Field values that take precedence over the environment

    Returns:
        The validated settings

    Raises:
        ConfigValidationError: If an enumerated option has an invalid value
    """
    try:
        settings = SpySettings(**overrides)
    except ValidationError as exc:
        raise ConfigValidationError.from_validation(exc) from exc

    setup_log.add("sqlspy settings loaded")
    for line in settings.describe():
        setup_log.add(line)
    return settings
