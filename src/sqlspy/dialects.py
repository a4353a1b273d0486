# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""
Dialect-aware rendering of bound values as SQL literals.

Each dialect is a strategy in a fixed table. The default strategy covers
every value kind; the vendor strategies override only their date/time rules.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Final

from sqlspy.errors import ErrorSeverity, FormattingError
from sqlspy.logging.setup import setup_log


class Dialect(str, Enum):
    """SQL literal conventions of a database vendor."""

    DEFAULT = "default"
    ORACLE = "oracle"
    SQLSERVER = "sqlserver"
    MYSQL = "mysql"


def _millis(value: datetime | time) -> str:
    return f"{value.microsecond // 1000:03d}"


def _mdy_hms(value: datetime) -> str:
    return value.strftime("%m/%d/%Y %H:%M:%S.") + _millis(value)


def _default_datetime(value: datetime) -> str:
    return f"'{_mdy_hms(value)}'"


def _default_date(value: date) -> str:
    return f"'{value.strftime('%m/%d/%Y')} 00:00:00.000'"


def _default_time(value: time) -> str:
    return f"'01/01/1970 {value.strftime('%H:%M:%S')}.{_millis(value)}'"


def _oracle_datetime(value: datetime) -> str:
    return f"to_date('{_mdy_hms(value)}', 'mm/dd/yyyy hh24:mi:ss.ff3')"


def _oracle_date(value: date) -> str:
    return _oracle_datetime(datetime.combine(value, time()))


def _sqlserver_date(value: date) -> str:
    return f"'{value.strftime('%m/%d/%Y')}'"


def _mysql_datetime(value: datetime) -> str:
    return f"'{value.strftime('%Y-%m-%d %H:%M:%S')}'"


def _mysql_date(value: date) -> str:
    return f"'{value.strftime('%Y-%m-%d')}'"


def _mysql_time(value: time) -> str:
    return f"'{value.strftime('%H:%M:%S')}'"


@dataclasses.dataclass(frozen=True)
class DialectStrategy:
    """Renderers for the value kinds whose literal syntax varies by vendor."""

    on_datetime: Callable[[datetime], str]
    on_date: Callable[[date], str]
    on_time: Callable[[time], str]


_DEFAULT_STRATEGY: Final = DialectStrategy(
    on_datetime=_default_datetime,
    on_date=_default_date,
    on_time=_default_time,
)

STRATEGIES: Final[dict[Dialect, DialectStrategy]] = {
    Dialect.DEFAULT: _DEFAULT_STRATEGY,
    Dialect.ORACLE: dataclasses.replace(
        _DEFAULT_STRATEGY, on_datetime=_oracle_datetime, on_date=_oracle_date
    ),
    Dialect.SQLSERVER: dataclasses.replace(
        _DEFAULT_STRATEGY, on_date=_sqlserver_date
    ),
    Dialect.MYSQL: DialectStrategy(
        on_datetime=_mysql_datetime, on_date=_mysql_date, on_time=_mysql_time
    ),
}

# Top-level driver module name -> dialect
_DRIVER_DIALECTS: Final[dict[str, Dialect]] = {
    "cx_Oracle": Dialect.ORACLE,
    "oracledb": Dialect.ORACLE,
    "pymssql": Dialect.SQLSERVER,
    "pytds": Dialect.SQLSERVER,
    "_mssql": Dialect.SQLSERVER,
    "pymysql": Dialect.MYSQL,
    "MySQLdb": Dialect.MYSQL,
    "mysql": Dialect.MYSQL,
    "mariadb": Dialect.MYSQL,
}


def dialect_for_driver(driver_name: str | None) -> Dialect:
    """Map a DB-API driver module name onto a dialect.

    Args:
        driver_name: Driver module name, dotted names are reduced to the
            top-level package

    Returns:
        The matching dialect, DEFAULT when the driver is unknown
    """
    if not driver_name:
        return Dialect.DEFAULT
    return _DRIVER_DIALECTS.get(driver_name.split(".")[0], Dialect.DEFAULT)


def detect_dialect(connection: Any) -> Dialect:
    """Dialect of a real DB-API connection, judged by its defining module."""
    return dialect_for_driver(type(connection).__module__)


def _plain(value: Any) -> str:
    if value is None:
        return "null"
    try:
        return str(value)
    except Exception:
        return object.__repr__(value)


class DialectFormatter:
    """
    Renders Python values as SQL literal text.

    ``format`` never raises: an unexpected failure is reported once through
    the diagnostics callable and the value's plain text is returned instead.
    """

    def __init__(
        self,
        booleans_as_words: bool = False,
        diagnostics: Callable[[str], None] | None = None,
    ) -> None:
        """
        Args:
            booleans_as_words: Render booleans as true/false instead of 1/0
            diagnostics: Receives failure reports, defaults to the setup log
        """
        self.booleans_as_words = booleans_as_words
        self._diagnostics = diagnostics or setup_log.add

    def format(self, value: Any, dialect: Dialect = Dialect.DEFAULT) -> str:
        """Render a value as a literal for the given dialect.

        Args:
            value: The bound value
            dialect: Literal conventions to apply

        Returns:
            SQL literal text
        """
        try:
            return self._render(value, STRATEGIES[dialect])
        except Exception as exc:
            error = FormattingError.wrap(
                exc,
                message=(
                    f"could not format {type(value).__name__} value "
                    f"for the {getattr(dialect, 'value', dialect)} dialect"
                ),
                severity=ErrorSeverity.WARNING,
                dialect=getattr(dialect, "value", dialect),
            )
            self._diagnostics(str(error))
            return _plain(value)

    def _render(self, value: Any, strategy: DialectStrategy) -> str:
        if value is None:
            return "NULL"
        if isinstance(value, str):
            return "'" + value.replace("'", "''") + "'"
        if isinstance(value, bool):
            if self.booleans_as_words:
                return "true" if value else "false"
            return "1" if value else "0"
        # datetime is a date subclass
        if isinstance(value, datetime):
            return strategy.on_datetime(value)
        if isinstance(value, date):
            return strategy.on_date(value)
        if isinstance(value, time):
            return strategy.on_time(value)
        return str(value)
