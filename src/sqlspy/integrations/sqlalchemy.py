# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""
SQLAlchemy integration.

The engine's ``do_connect`` event is used to open the DB-API connection
ourselves and hand back a ConnectionSpy, so every statement the engine runs
goes through the instrumentation.
"""

from __future__ import annotations

from typing import Any, Final

import sqlalchemy as sa
from sqlalchemy import event
from sqlalchemy.engine import Engine

from sqlspy.dialects import Dialect
from sqlspy.runtime import Instrumentation, get_instrumentation

# SQLAlchemy dialect name -> literal dialect
_DIALECT_NAMES: Final[dict[str, Dialect]] = {
    "oracle": Dialect.ORACLE,
    "mssql": Dialect.SQLSERVER,
    "mysql": Dialect.MYSQL,
    "mariadb": Dialect.MYSQL,
}


def dialect_for_engine(engine: Engine) -> Dialect:
    return _DIALECT_NAMES.get(engine.dialect.name, Dialect.DEFAULT)


def instrument_engine(
    engine: Engine, instrumentation: Instrumentation | None = None
) -> Engine:
    """Wrap every DB-API connection the engine opens from now on.

    Args:
        engine: The engine to instrument
        instrumentation: Instrumentation to report through, the process-wide
            one if None

    Returns:
        The same engine
    """
    spy = instrumentation or get_instrumentation()
    dialect = dialect_for_engine(engine)

    @event.listens_for(engine, "do_connect")
    def _spied_connect(
        sa_dialect: Any, conn_rec: Any, cargs: Any, cparams: Any
    ) -> Any:
        return spy.connect(sa_dialect.connect(*cargs, **cparams), dialect=dialect)

    return engine


def create_engine(
    url: str | sa.URL,
    *,
    instrumentation: Instrumentation | None = None,
    **kwargs: Any,
) -> Engine:
    """``sqlalchemy.create_engine`` with instrumentation installed."""
    return instrument_engine(sa.create_engine(url, **kwargs), instrumentation)
