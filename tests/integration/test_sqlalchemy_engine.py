"""SQLAlchemy engines routed through the DB-API spies."""

from __future__ import annotations

import logging

import pytest
from sqlalchemy import text

from sqlspy.dbapi import ConnectionSpy
from sqlspy.dialects import Dialect
from sqlspy.integrations.sqlalchemy import create_engine, dialect_for_engine
from sqlspy.logging.channels import Channel

pytestmark = pytest.mark.integration


def messages(caplog, channel: Channel) -> list[str]:
    return [r.getMessage() for r in caplog.records if r.name == channel.value]


def test_engine_statements_are_logged(make_instrumentation, caplog):
    caplog.set_level(logging.INFO, logger="sqlspy")
    engine = create_engine("sqlite://", instrumentation=make_instrumentation())

    with engine.connect() as conn:
        assert isinstance(conn.connection.dbapi_connection, ConnectionSpy)
        assert conn.execute(text("select 1")).scalar() == 1
        assert conn.execute(text("select :x"), {"x": 5}).scalar() == 5
    engine.dispose()

    sqlonly = messages(caplog, Channel.SQLONLY)
    assert "select 1" in sqlonly
    assert "select 5" in sqlonly
    assert "1. Connection opened" in messages(caplog, Channel.CONNECTION)


def test_sqlite_engine_uses_default_dialect(make_instrumentation):
    engine = create_engine("sqlite://", instrumentation=make_instrumentation())

    assert dialect_for_engine(engine) is Dialect.DEFAULT
    engine.dispose()
