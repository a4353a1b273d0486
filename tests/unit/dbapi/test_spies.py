"""Tests for the DB-API connection and cursor spies, against sqlite3."""

from __future__ import annotations

import itertools
import logging
import sqlite3

import pytest

from sqlspy import runtime
from sqlspy.config.errors import ConfigValidationError
from sqlspy.config.settings import SpySettings
from sqlspy.dbapi import ConnectionSpy, CursorSpy
from sqlspy.errors import RegistryError
from sqlspy.logging.channels import Channel
from sqlspy.logging.setup import setup_log
from sqlspy.runtime import Instrumentation
from sqlspy.timing import NANOS_PER_MSEC, TimingRecorder

CALL_SITE = "app.orders.place_order(orders.py:42)"
QUEUED = "SQLSPY_TRIM_SQL value 'maybe' is not valid, using default (True)"


def messages(caplog, channel: Channel) -> list[str]:
    return [r.getMessage() for r in caplog.records if r.name == channel.value]


def records(caplog, channel: Channel) -> list[logging.LogRecord]:
    return [r for r in caplog.records if r.name == channel.value]


@pytest.fixture
def info_logs(caplog):
    caplog.set_level(logging.INFO, logger="sqlspy")
    return caplog


@pytest.fixture
def stepping_instrumentation(fake_resolver):
    """Instrumentation whose clock advances 5 msec per reading."""
    built: list[Instrumentation] = []

    def factory(**overrides) -> Instrumentation:
        clock = itertools.count(0, 5 * NANOS_PER_MSEC)
        instrumentation = Instrumentation(
            settings=SpySettings(**overrides),
            resolver=fake_resolver,
            recorder=TimingRecorder(clock=lambda: next(clock)),
        )
        built.append(instrumentation)
        return instrumentation

    yield factory
    for instrumentation in built:
        instrumentation.shutdown()


class TestConnectionSpy:
    def test_open_and_close_are_logged_once(self, make_instrumentation, info_logs):
        instrumentation = make_instrumentation()
        conn = instrumentation.connect(sqlite3.connect(":memory:"))

        assert isinstance(conn, ConnectionSpy)
        assert conn.connection_id == 1
        assert len(instrumentation.registry) == 1

        conn.close()
        conn.close()

        assert messages(info_logs, Channel.CONNECTION) == [
            "1. Connection opened",
            "1. Connection closed",
        ]
        assert len(instrumentation.registry) == 0

    def test_connection_ids_increase(self, make_instrumentation, info_logs):
        instrumentation = make_instrumentation()
        first = instrumentation.connect(sqlite3.connect(":memory:"))
        second = instrumentation.connect(sqlite3.connect(":memory:"))

        assert (first.connection_id, second.connection_id) == (1, 2)
        first.close()
        second.close()

    def test_debug_connection_channel_dumps_registry(
        self, make_instrumentation, caplog
    ):
        caplog.set_level(logging.DEBUG, logger="sqlspy")
        instrumentation = make_instrumentation()
        conn = instrumentation.connect(sqlite3.connect(":memory:"))
        conn.close()

        logged = messages(caplog, Channel.CONNECTION)
        assert logged[0] == f"1. Connection opened {CALL_SITE}"
        assert "1" in logged[1]
        assert logged[2] == f"1. Connection closed {CALL_SITE}"

    def test_commit_and_rollback_are_audited(self, make_instrumentation, info_logs):
        conn = make_instrumentation().connect(sqlite3.connect(":memory:"))
        conn.commit()
        conn.rollback()
        conn.close()

        audit = messages(info_logs, Channel.AUDIT)
        assert "1. Connection.commit() returned" in audit
        assert "1. Connection.rollback() returned" in audit
        assert "1. Connection.close() returned" in audit

    def test_attributes_are_forwarded(self, make_instrumentation, info_logs):
        real = sqlite3.connect(":memory:")
        conn = make_instrumentation().connect(real)

        conn.row_factory = sqlite3.Row
        assert real.row_factory is sqlite3.Row
        assert conn.in_transaction is False
        assert conn.real_connection is real
        conn.close()

    def test_context_manager_delegates_to_driver(
        self, make_instrumentation, info_logs
    ):
        conn = make_instrumentation().connect(sqlite3.connect(":memory:"))
        with conn as entered:
            assert entered is conn
            conn.cursor().execute("create table t (x integer)")

        # sqlite3 commits on exit but leaves the connection open
        assert conn.cursor().execute("select count(*) from t").fetchone() == (0,)
        conn.close()

    def test_wrapping_twice_returns_the_same_spy(
        self, make_instrumentation, info_logs
    ):
        instrumentation = make_instrumentation()
        conn = instrumentation.connect(sqlite3.connect(":memory:"))

        assert instrumentation.connect(conn) is conn
        conn.close()

    def test_disabled_channels_pass_the_connection_through(
        self, make_instrumentation, caplog
    ):
        caplog.set_level(logging.CRITICAL, logger="sqlspy")
        instrumentation = make_instrumentation()
        real = sqlite3.connect(":memory:")

        assert instrumentation.connect(real) is real
        assert len(instrumentation.registry) == 0
        real.close()

    def test_wrap_connect(self, make_instrumentation, info_logs):
        connect = make_instrumentation().wrap_connect(sqlite3.connect)
        conn = connect(":memory:")

        assert isinstance(conn, ConnectionSpy)
        assert connect.__name__ == sqlite3.connect.__name__
        conn.close()

    def test_connect_after_shutdown_raises(self, make_instrumentation, info_logs):
        instrumentation = make_instrumentation()
        conn = instrumentation.connect(sqlite3.connect(":memory:"))

        remaining = instrumentation.shutdown()

        assert remaining.ids == (1,)
        with pytest.raises(RegistryError):
            instrumentation.connect(sqlite3.connect(":memory:"))
        conn.real_connection.close()


class TestCursorSpy:
    @pytest.fixture
    def conn(self, make_instrumentation, info_logs):
        connection = make_instrumentation().connect(sqlite3.connect(":memory:"))
        yield connection
        connection.close()

    def test_cursor_is_wrapped(self, conn, info_logs):
        cur = conn.cursor()

        assert isinstance(cur, CursorSpy)
        assert cur.connection is conn
        assert "1. Connection.cursor() returned Cursor" in messages(
            info_logs, Channel.AUDIT
        )

    def test_parameters_are_substituted(self, conn, info_logs):
        cur = conn.cursor()
        result = cur.execute("select ?, ?", (42, "O'Brien"))

        assert result is cur
        assert cur.fetchone() == (42, "O'Brien")
        assert messages(info_logs, Channel.SQLONLY) == ["select 42, 'O''Brien'"]
        assert "1. PreparedStatement.execute() returned CursorSpy" in messages(
            info_logs, Channel.AUDIT
        )

    def test_statement_without_parameters(self, conn, info_logs):
        conn.cursor().execute("create table t (x integer)")

        assert messages(info_logs, Channel.SQLONLY) == ["create table t (x integer)"]
        assert (
            "1. Statement.execute(create table t (x integer)) returned CursorSpy"
            in messages(info_logs, Channel.AUDIT)
        )

    def test_statement_warning(self, make_instrumentation, info_logs):
        conn = make_instrumentation(statement_warn=True).connect(
            sqlite3.connect(":memory:")
        )
        cur = conn.cursor()
        cur.execute("select 1")
        cur.execute("select ?", (1,))
        conn.close()

        assert messages(info_logs, Channel.SQLONLY) == [
            "{WARNING: Statement used to run SQL} select 1",
            "select 1",
        ]

    def test_hidden_parameters_log_the_template(
        self, make_instrumentation, info_logs
    ):
        conn = make_instrumentation(show_params=False).connect(
            sqlite3.connect(":memory:")
        )
        conn.cursor().execute("select ?", (1,))
        conn.close()

        assert messages(info_logs, Channel.SQLONLY) == ["select ?"]

    def test_named_parameters_log_the_template(self, conn, info_logs):
        cur = conn.cursor()
        cur.execute("select :value", {"value": 7})

        assert cur.fetchone() == (7,)
        assert messages(info_logs, Channel.SQLONLY) == ["select :value"]

    def test_filtered_statement_types_are_not_logged(
        self, make_instrumentation, info_logs
    ):
        conn = make_instrumentation(dump_sql_select=False).connect(
            sqlite3.connect(":memory:")
        )
        cur = conn.cursor()
        cur.execute("create table t (x integer)")
        cur.execute("select * from t")
        conn.close()

        assert messages(info_logs, Channel.SQLONLY) == ["create table t (x integer)"]
        timing = messages(info_logs, Channel.SQLTIMING)
        assert len(timing) == 1
        assert timing[0].startswith("create table t (x integer) {executed in ")

    def test_executemany_logs_a_batch(self, conn, info_logs):
        cur = conn.cursor()
        cur.execute("create table t (x integer)")
        info_logs.clear()

        cur.executemany("insert into t values (?)", [(1,), (2,)])

        assert messages(info_logs, Channel.SQLONLY) == [
            "batching 2 statements:\n"
            "1:  insert into t values (1)\n"
            "2:  insert into t values (2)"
        ]
        assert cur.execute("select count(*) from t").fetchone() == (2,)

    def test_fetches_go_to_the_resultset_channel(self, conn, info_logs):
        cur = conn.cursor()
        cur.execute("select 1 union all select 2")
        info_logs.clear()

        assert cur.fetchall() == [(1,), (2,)]
        cur.execute("select 3")
        assert cur.fetchone() == (3,)

        resultset = messages(info_logs, Channel.RESULTSET)
        assert resultset == [
            "1. ResultSet.fetchall() returned 2 rows",
            "1. ResultSet.fetchone() returned (3,)",
        ]
        assert not any("ResultSet" in m for m in messages(info_logs, Channel.AUDIT))

    def test_iteration(self, conn, info_logs):
        cur = conn.cursor()
        cur.execute("select 1 union all select 2")

        assert list(cur) == [(1,), (2,)]
        assert messages(info_logs, Channel.RESULTSET)[-1] == (
            "1. ResultSet.fetchone() returned"
        )

    def test_connection_shortcuts_are_logged(self, conn, info_logs):
        conn.execute("create table t (x integer)")
        conn.executemany("insert into t values (?)", [(1,), (2,)])
        conn.executescript("insert into t values (3); insert into t values (4);")
        cur = conn.execute("select count(*) from t where x > ?", (0,))

        assert isinstance(cur, CursorSpy)
        assert cur.fetchone() == (4,)
        assert messages(info_logs, Channel.SQLONLY) == [
            "create table t (x integer)",
            "batching 2 statements:\n"
            "1:  insert into t values (1)\n"
            "2:  insert into t values (2)",
            "insert into t values (3); insert into t values (4);",
            "select count(*) from t where x > 0",
        ]
        assert "1. Statement.executescript() returned CursorSpy" in messages(
            info_logs, Channel.AUDIT
        )

    def test_description_is_forwarded(self, conn, info_logs):
        cur = conn.cursor()
        cur.execute("select 1 as answer")

        assert cur.description[0][0] == "answer"
        cur.close()
        assert "1. Statement.close() returned" in messages(info_logs, Channel.AUDIT)


class TestTiming:
    def test_timing_line(self, stepping_instrumentation, info_logs):
        conn = stepping_instrumentation().connect(sqlite3.connect(":memory:"))
        conn.cursor().execute("select 1")
        conn.close()

        assert messages(info_logs, Channel.SQLTIMING) == [
            "select 1 {executed in 5 msec}"
        ]

    def test_nanosecond_unit(self, stepping_instrumentation, info_logs):
        conn = stepping_instrumentation(timing_unit="nanosec").connect(
            sqlite3.connect(":memory:")
        )
        conn.cursor().execute("select 1")
        conn.close()

        assert messages(info_logs, Channel.SQLTIMING) == [
            "select 1 {executed in 5000000 nanoSec}"
        ]

    def test_warn_threshold_escalates(self, stepping_instrumentation, info_logs):
        conn = stepping_instrumentation(sqltiming_warn_threshold=5).connect(
            sqlite3.connect(":memory:")
        )
        conn.cursor().execute("select 1")
        conn.close()

        (record,) = records(info_logs, Channel.SQLTIMING)
        assert record.levelno == logging.WARNING
        assert record.getMessage() == (
            f"{CALL_SITE}\n1. select 1 {{executed in 5 msec}}"
        )

    def test_error_threshold_wins(self, stepping_instrumentation, info_logs):
        conn = stepping_instrumentation(
            sqltiming_warn_threshold=1, sqltiming_error_threshold=5
        ).connect(sqlite3.connect(":memory:"))
        conn.cursor().execute("select 1")
        conn.close()

        (record,) = records(info_logs, Channel.SQLTIMING)
        assert record.levelno == logging.ERROR


class TestFailures:
    def test_failed_sql_is_reported_and_reraised(
        self, stepping_instrumentation, info_logs
    ):
        conn = stepping_instrumentation().connect(sqlite3.connect(":memory:"))
        cur = conn.cursor()

        with pytest.raises(sqlite3.OperationalError) as excinfo:
            cur.execute("select * from missing")
        conn.close()

        header = "1. Statement.execute(select * from missing)"
        (audit,) = [
            r for r in records(info_logs, Channel.AUDIT) if r.levelno == logging.ERROR
        ]
        assert audit.getMessage() == f"{header} select * from missing"
        assert audit.exc_info[1] is excinfo.value

        (sqlonly,) = records(info_logs, Channel.SQLONLY)[1:]
        assert sqlonly.levelno == logging.ERROR
        assert sqlonly.getMessage() == f"{header} select * from missing"

        (timing,) = records(info_logs, Channel.SQLTIMING)
        assert timing.levelno == logging.ERROR
        assert timing.getMessage() == (
            f"{header} FAILED! select * from missing {{FAILED after 5 msec}}"
        )

    def test_failed_method_without_sql(self, make_instrumentation, info_logs):
        conn = make_instrumentation().connect(sqlite3.connect(":memory:"))
        cur = conn.cursor()
        cur.close()

        with pytest.raises(sqlite3.ProgrammingError):
            cur.fetchall()
        conn.close()

        errors = [
            r.getMessage()
            for r in records(info_logs, Channel.AUDIT)
            if r.levelno == logging.ERROR
        ]
        assert errors == ["1. ResultSet.fetchall()"]


class TestSetupChannel:
    def test_queued_messages_flush_on_construction(
        self, make_instrumentation, caplog
    ):
        caplog.set_level(logging.DEBUG, logger="sqlspy")
        setup_log.add(QUEUED)

        make_instrumentation()

        assert messages(caplog, Channel.SETUP) == [QUEUED]
        assert setup_log.pending == ()

    def test_formatting_failures_are_diagnosed(self, make_instrumentation, caplog):
        class Unprintable:
            def __str__(self) -> str:
                raise RuntimeError("no text")

        caplog.set_level(logging.INFO, logger="sqlspy")
        instrumentation = make_instrumentation()

        text = instrumentation.formatter.format(Unprintable())

        assert "Unprintable object" in text
        (record,) = records(caplog, Channel.SETUP)
        assert record.levelno == logging.WARNING
        assert record.getMessage().startswith("FORMATTING_ERROR: could not format")

    def test_shutting_down_one_instrumentation_keeps_another_live(
        self, make_instrumentation, caplog
    ):
        caplog.set_level(logging.DEBUG, logger="sqlspy")
        first = make_instrumentation()
        make_instrumentation()

        first.shutdown()
        setup_log.add("late setup message")

        assert "late setup message" in messages(caplog, Channel.SETUP)
        assert setup_log.pending == ()


class TestProcessWideInstrumentation:
    def test_spy_uses_one_shared_instrumentation(self, default_instrumentation):
        first = runtime.get_instrumentation()

        assert runtime.get_instrumentation() is first
        conn = runtime.spy(sqlite3.connect(":memory:"))
        assert isinstance(conn, ConnectionSpy)
        conn.close()

    def test_shutdown_resets(self, default_instrumentation):
        first = runtime.get_instrumentation()
        runtime.shutdown()

        assert first.registry.is_shut_down
        assert runtime.get_instrumentation() is not first

    def test_invalid_logging_environment(self, default_instrumentation, monkeypatch):
        monkeypatch.setenv("SQLSPY_LOGGING_LEVEL", "LOUD")

        with pytest.raises(ConfigValidationError):
            runtime.spy(sqlite3.connect(":memory:"))
