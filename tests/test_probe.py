"""Tests for the group-by capability probe and PostgreSQL setup."""

from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError

from sphinxgen.probe import (
    SQL_MODE_QUERY,
    SqlAlchemyConnection,
    create_array_accum,
    use_group_by_shortcut,
)
from tests.fakes import FakeConnection


def test_shortcut_allowed_without_strict_mode() -> None:
    connection = FakeConnection(rows=[{"a": "OTHER SETTINGS"}])

    assert use_group_by_shortcut(connection) is True
    assert connection.queries == [SQL_MODE_QUERY]


def test_shortcut_allowed_for_null_mode() -> None:
    assert use_group_by_shortcut(FakeConnection(rows=[{"a": None}])) is True


def test_shortcut_disabled_by_strict_mode() -> None:
    connection = FakeConnection(rows=[{"a": "OTHER SETTINGS,ONLY_FULL_GROUP_BY,blah"}])

    assert use_group_by_shortcut(connection) is False


def test_shortcut_disabled_by_strict_mode_in_any_value() -> None:
    connection = FakeConnection(
        rows=[{"a": "OTHER SETTINGS", "b": None}, {"a": None, "b": "ONLY_FULL_GROUP_BY"}]
    )

    assert use_group_by_shortcut(connection) is False


def test_probe_is_not_cached() -> None:
    connection = FakeConnection(rows=[{"a": "OTHER SETTINGS"}])
    assert use_group_by_shortcut(connection) is True

    connection.rows = [{"a": "ONLY_FULL_GROUP_BY"}]

    assert use_group_by_shortcut(connection) is False
    assert len(connection.queries) == 2


def test_probe_errors_propagate() -> None:
    class _Broken(FakeConnection):
        def query(self, sql: str):
            raise RuntimeError("connection lost")

    with pytest.raises(RuntimeError):
        use_group_by_shortcut(_Broken())


def test_sqlalchemy_connection_runs_queries() -> None:
    connection = SqlAlchemyConnection(create_engine("sqlite://"))

    rows = connection.query("SELECT 'STRICT_TRANS_TABLES' AS a, NULL AS b")

    assert rows == [{"a": "STRICT_TRANS_TABLES", "b": None}]


def test_sqlalchemy_connection_executes_statements(tmp_path) -> None:
    connection = SqlAlchemyConnection.from_url(f"sqlite:///{tmp_path / 'app.db'}")

    connection.execute("CREATE TABLE people (id INTEGER PRIMARY KEY, delta BOOLEAN)")
    connection.execute("INSERT INTO people (id, delta) VALUES (1, 1)")

    assert connection.query("SELECT id, delta FROM people") == [{"id": 1, "delta": 1}]


def test_sqlalchemy_failed_statement_rolls_back_alone(tmp_path) -> None:
    connection = SqlAlchemyConnection.from_url(f"sqlite:///{tmp_path / 'app.db'}")
    connection.execute("CREATE TABLE people (id INTEGER PRIMARY KEY)")

    with pytest.raises(OperationalError, match="already exists"):
        connection.execute("CREATE TABLE people (id INTEGER PRIMARY KEY)")

    connection.execute("INSERT INTO people (id) VALUES (1)")
    assert connection.query("SELECT id FROM people") == [{"id": 1}]


def test_create_array_accum_executes_aggregate() -> None:
    connection = FakeConnection()

    create_array_accum(connection)

    assert connection.executed[0].startswith("CREATE AGGREGATE array_accum (anyelement)")


def test_create_array_accum_tolerates_existing_aggregate() -> None:
    error = RuntimeError('function "array_accum" already exists with same argument types')

    create_array_accum(FakeConnection(execute_error=error))


def test_create_array_accum_propagates_other_errors() -> None:
    with pytest.raises(RuntimeError):
        create_array_accum(FakeConnection(execute_error=RuntimeError("permission denied")))
