"""Database capability checks and one-off setup statements."""

from __future__ import annotations

import logging
import textwrap
from typing import TYPE_CHECKING, Any, Mapping, Protocol

from sqlalchemy import create_engine, text

if TYPE_CHECKING:
    from sqlalchemy import Engine

LOGGER = logging.getLogger(__name__)

SQL_MODE_QUERY = "SELECT @@global.sql_mode, @@session.sql_mode"
STRICT_GROUP_BY_MARKER = "ONLY_FULL_GROUP_BY"
ARRAY_ACCUM_SQL = textwrap.dedent(
    """\
    CREATE AGGREGATE array_accum (anyelement)
    (
        sfunc = array_append,
        stype = anyarray,
        initcond = '{}'
    )"""
)


class DatabaseConnection(Protocol):
    """Minimal data-access interface used by the probe and setup steps."""

    def query(self, sql: str) -> list[Mapping[str, Any]]: ...

    def execute(self, sql: str) -> None: ...


class SqlAlchemyConnection:
    """Adapt a SQLAlchemy engine to :class:`DatabaseConnection`."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @classmethod
    def from_url(cls, url: str) -> "SqlAlchemyConnection":
        return cls(create_engine(url, pool_pre_ping=True))

    def query(self, sql: str) -> list[Mapping[str, Any]]:
        with self.engine.connect() as conn:
            return [dict(row) for row in conn.execute(text(sql)).mappings()]

    def execute(self, sql: str) -> None:
        """Run ``sql`` in its own transaction, rolled back if it fails."""
        with self.engine.begin() as conn:
            conn.execute(text(sql))


def use_group_by_shortcut(connection: DatabaseConnection) -> bool:
    """Return whether aggregate queries may group by primary key alone.

    The SQL mode is queried on every call. Any value containing
    ``ONLY_FULL_GROUP_BY`` disables the shortcut; null values do not.

    Args:
        connection: Connection to the MySQL-compatible database.

    Returns:
        bool: ``False`` if strict grouping is active, otherwise ``True``.
    """

    rows = connection.query(SQL_MODE_QUERY)
    for row in rows:
        for value in row.values():
            if value is not None and STRICT_GROUP_BY_MARKER in str(value):
                return False
    return True


def create_array_accum(connection: DatabaseConnection) -> None:
    """Create the PostgreSQL ``array_accum`` aggregate used by aggregated fields.

    The statement runs in its own transaction through ``connection.execute``.
    An aggregate that already exists is left alone; other errors propagate.
    """

    try:
        connection.execute(ARRAY_ACCUM_SQL)
    except Exception as exc:
        if "already exists" not in str(exc):
            raise
        LOGGER.debug("array_accum aggregate already present.")
    else:
        LOGGER.info("Created array_accum aggregate.")


__all__ = [
    "ARRAY_ACCUM_SQL",
    "DatabaseConnection",
    "SQL_MODE_QUERY",
    "STRICT_GROUP_BY_MARKER",
    "SqlAlchemyConnection",
    "create_array_accum",
    "use_group_by_shortcut",
]
