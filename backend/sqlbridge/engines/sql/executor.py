"""
Run one SQL statement against a pooled connection.

- query: returns rows as ordered {column: TypedValue} dicts
- execute: returns ExecResult(rows_affected, last_insert_id)
- ping: SELECT 1 liveness check

SQL and parameters are forwarded verbatim; placeholders follow the driver's
paramstyle (? for SQLite, %s for MySQL, PostgreSQL and SQL Server).
"""

import logging
import threading
from typing import Any, NamedTuple

from sqlbridge.core.errors import DatabaseAccessError, QueryError
from sqlbridge.core.pool import PoolManager, health_check
from sqlbridge.core.values import TypedValue, from_driver, to_driver

_log = logging.getLogger(__name__)

Row = dict[str, TypedValue]


class ExecResult(NamedTuple):
    rows_affected: int
    last_insert_id: int | None


def cursor_to_rows(cursor: Any) -> list[Row]:
    """Convert cursor result to a list of rows. Works for every driver."""
    desc = cursor.description
    if not desc:
        return []
    names = [d[0] for d in desc]
    return [
        {name: from_driver(cell) for name, cell in zip(names, row, strict=True)}
        for row in cursor.fetchall()
    ]


def _run(conn: Any, sql: str, params: list[TypedValue]) -> Any:
    """Execute and return the open cursor; caller closes it."""
    cur = conn.cursor()
    try:
        if params:
            cur.execute(sql, tuple(to_driver(p) for p in params))
        else:
            cur.execute(sql)
    except Exception:
        cur.close()
        raise
    return cur


class QueryExecutor:
    """Executes statements through a PoolManager. Safe to share between threads."""

    def __init__(self, pool: PoolManager) -> None:
        self._pool = pool

    @property
    def pool(self) -> PoolManager:
        return self._pool

    def query(
        self,
        sql: str,
        params: list[TypedValue] | None = None,
        cancel: threading.Event | None = None,
    ) -> list[Row]:
        """Run a statement and return its result rows (empty if it returns none)."""
        with self._pool.connection(cancel) as conn:
            try:
                cur = _run(conn, sql, params or [])
                try:
                    return cursor_to_rows(cur)
                finally:
                    cur.close()
            except Exception as e:
                _log.error("Query execution failed: %s. SQL: %s", e, sql, exc_info=True)
                raise QueryError(f"Query execution failed: {e}") from e

    def execute(
        self,
        sql: str,
        params: list[TypedValue] | None = None,
        cancel: threading.Event | None = None,
    ) -> ExecResult:
        """Run a modifying statement and return rows affected and the generated id, if any."""
        with self._pool.connection(cancel) as conn:
            try:
                cur = _run(conn, sql, params or [])
                try:
                    rowcount = cur.rowcount if cur.rowcount is not None else 0
                    return ExecResult(
                        rows_affected=max(rowcount, 0),
                        last_insert_id=self._pool.driver.last_insert_id(cur),
                    )
                finally:
                    cur.close()
            except Exception as e:
                _log.error("Modification failed: %s. SQL: %s", e, sql, exc_info=True)
                raise QueryError(f"Modification operation failed: {e}") from e

    def ping(self) -> None:
        """Raise DatabaseAccessError unless a pooled connection answers SELECT 1."""
        try:
            health_check(self._pool)
        except DatabaseAccessError:
            raise
        except Exception as e:
            raise QueryError(f"Database connection test failed: {e}") from e
