"""
Driver selection and connection pooling for the configured backend.

SQLite uses the stdlib sqlite3; pymysql, psycopg and pymssql come from pip. A connection URL is enough.
"""

from .drivers import (
    Driver,
    MssqlDriver,
    MySQLDriver,
    PostgresDriver,
    SqliteDriver,
    select_driver,
)
from .health import health_check
from .manager import PoolManager

__all__ = [
    "Driver",
    "SqliteDriver",
    "MySQLDriver",
    "PostgresDriver",
    "MssqlDriver",
    "select_driver",
    "health_check",
    "PoolManager",
]
