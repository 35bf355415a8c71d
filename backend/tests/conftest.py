"""Shared fixtures: a file-backed SQLite database and a DatabaseManager over it."""

import sqlite3
from collections.abc import Iterator
from pathlib import Path

import pytest

from sqlbridge.core.database import DatabaseManager


@pytest.fixture
def sqlite_path(tmp_path: Path) -> Path:
    path = tmp_path / "test.db"
    conn = sqlite3.connect(path)
    try:
        conn.executescript(
            """
            CREATE TABLE t (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT, score REAL);
            INSERT INTO t (name, score) VALUES ('alice', 1.5), ('bob', 2.0);
            """
        )
        conn.commit()
    finally:
        conn.close()
    return path


@pytest.fixture
def sqlite_url(sqlite_path: Path) -> str:
    return f"sqlite://{sqlite_path}"


@pytest.fixture
def db_manager(sqlite_url: str) -> Iterator[DatabaseManager]:
    db = DatabaseManager.from_url(sqlite_url, max_open_connections=2, timeout=1.0)
    yield db
    db.close()
