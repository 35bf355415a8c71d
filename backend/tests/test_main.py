"""Tests for sqlbridge.main: settings resolution, logging setup and startup failures."""

import logging
from unittest.mock import patch

import pytest

from sqlbridge import main as main_mod
from sqlbridge.core.config import Settings
from sqlbridge.core.database import DatabaseManager
from sqlbridge.core.errors import UnsupportedBackendError


def _base(**overrides) -> Settings:
    values = {"DATABASE_URL": None, "MAX_CONNECTIONS": 10, "TIMEOUT_SECONDS": 30, "LOG_LEVEL": "info"}
    values.update(overrides)
    return Settings.model_validate(values)


def test_defaults() -> None:
    cfg = _base()
    assert cfg.MAX_CONNECTIONS == 10
    assert cfg.TIMEOUT_SECONDS == 30
    assert cfg.LOG_LEVEL == "info"


def test_cli_overrides_environment() -> None:
    cfg = main_mod.resolve_settings(
        ["-d", "sqlite://a.db", "--max-connections", "3", "--timeout", "5", "--log-level", "debug"],
        base=_base(DATABASE_URL="mysql://env/db"),
    )
    assert cfg.DATABASE_URL == "sqlite://a.db"
    assert cfg.MAX_CONNECTIONS == 3
    assert cfg.TIMEOUT_SECONDS == 5
    assert cfg.LOG_LEVEL == "debug"


def test_environment_used_when_flag_missing() -> None:
    cfg = main_mod.resolve_settings([], base=_base(DATABASE_URL="mysql://env/db", MAX_CONNECTIONS=4))
    assert cfg.DATABASE_URL == "mysql://env/db"
    assert cfg.MAX_CONNECTIONS == 4


def test_missing_database_url_exits() -> None:
    with pytest.raises(SystemExit) as exc_info:
        main_mod.resolve_settings([], base=_base())
    assert exc_info.value.code == 2


def test_configure_logging_unknown_level_falls_back_to_info() -> None:
    main_mod.configure_logging("verbose")
    assert logging.getLogger().level == logging.INFO
    main_mod.configure_logging("debug")
    assert logging.getLogger().level == logging.DEBUG


def test_create_manager_sqlite(sqlite_url: str) -> None:
    db = main_mod.create_manager(_base(DATABASE_URL=sqlite_url, MAX_CONNECTIONS=2, TIMEOUT_SECONDS=0))
    try:
        status = db.status()
        assert status["max_open_connections"] == 2
        assert status["timeout_seconds"] is None
        assert status["idle"] == 1
    finally:
        db.close()


def test_create_manager_configures_pool_before_ping(sqlite_url: str) -> None:
    """Pool limits come from settings and are applied before the startup ping."""
    calls: list[str] = []

    def configure(db: DatabaseManager, max_open: int, timeout: float | None) -> None:
        calls.append("configure")
        db.pool.configure(max_open, timeout)

    with patch.object(
        DatabaseManager, "configure_pool", autospec=True, side_effect=configure
    ) as mock_configure, patch.object(
        DatabaseManager, "test_connection", autospec=True, side_effect=lambda db: calls.append("ping")
    ):
        db = main_mod.create_manager(_base(DATABASE_URL=sqlite_url, MAX_CONNECTIONS=3, TIMEOUT_SECONDS=5))
    try:
        mock_configure.assert_called_once_with(db, 3, 5.0)
        assert calls == ["configure", "ping"]
        assert db.status()["max_open_connections"] == 3
    finally:
        db.close()


def test_create_manager_unsupported_url() -> None:
    with pytest.raises(UnsupportedBackendError):
        main_mod.create_manager(_base(DATABASE_URL="oracle://x"))


def test_main_returns_nonzero_on_unsupported_url() -> None:
    with patch.object(main_mod, "serve") as mock_serve:
        assert main_mod.main(["-d", "oracle://scott:tiger@h/db"]) == 1
    mock_serve.assert_not_called()


def test_main_returns_nonzero_when_database_unreachable(tmp_path) -> None:
    url = f"sqlite://{tmp_path / 'missing-dir' / 'x.db'}"
    with patch.object(main_mod, "serve") as mock_serve:
        assert main_mod.main(["-d", url]) == 1
    mock_serve.assert_not_called()


def test_main_serves_after_successful_ping(sqlite_url: str) -> None:
    async def fake_serve(dispatcher, name="sqlbridge") -> None:
        assert dispatcher.list_operations()

    with patch.object(main_mod, "serve", side_effect=fake_serve) as mock_serve:
        assert main_mod.main(["-d", sqlite_url, "--max-connections", "1"]) == 0
    mock_serve.assert_called_once()
