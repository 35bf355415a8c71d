"""Unit tests for core.pool.manager.PoolManager: limits, timeouts, recycling, stats."""

import threading
import time
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from sqlbridge.core.backend import BackendFamily
from sqlbridge.core.errors import AcquireCancelledError, ConnectFailedError, PoolExhaustedError
from sqlbridge.core.pool import PoolManager, SqliteDriver
from sqlbridge.core.pool.drivers import Driver


class FakeDriver(Driver):
    """Hands out MagicMock connections; liveness and connect failures are switchable."""

    family = BackendFamily.SQLITE

    def __init__(self) -> None:
        self.opened: list[MagicMock] = []
        self.alive = True
        self.fail_with: Exception | None = None

    def connect(self, url: str, *, connect_timeout: int) -> Any:
        if self.fail_with is not None:
            raise self.fail_with
        conn = MagicMock(name=f"conn{len(self.opened)}")
        self.opened.append(conn)
        return conn

    def is_alive(self, conn: Any) -> bool:
        return self.alive


def _pool(driver: Driver | None = None, **kwargs: Any) -> PoolManager:
    kwargs.setdefault("max_open_connections", 2)
    kwargs.setdefault("timeout", 1.0)
    return PoolManager(driver or FakeDriver(), "fake://", **kwargs)


def test_acquire_release_reuses_connection() -> None:
    driver = FakeDriver()
    pool = _pool(driver)
    conn1 = pool.acquire()
    assert pool.stats()["in_use"] == 1
    pool.release(conn1)
    conn2 = pool.acquire()
    assert conn2 is conn1
    pool.release(conn2)
    assert len(driver.opened) == 1
    assert pool.stats() == {
        "max_open_connections": 2,
        "open_connections": 1,
        "in_use": 0,
        "idle": 1,
        "waiting": 0,
        "timeout_seconds": 1.0,
    }


def test_in_use_returns_to_prior_value() -> None:
    pool = _pool(max_open_connections=3)
    held = pool.acquire()
    before = pool.stats()["in_use"]
    with pool.connection():
        assert pool.stats()["in_use"] == before + 1
    assert pool.stats()["in_use"] == before
    pool.release(held)


def test_exhausted_after_timeout_not_before() -> None:
    pool = _pool(max_open_connections=1, timeout=0.2)
    held = pool.acquire()
    start = time.monotonic()
    with pytest.raises(PoolExhaustedError):
        pool.acquire()
    elapsed = time.monotonic() - start
    assert 0.2 <= elapsed < 2.0
    pool.release(held)
    assert pool.stats()["waiting"] == 0


def test_waiter_gets_released_connection() -> None:
    pool = _pool(max_open_connections=1, timeout=5.0)
    held = pool.acquire()
    got: list[Any] = []
    t = threading.Thread(target=lambda: got.append(pool.acquire()))
    t.start()
    time.sleep(0.1)
    assert pool.stats()["waiting"] == 1
    pool.release(held)
    t.join(timeout=5)
    assert got == [held]
    pool.release(got[0])


def test_configure_raises_limit_for_waiters() -> None:
    driver = FakeDriver()
    pool = _pool(driver, max_open_connections=1, timeout=5.0)
    held = pool.acquire()
    got: list[Any] = []
    t = threading.Thread(target=lambda: got.append(pool.acquire()))
    t.start()
    time.sleep(0.1)
    pool.configure(2, 5.0)
    t.join(timeout=5)
    assert len(got) == 1 and got[0] is not held
    assert pool.stats()["in_use"] == 2
    pool.release(held)
    pool.release(got[0])


def test_configure_shrink_closes_surplus_on_release() -> None:
    pool = _pool(max_open_connections=2)
    c1, c2 = pool.acquire(), pool.acquire()
    pool.configure(1, None)
    pool.release(c1)
    c1.close.assert_called_once()
    pool.release(c2)
    c2.close.assert_not_called()
    assert pool.stats()["open_connections"] == 1
    assert pool.stats()["timeout_seconds"] is None


def test_configure_rejects_zero() -> None:
    with pytest.raises(ValueError):
        _pool().configure(0, 1.0)


def test_connect_failure_frees_slot() -> None:
    driver = FakeDriver()
    driver.fail_with = OSError("connection refused")
    pool = _pool(driver, max_open_connections=1)
    with pytest.raises(ConnectFailedError, match="connection refused"):
        pool.acquire()
    assert pool.stats()["open_connections"] == 0
    driver.fail_with = None
    conn = pool.acquire()
    pool.release(conn)


def test_errored_release_discards_dead_connection() -> None:
    driver = FakeDriver()
    pool = _pool(driver)
    conn = pool.acquire()
    driver.alive = False
    pool.release(conn, errored=True)
    conn.close.assert_called_once()
    assert pool.stats()["open_connections"] == 0


def test_errored_release_keeps_live_connection() -> None:
    pool = _pool()
    conn = pool.acquire()
    pool.release(conn, errored=True)
    conn.close.assert_not_called()
    assert pool.stats()["idle"] == 1


def test_context_manager_releases_on_exception() -> None:
    pool = _pool()
    with pytest.raises(RuntimeError):
        with pool.connection():
            raise RuntimeError("boom")
    assert pool.stats()["in_use"] == 0
    assert pool.stats()["idle"] == 1


def test_expired_connection_replaced_on_checkout() -> None:
    driver = FakeDriver()
    pool = _pool(driver, max_age=0.05)
    conn = pool.acquire()
    pool.release(conn)
    time.sleep(0.1)
    conn2 = pool.acquire()
    assert conn2 is not conn
    conn.close.assert_called()
    assert pool.stats()["open_connections"] == 1
    pool.release(conn2)


def test_idle_connection_pinged_before_reuse() -> None:
    driver = FakeDriver()
    pool = _pool(driver, ping_idle_after=0.0)
    conn = pool.acquire()
    pool.release(conn)
    driver.alive = False
    time.sleep(0.01)
    conn2 = pool.acquire()
    assert conn2 is not conn
    pool.release(conn2)


def test_release_foreign_connection_is_closed() -> None:
    pool = _pool()
    stranger = MagicMock()
    pool.release(stranger)
    stranger.close.assert_called_once()
    assert pool.stats()["open_connections"] == 0


def test_dispose_closes_idle() -> None:
    pool = _pool()
    conn = pool.acquire()
    pool.release(conn)
    pool.dispose()
    conn.close.assert_called_once()
    assert pool.stats()["open_connections"] == 0


def test_in_use_never_exceeds_limit_under_contention() -> None:
    pool = _pool(max_open_connections=3, timeout=None)
    peak = [0]
    lock = threading.Lock()

    def worker() -> None:
        for _ in range(20):
            with pool.connection():
                in_use = pool.stats()["in_use"]
                with lock:
                    peak[0] = max(peak[0], in_use)
                time.sleep(0.001)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    assert 1 <= peak[0] <= 3
    stats = pool.stats()
    assert stats["in_use"] == 0
    assert stats["open_connections"] <= 3

def test_cancel_while_waiting_abandons_acquire() -> None:
    pool = _pool(max_open_connections=1, timeout=None)
    held = pool.acquire()
    cancel = threading.Event()
    errors: list[Exception] = []

    def waiter() -> None:
        try:
            pool.acquire(cancel)
        except AcquireCancelledError as e:
            errors.append(e)

    t = threading.Thread(target=waiter)
    t.start()
    time.sleep(0.1)
    assert pool.stats()["waiting"] == 1
    cancel.set()
    pool.wake_waiters()
    t.join(timeout=5)
    assert not t.is_alive()
    assert len(errors) == 1
    assert pool.stats()["waiting"] == 0
    pool.release(held)
    assert pool.stats()["in_use"] == 0
    assert pool.stats()["open_connections"] == 1


def test_cancelled_token_never_opens_connection() -> None:
    driver = FakeDriver()
    pool = _pool(driver)
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(AcquireCancelledError):
        pool.acquire(cancel)
    assert driver.opened == []
    assert pool.stats()["open_connections"] == 0


def test_cancel_after_connect_returns_connection_to_pool() -> None:
    """Token set while the connection was being opened: it goes back idle, unused."""
    cancel = threading.Event()

    class CancellingDriver(FakeDriver):
        def connect(self, url: str, *, connect_timeout: int) -> Any:
            conn = super().connect(url, connect_timeout=connect_timeout)
            cancel.set()
            return conn

    driver = CancellingDriver()
    pool = _pool(driver)
    with pytest.raises(AcquireCancelledError):
        pool.acquire(cancel)
    assert pool.stats()["in_use"] == 0
    assert pool.stats()["idle"] == 1
    driver.opened[0].cursor.assert_not_called()



def test_pool_with_real_sqlite(sqlite_path: Path) -> None:
    pool = PoolManager(SqliteDriver(), f"sqlite://{sqlite_path}", max_open_connections=2, timeout=1.0)
    with pool.connection() as conn:
        assert conn.execute("SELECT count(*) FROM t").fetchone()[0] == 2
    pool.dispose()
