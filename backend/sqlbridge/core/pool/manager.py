"""
Bounded connection pool for one backend.

At most max_open_connections connections exist at once (idle + checked out).
acquire() blocks the calling thread until a connection is free or the timeout
elapses; it never retries a failed connect. Includes max-age eviction, ping of
long-idle connections on checkout and a liveness check on connections returned
after an error.
"""

import logging
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, NamedTuple

from sqlbridge.core.errors import AcquireCancelledError, ConnectFailedError, PoolExhaustedError
from sqlbridge.core.pool.drivers import Driver

_log = logging.getLogger(__name__)

_DEFAULT_MAX_AGE_SEC = 600  # 10 minutes
_PING_IDLE_THRESHOLD = 30.0  # only ping connections idle longer than this (seconds)
_CANCEL_POLL_SEC = 0.05  # wait slice while a cancel token is attached


class _PoolEntry(NamedTuple):
    conn: Any
    created_at: float  # time.monotonic() when the connection was opened
    last_used: float   # time.monotonic() when last returned to pool


class PoolManager:
    """Connection pool bound to one driver and connection string."""

    def __init__(
        self,
        driver: Driver,
        url: str,
        *,
        max_open_connections: int = 10,
        timeout: float | None = 30.0,
        connect_timeout: int = 10,
        max_age: float = _DEFAULT_MAX_AGE_SEC,
        ping_idle_after: float = _PING_IDLE_THRESHOLD,
    ) -> None:
        if max_open_connections < 1:
            raise ValueError("max_open_connections must be >= 1")
        self._driver = driver
        self._url = url
        self._connect_timeout = connect_timeout
        self._max_age = float(max_age)
        self._ping_idle_after = float(ping_idle_after)

        self._cond = threading.Condition(threading.Lock())
        self._idle: list[_PoolEntry] = []
        # id(conn) -> created_at for connections currently checked out
        self._checked_out: dict[int, float] = {}
        self._open = 0
        self._waiting = 0
        self._max_open = max_open_connections
        self._timeout = timeout

    @property
    def driver(self) -> Driver:
        return self._driver

    def configure(self, max_open_connections: int, timeout: float | None) -> None:
        """Change pool limits. Applies to later acquisitions; checked-out connections are untouched."""
        if max_open_connections < 1:
            raise ValueError("max_open_connections must be >= 1")
        surplus: list[_PoolEntry] = []
        with self._cond:
            self._max_open = max_open_connections
            self._timeout = timeout
            while self._idle and self._open > self._max_open:
                surplus.append(self._idle.pop(0))
                self._open -= 1
            self._cond.notify_all()
        for entry in surplus:
            self._close_quiet(entry.conn)
        _log.debug("Pool configured: max_open=%s timeout=%s", max_open_connections, timeout)

    def acquire(self, cancel: threading.Event | None = None) -> Any:
        """
        Check out a connection, opening a new one if the pool is below its limit.

        Raises PoolExhaustedError when the timeout elapses with every connection
        in use, ConnectFailedError when opening a new connection fails.
        If *cancel* is set while waiting, or by the time a connection is
        obtained, the connection goes back to the pool and AcquireCancelledError
        is raised.
        """
        with self._cond:
            timeout = self._timeout
            deadline = None if timeout is None else time.monotonic() + timeout
            self._waiting += 1
            try:
                while True:
                    if cancel is not None and cancel.is_set():
                        raise AcquireCancelledError("Request cancelled while waiting for a connection")
                    if self._idle:
                        entry = self._idle.pop()
                        break
                    if self._open < self._max_open:
                        # reserve the slot, connect outside the lock
                        self._open += 1
                        entry = None
                        break
                    remaining = None if deadline is None else deadline - time.monotonic()
                    if remaining is not None and remaining <= 0:
                        _log.warning(
                            "Connection pool exhausted (max_open=%s, timeout=%ss)",
                            self._max_open,
                            timeout,
                        )
                        raise PoolExhaustedError(
                            f"No connection available within {timeout}s "
                            f"(max_open_connections={self._max_open})"
                        )
                    if cancel is not None:
                        remaining = _CANCEL_POLL_SEC if remaining is None else min(
                            remaining, _CANCEL_POLL_SEC
                        )
                    self._cond.wait(remaining)
            finally:
                self._waiting -= 1

        conn = None
        if entry is not None:
            conn = self._validate(entry)
            if conn is not None:
                self._mark_checked_out(conn, entry.created_at)
        if conn is None:
            conn = self._open_new()
        if cancel is not None and cancel.is_set():
            self.release(conn)
            raise AcquireCancelledError("Request cancelled before the statement was sent")
        return conn

    def wake_waiters(self) -> None:
        """Wake every thread blocked in acquire() so it re-checks its cancel token."""
        with self._cond:
            self._cond.notify_all()

    def release(self, conn: Any, *, errored: bool = False) -> None:
        """
        Return a checked-out connection. The pool decides whether to keep it:
        a connection that errored is pinged first, and expired or surplus
        connections are closed.
        """
        now = time.monotonic()
        with self._cond:
            created_at = self._checked_out.pop(id(conn), None)
        if created_at is None:
            _log.warning("Releasing a connection this pool did not hand out; closing it")
            self._close_quiet(conn)
            return

        keep = True
        if errored and not self._driver.is_alive(conn):
            _log.info("Discarding broken connection after failed statement")
            keep = False
        elif (now - created_at) > self._max_age:
            keep = False

        with self._cond:
            if keep and self._open <= self._max_open:
                self._idle.append(_PoolEntry(conn=conn, created_at=created_at, last_used=now))
                conn = None
            else:
                self._open -= 1
            self._cond.notify()
        if conn is not None:
            self._close_quiet(conn)

    @contextmanager
    def connection(self, cancel: threading.Event | None = None) -> Iterator[Any]:
        """acquire() ... release(); the connection is returned on every exit path."""
        conn = self.acquire(cancel)
        errored = False
        try:
            yield conn
        except BaseException:
            errored = True
            raise
        finally:
            self.release(conn, errored=errored)

    def dispose(self) -> None:
        """Close idle connections. Checked-out connections are closed when released."""
        with self._cond:
            entries = self._idle
            self._idle = []
            self._open -= len(entries)
            self._cond.notify_all()
        for e in entries:
            self._close_quiet(e.conn)

    def stats(self) -> dict[str, Any]:
        """Point-in-time pool statistics."""
        with self._cond:
            idle = len(self._idle)
            return {
                "max_open_connections": self._max_open,
                "open_connections": self._open,
                "in_use": len(self._checked_out),
                "idle": idle,
                "waiting": self._waiting,
                "timeout_seconds": self._timeout,
            }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _open_new(self) -> Any:
        """Open a connection for a slot already reserved in self._open."""
        try:
            conn = self._driver.connect(self._url, connect_timeout=self._connect_timeout)
        except Exception as e:
            with self._cond:
                self._open -= 1
                self._cond.notify()
            _log.error("Failed to open %s connection: %s", self._driver.family.value, e, exc_info=True)
            raise ConnectFailedError(f"Failed to get database connection: {e}") from e
        self._mark_checked_out(conn, time.monotonic())
        return conn

    def _validate(self, entry: _PoolEntry) -> Any | None:
        """Return entry.conn if still usable; otherwise close it and keep its slot reserved."""
        now = time.monotonic()
        stale = (now - entry.created_at) > self._max_age
        if not stale and (now - entry.last_used) > self._ping_idle_after:
            stale = not self._driver.is_alive(entry.conn)
        if stale:
            self._close_quiet(entry.conn)
            return None
        return entry.conn

    def _mark_checked_out(self, conn: Any, created_at: float) -> None:
        with self._cond:
            self._checked_out[id(conn)] = created_at

    @staticmethod
    def _close_quiet(conn: Any) -> None:
        try:
            conn.close()
        except Exception:
            pass
