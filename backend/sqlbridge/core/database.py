"""
DatabaseManager: the one object that owns the pool for the configured database.

Built once at startup and passed to the tool dispatcher; nothing else holds
shared mutable state.
"""

import logging
import threading
from typing import Any

from sqlbridge.core.backend import BackendFamily, ConnectionDescriptor, mask_url
from sqlbridge.core.pool import PoolManager, select_driver
from sqlbridge.core.values import TypedValue
from sqlbridge.engines.sql import ExecResult, QueryExecutor, Row

_log = logging.getLogger(__name__)


class DatabaseManager:
    def __init__(
        self,
        descriptor: ConnectionDescriptor,
        *,
        max_open_connections: int = 10,
        timeout: float | None = 30.0,
        connect_timeout: int = 10,
        max_age: float = 600.0,
        ping_idle_after: float = 30.0,
    ) -> None:
        self.descriptor = descriptor
        self.pool = PoolManager(
            select_driver(descriptor.family),
            descriptor.adapted_url,
            max_open_connections=max_open_connections,
            timeout=timeout,
            connect_timeout=connect_timeout,
            max_age=max_age,
            ping_idle_after=ping_idle_after,
        )
        self.executor = QueryExecutor(self.pool)

    @classmethod
    def from_url(cls, url: str, **pool_options: Any) -> "DatabaseManager":
        """Classify and adapt *url*, then build the pool. Raises ConfigurationError on a bad URL."""
        _log.debug("Creating DatabaseManager with URL: %s", mask_url(url))
        descriptor = ConnectionDescriptor.from_url(url)
        _log.debug("Detected database type: %s", descriptor.family.value)
        if descriptor.adapted_url != url:
            _log.debug(
                "Connection URL converted from %r to %r",
                mask_url(url),
                mask_url(descriptor.adapted_url),
            )
        return cls(descriptor, **pool_options)

    @property
    def database_type(self) -> BackendFamily:
        return self.descriptor.family

    def configure_pool(self, max_open_connections: int, timeout: float | None) -> None:
        self.pool.configure(max_open_connections, timeout)

    def query(
        self,
        sql: str,
        params: list[TypedValue] | None = None,
        cancel: threading.Event | None = None,
    ) -> list[Row]:
        return self.executor.query(sql, params, cancel)

    def execute(
        self,
        sql: str,
        params: list[TypedValue] | None = None,
        cancel: threading.Event | None = None,
    ) -> ExecResult:
        return self.executor.execute(sql, params, cancel)

    def test_connection(self) -> None:
        self.executor.ping()

    def status(self) -> dict[str, Any]:
        """Pool statistics plus the backend family."""
        state = self.pool.stats()
        state["database_type"] = self.database_type.value
        return state

    def close(self) -> None:
        self.pool.dispose()
