"""
Startup liveness check for the configured database.
"""

import logging

from sqlbridge.core.errors import ConnectFailedError

from .manager import PoolManager

_log = logging.getLogger(__name__)


def health_check(pool: PoolManager) -> None:
    """
    Check out a connection and run SELECT 1. Raises DatabaseAccessError
    (ConnectFailedError / PoolExhaustedError) if the backend is unreachable.
    """
    with pool.connection() as conn:
        if not pool.driver.is_alive(conn):
            raise ConnectFailedError("Database connection test failed: SELECT 1 did not succeed")
    _log.debug("Health check passed for %s", pool.driver.family.value)
