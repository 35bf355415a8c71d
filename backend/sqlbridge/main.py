"""
sqlbridge entry point.

Startup: parse CLI (overrides env Settings) -> logging -> DatabaseManager ->
configure pool -> SELECT 1 -> serve MCP over stdio. Any startup failure exits non-zero.
"""

import argparse
import asyncio
import logging
import sys

from sqlbridge.core.backend import mask_url
from sqlbridge.core.config import Settings, settings
from sqlbridge.core.database import DatabaseManager
from sqlbridge.core.errors import ConfigurationError, DatabaseAccessError
from sqlbridge.tools.dispatcher import ToolDispatcher
from sqlbridge.tools.server import serve

logger = logging.getLogger("sqlbridge")


def configure_logging(level: str) -> None:
    """Log to stderr; stdout carries the protocol stream."""
    numeric = logging.getLevelName(level.strip().upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(
        level=numeric,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sqlbridge",
        description="sqlbridge MCP server - provides SQL query and modification tools",
    )
    parser.add_argument("-d", "--database-url", help="Database connection URL (env: DATABASE_URL)")
    parser.add_argument("--max-connections", type=int, help="Maximum number of connections (default 10)")
    parser.add_argument("--timeout", type=int, help="Connection acquire timeout in seconds, 0 = wait forever (default 30)")
    parser.add_argument("--log-level", help="Log level (default info)")
    return parser


def resolve_settings(argv: list[str] | None = None, base: Settings | None = None) -> Settings:
    """Merge CLI flags over environment settings. Exits with status 2 if no URL is configured."""
    parser = build_parser()
    args = parser.parse_args(argv)
    base = base or settings
    overrides = {
        key: value
        for key, value in {
            "DATABASE_URL": args.database_url,
            "MAX_CONNECTIONS": args.max_connections,
            "TIMEOUT_SECONDS": args.timeout,
            "LOG_LEVEL": args.log_level,
        }.items()
        if value is not None
    }
    merged = Settings.model_validate({**base.model_dump(), **overrides})
    if not merged.DATABASE_URL:
        parser.error("--database-url (or DATABASE_URL) is required")
    return merged


def create_manager(cfg: Settings) -> DatabaseManager:
    """Build the DatabaseManager and verify the database answers. Raises on any startup failure."""
    timeout = float(cfg.TIMEOUT_SECONDS) if cfg.TIMEOUT_SECONDS > 0 else None
    db = DatabaseManager.from_url(
        cfg.DATABASE_URL,
        connect_timeout=cfg.CONNECT_TIMEOUT_SECONDS,
        max_age=cfg.POOL_MAX_AGE_SECONDS,
        ping_idle_after=cfg.POOL_PING_IDLE_SECONDS,
    )
    db.configure_pool(cfg.MAX_CONNECTIONS, timeout)
    db.test_connection()
    return db


def main(argv: list[str] | None = None) -> int:
    cfg = resolve_settings(argv)
    configure_logging(cfg.LOG_LEVEL)

    logger.info("Starting sqlbridge MCP server")
    logger.info("Database URL: %s", mask_url(cfg.DATABASE_URL))

    try:
        db = create_manager(cfg)
    except ConfigurationError as e:
        logger.error("Failed to create database manager: %s", e)
        return 1
    except DatabaseAccessError as e:
        logger.error("Database connection test failed: %s", e)
        return 1

    logger.info("Database connection test successful (%s)", db.database_type.value)

    try:
        asyncio.run(serve(ToolDispatcher(db), name=cfg.SERVER_NAME))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
