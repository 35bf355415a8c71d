"""sqlbridge: MCP tool gateway for SQLite, MySQL, PostgreSQL and SQL Server."""

__version__ = "0.1.0"
