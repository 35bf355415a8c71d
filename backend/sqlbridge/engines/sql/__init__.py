"""
SQL engine: single-statement query / execute / ping over a PoolManager.
"""

from .executor import ExecResult, QueryExecutor, Row, cursor_to_rows

__all__ = ["ExecResult", "QueryExecutor", "Row", "cursor_to_rows"]
