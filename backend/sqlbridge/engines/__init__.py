"""
Engines: SQL statement execution against the pooled backend.
"""

from sqlbridge.engines.sql import ExecResult, QueryExecutor

__all__ = [
    "ExecResult",
    "QueryExecutor",
]
