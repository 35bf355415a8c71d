"""
Tool surface: registry (sql_query, sql_exec, db_status), dispatcher and MCP adapter.
"""

from sqlbridge.tools.dispatcher import ToolDispatcher
from sqlbridge.tools.registry import TOOLS, ToolSpec, list_operations

__all__ = ["TOOLS", "ToolDispatcher", "ToolSpec", "list_operations"]
