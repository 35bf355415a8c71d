"""
Static tool registry: sql_query, sql_exec, db_status.

Each tool declares a Pydantic argument model; its JSON schema is what
list_operations() and the MCP tools/list response advertise.
"""

from typing import Any, NamedTuple

from pydantic import BaseModel, Field


class SqlArgs(BaseModel):
    """Arguments of sql_query and sql_exec."""

    sql: str = Field(..., description="SQL statement to run")
    params: list[Any] = Field(
        default_factory=list,
        description="Positional parameters bound to the statement's placeholders",
    )


class NoArgs(BaseModel):
    """db_status takes no arguments."""


class ToolSpec(NamedTuple):
    name: str
    description: str
    args_model: type[BaseModel]
    read_only: bool
    destructive: bool
    idempotent: bool
    open_world: bool = False

    @property
    def argument_schema(self) -> dict[str, Any]:
        return self.args_model.model_json_schema()


SQL_QUERY = ToolSpec(
    name="sql_query",
    description="Run a SQL query and return the result rows as JSON objects",
    args_model=SqlArgs,
    read_only=True,
    destructive=False,
    idempotent=True,
)

SQL_EXEC = ToolSpec(
    name="sql_exec",
    description="Run a SQL modification statement (INSERT/UPDATE/DELETE) and return rows affected",
    args_model=SqlArgs,
    read_only=False,
    destructive=True,
    idempotent=False,
)

DB_STATUS = ToolSpec(
    name="db_status",
    description="Return connection pool status and the database type",
    args_model=NoArgs,
    read_only=True,
    destructive=False,
    idempotent=True,
)

TOOLS: dict[str, ToolSpec] = {t.name: t for t in (SQL_QUERY, SQL_EXEC, DB_STATUS)}


def get_tool(name: str) -> ToolSpec | None:
    return TOOLS.get(name)


def list_operations() -> list[dict[str, Any]]:
    """Name, description and argument schema of every tool, in registry order."""
    return [
        {
            "name": t.name,
            "description": t.description,
            "argument_schema": t.argument_schema,
        }
        for t in TOOLS.values()
    ]
