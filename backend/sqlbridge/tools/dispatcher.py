"""
Tool dispatcher: name -> argument validation -> DatabaseManager -> JSON text.

Database calls are blocking DB-API calls; they run in a worker thread so the
event loop keeps serving other requests. Cancelling the awaiting task sets a
cancel token: a worker still waiting for a pool connection gives up without
running the statement. A statement already sent to the backend runs to the end.
"""

import asyncio
import logging
import threading
from typing import Any

from pydantic import BaseModel, ValidationError

from sqlbridge.core.database import DatabaseManager
from sqlbridge.core.errors import (
    DatabaseAccessError,
    ExecutionFailedError,
    InvalidArgumentsError,
    UnknownOperationError,
)
from sqlbridge.core.response import keys_to_camel, render_json, rows_to_wire
from sqlbridge.core.values import params_to_internal
from sqlbridge.tools.registry import ToolSpec, get_tool, list_operations

_log = logging.getLogger(__name__)


def _validation_message(exc: ValidationError) -> str:
    """Human-readable summary of Pydantic errors, e.g. 'sql: Field required'."""
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", []))
        msg = err.get("msg", "Invalid value")
        messages.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(messages)


class ToolDispatcher:
    """Routes tool calls to the DatabaseManager built at startup."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    @staticmethod
    def list_operations() -> list[dict[str, Any]]:
        return list_operations()

    def parse_arguments(self, name: str, arguments: dict[str, Any] | None) -> tuple[ToolSpec, BaseModel]:
        """Look up *name* and validate *arguments* against its model."""
        tool = get_tool(name)
        if tool is None:
            raise UnknownOperationError(f"Unknown tool: {name}")
        try:
            args = tool.args_model.model_validate(arguments or {})
        except ValidationError as e:
            raise InvalidArgumentsError(
                f"Invalid arguments for {name}: {_validation_message(e)}"
            ) from e
        return tool, args

    async def invoke(self, name: str, arguments: dict[str, Any] | None = None) -> str:
        """
        Run tool *name* and return its result as a pretty-printed JSON document.

        Raises UnknownOperationError, InvalidArgumentsError or ExecutionFailedError;
        the protocol layer reports these to the client as tool errors.
        """
        tool, args = self.parse_arguments(name, arguments)
        _log.debug("Invoking tool %s", tool.name)
        handler = getattr(self, f"_call_{tool.name}")
        cancel = threading.Event()
        try:
            payload = await asyncio.to_thread(handler, args, cancel)
        except asyncio.CancelledError:
            cancel.set()
            self._db.pool.wake_waiters()
            _log.info("Tool %s cancelled", tool.name)
            raise
        except DatabaseAccessError as e:
            raise ExecutionFailedError(f"{tool.name} failed: {e}") from e
        except Exception as e:
            _log.error("Tool %s raised unexpectedly: %s", tool.name, e, exc_info=True)
            raise ExecutionFailedError(f"{tool.name} failed: {e}") from e
        try:
            return render_json(payload)
        except (TypeError, ValueError) as e:
            _log.error("Failed to serialize %s result: %s", tool.name, e, exc_info=True)
            raise ExecutionFailedError(f"{tool.name} failed: could not serialize result: {e}") from e

    # ------------------------------------------------------------------
    # Handlers (run in a worker thread)
    # ------------------------------------------------------------------

    def _call_sql_query(self, args: BaseModel, cancel: threading.Event) -> list[dict[str, Any]]:
        rows = self._db.query(args.sql, params_to_internal(args.params), cancel)
        return rows_to_wire(rows)

    def _call_sql_exec(self, args: BaseModel, cancel: threading.Event) -> dict[str, Any]:
        result = self._db.execute(args.sql, params_to_internal(args.params), cancel)
        return keys_to_camel(result._asdict())

    def _call_db_status(self, args: BaseModel, cancel: threading.Event) -> dict[str, Any]:  # noqa: ARG002
        return keys_to_camel(self._db.status())
