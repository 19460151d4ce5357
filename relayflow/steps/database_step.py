"""Database action step for external PostgreSQL databases."""

from __future__ import annotations

import json
import re
from typing import Any, Awaitable, Callable, Dict, Optional

import asyncpg

from ..contracts import StepResult
from ..errors import StepConfigError, StepExecutionError

_IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9_]+(\.[A-Za-z0-9_]+)*$")

OPERATIONS = ("insert", "update", "select")


def quote_identifier(identifier: str) -> str:
    """Validate and double-quote a (possibly schema-qualified) identifier."""
    if not _IDENTIFIER_RE.match(identifier):
        raise StepConfigError(f"Invalid identifier: {identifier}")
    return ".".join(f'"{part}"' for part in identifier.split("."))


def _jsonable(value: Any) -> Any:
    return json.loads(json.dumps(value, default=str))


def _require(mapping: Dict[str, Any], key: str, kind: type, where: str) -> Any:
    value = mapping.get(key)
    if not value or not isinstance(value, kind) or isinstance(value, bool):
        raise StepConfigError(
            f'Database step {where} requires a valid "{key}" {kind.__name__}'
        )
    return value


class DatabaseStepExecutor:
    """Run ``insert``, ``update`` or ``select`` against a PostgreSQL table."""

    def __init__(
        self, connect: Optional[Callable[..., Awaitable[Any]]] = None
    ) -> None:
        self._connect = connect or asyncpg.connect

    async def execute(
        self, config: Dict[str, Any], context: Dict[str, Any]
    ) -> StepResult:
        database_type = config.get("databaseType")
        if database_type != "postgres":
            raise StepConfigError(
                f'Database step databaseType must be "postgres", got: {database_type}'
            )

        conn_config = config.get("connection")
        if not isinstance(conn_config, dict):
            raise StepConfigError(
                'Database step requires a valid "connection" object in config.connection'
            )
        connect_kwargs = {
            "host": _require(conn_config, "host", str, "connection"),
            "port": _require(conn_config, "port", int, "connection"),
            "database": _require(conn_config, "database", str, "connection"),
            "user": _require(conn_config, "user", str, "connection"),
            "password": _require(conn_config, "password", str, "connection"),
            "ssl": conn_config.get("ssl", "require"),
        }

        table = quote_identifier(_require(config, "table", str, "config"))
        operation = config.get("operation")
        if operation not in OPERATIONS:
            raise StepConfigError(
                f"Database step operation must be one of {', '.join(OPERATIONS)}, got: {operation}"
            )
        data = config.get("data")
        where = config.get("where") or {}
        if operation in ("insert", "update") and not isinstance(data, dict):
            raise StepConfigError(
                f'Database step {operation} operation requires "data" in config.data'
            )
        if operation == "update" and not where:
            raise StepConfigError(
                'Database step update operation requires "where" in config.where'
            )

        try:
            conn = await self._connect(**connect_kwargs)
        except (OSError, asyncpg.PostgresError) as e:
            raise StepExecutionError(f"Database connection failed: {e}") from e

        try:
            if operation == "insert":
                result = await self._insert(conn, table, data)
            elif operation == "update":
                result = await self._update(conn, table, data, where)
            else:
                result = await self._select(conn, table, where)
        except asyncpg.PostgresError as e:
            raise StepExecutionError(f"Database {operation} failed: {e}") from e
        finally:
            await conn.close()

        return StepResult(output={"result": _jsonable(result)})

    @staticmethod
    def _where_clause(where: Dict[str, Any], offset: int) -> tuple[str, list[Any]]:
        if not where:
            return "", []
        parts = [
            f"{quote_identifier(key)} = ${offset + i + 1}"
            for i, key in enumerate(where)
        ]
        return " WHERE " + " AND ".join(parts), list(where.values())

    async def _insert(self, conn: Any, table: str, data: Dict[str, Any]) -> Any:
        columns = ", ".join(quote_identifier(k) for k in data)
        placeholders = ", ".join(f"${i + 1}" for i in range(len(data)))
        row = await conn.fetchrow(
            f"INSERT INTO {table} ({columns}) VALUES ({placeholders}) RETURNING *",
            *data.values(),
        )
        return dict(row) if row else None

    async def _update(
        self, conn: Any, table: str, data: Dict[str, Any], where: Dict[str, Any]
    ) -> Dict[str, int]:
        assignments = ", ".join(
            f"{quote_identifier(k)} = ${i + 1}" for i, k in enumerate(data)
        )
        clause, params = self._where_clause(where, len(data))
        status = await conn.execute(
            f"UPDATE {table} SET {assignments}{clause}", *data.values(), *params
        )
        # asyncpg returns the command tag, e.g. "UPDATE 3"
        return {"affectedRows": int(status.split()[-1])}

    async def _select(self, conn: Any, table: str, where: Dict[str, Any]) -> list:
        clause, params = self._where_clause(where, 0)
        rows = await conn.fetch(f"SELECT * FROM {table}{clause}", *params)
        return [dict(r) for r in rows]
