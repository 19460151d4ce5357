"""PostgreSQL implementation of the execution repository."""

from __future__ import annotations

import json
from typing import Any, Optional

import asyncpg

from ..contracts import Execution, ExecutionLogEntry, ExecutionStatus, Workflow
from .repository import ExecutionRepository


def _json(value: Any) -> Any:
    return json.loads(value) if isinstance(value, str) else value


class PostgresExecutionRepository(ExecutionRepository):
    """Persist workflows and executions using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS workflows (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                status TEXT NOT NULL,
                definition JSONB NOT NULL
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS executions (
                id TEXT PRIMARY KEY,
                workflow_id TEXT NOT NULL,
                status TEXT NOT NULL,
                current_step_order INTEGER,
                context JSONB NOT NULL,
                error TEXT,
                paused_at TIMESTAMPTZ,
                resume_at TIMESTAMPTZ,
                created_at TIMESTAMPTZ NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS execution_logs (
                seq SERIAL PRIMARY KEY,
                id TEXT NOT NULL UNIQUE,
                execution_id TEXT NOT NULL,
                step_id TEXT NOT NULL,
                step_order INTEGER NOT NULL,
                event_type TEXT NOT NULL,
                timestamp TIMESTAMPTZ NOT NULL,
                metadata JSONB
            )
            """
        )

    @staticmethod
    def _row_to_execution(row: asyncpg.Record) -> Execution:
        return Execution(
            id=row["id"],
            workflow_id=row["workflow_id"],
            status=row["status"],
            current_step_order=row["current_step_order"],
            context=_json(row["context"]),
            error=row["error"],
            paused_at=row["paused_at"],
            resume_at=row["resume_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # ------------------------------------------------------------------
    async def save_workflow(self, workflow: Workflow) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO workflows (id, name, status, definition) VALUES ($1, $2, $3, $4)
                ON CONFLICT (id) DO UPDATE
                SET name = EXCLUDED.name, status = EXCLUDED.status, definition = EXCLUDED.definition
                """,
                workflow.id,
                workflow.name,
                workflow.status,
                workflow.model_dump_json(),
            )
        finally:
            await conn.close()

    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT definition FROM workflows WHERE id = $1", workflow_id
            )
        finally:
            await conn.close()
        if not row:
            return None
        return Workflow.model_validate(_json(row["definition"]))

    async def list_workflows(self) -> list[Workflow]:
        conn = await self._connect()
        try:
            rows = await conn.fetch("SELECT definition FROM workflows ORDER BY name")
        finally:
            await conn.close()
        return [Workflow.model_validate(_json(r["definition"])) for r in rows]

    async def create_execution(self, execution: Execution) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO executions (
                    id, workflow_id, status, current_step_order, context, error,
                    paused_at, resume_at, created_at, updated_at
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                """,
                execution.id,
                execution.workflow_id,
                execution.status.value,
                execution.current_step_order,
                json.dumps(execution.context, default=str),
                execution.error,
                execution.paused_at,
                execution.resume_at,
                execution.created_at,
                execution.updated_at,
            )
        finally:
            await conn.close()

    async def update_execution(self, execution: Execution) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                UPDATE executions
                SET status = $1, current_step_order = $2, context = $3, error = $4,
                    paused_at = $5, resume_at = $6, updated_at = $7
                WHERE id = $8
                """,
                execution.status.value,
                execution.current_step_order,
                json.dumps(execution.context, default=str),
                execution.error,
                execution.paused_at,
                execution.resume_at,
                execution.updated_at,
                execution.id,
            )
        finally:
            await conn.close()

    async def get_execution(self, execution_id: str) -> Execution | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT * FROM executions WHERE id = $1", execution_id
            )
        finally:
            await conn.close()
        return self._row_to_execution(row) if row else None

    async def list_executions(
        self,
        workflow_id: Optional[str] = None,
        status: Optional[ExecutionStatus] = None,
    ) -> list[Execution]:
        clauses: list[str] = []
        params: list[Any] = []
        if workflow_id is not None:
            params.append(workflow_id)
            clauses.append(f"workflow_id = ${len(params)}")
        if status is not None:
            params.append(ExecutionStatus(status).value)
            clauses.append(f"status = ${len(params)}")
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                f"SELECT * FROM executions{where} ORDER BY created_at", *params
            )
        finally:
            await conn.close()
        return [self._row_to_execution(r) for r in rows]

    async def append_log(self, entry: ExecutionLogEntry) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO execution_logs (
                    id, execution_id, step_id, step_order, event_type, timestamp, metadata
                ) VALUES ($1, $2, $3, $4, $5, $6, $7)
                """,
                entry.id,
                entry.execution_id,
                entry.step_id,
                entry.step_order,
                entry.event_type.value,
                entry.timestamp,
                json.dumps(entry.metadata) if entry.metadata is not None else None,
            )
        finally:
            await conn.close()

    async def list_logs(self, execution_id: str) -> list[ExecutionLogEntry]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                "SELECT * FROM execution_logs WHERE execution_id = $1 ORDER BY seq",
                execution_id,
            )
        finally:
            await conn.close()
        return [
            ExecutionLogEntry(
                id=r["id"],
                execution_id=r["execution_id"],
                step_id=r["step_id"],
                step_order=r["step_order"],
                event_type=r["event_type"],
                timestamp=r["timestamp"],
                metadata=_json(r["metadata"]),
            )
            for r in rows
        ]
