"""SQLite implementation of the execution repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from ..contracts import Execution, ExecutionLogEntry, ExecutionStatus, Workflow
from .repository import ExecutionRepository


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class SQLiteExecutionRepository(ExecutionRepository):
    """Persist workflows and executions using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS workflows (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                status TEXT NOT NULL,
                definition TEXT NOT NULL
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS executions (
                id TEXT PRIMARY KEY,
                workflow_id TEXT NOT NULL,
                status TEXT NOT NULL,
                current_step_order INTEGER,
                context TEXT NOT NULL,
                error TEXT,
                paused_at TEXT,
                resume_at TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS execution_logs (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                execution_id TEXT NOT NULL,
                step_id TEXT NOT NULL,
                step_order INTEGER NOT NULL,
                event_type TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                metadata TEXT
            )
            """
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        self._conn.commit()

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchall()

    @staticmethod
    def _row_to_execution(row: sqlite3.Row) -> Execution:
        return Execution(
            id=row["id"],
            workflow_id=row["workflow_id"],
            status=row["status"],
            current_step_order=row["current_step_order"],
            context=json.loads(row["context"]),
            error=row["error"],
            paused_at=_dt(row["paused_at"]),
            resume_at=_dt(row["resume_at"]),
            created_at=_dt(row["created_at"]),
            updated_at=_dt(row["updated_at"]),
        )

    # ------------------------------------------------------------------
    # Repository API
    async def save_workflow(self, workflow: Workflow) -> None:
        await asyncio.to_thread(
            self._execute,
            "INSERT OR REPLACE INTO workflows (id, name, status, definition) VALUES (?, ?, ?, ?)",
            workflow.id,
            workflow.name,
            workflow.status,
            workflow.model_dump_json(),
        )

    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        row = await asyncio.to_thread(
            self._fetchone, "SELECT definition FROM workflows WHERE id = ?", workflow_id
        )
        if not row:
            return None
        return Workflow.model_validate_json(row["definition"])

    async def list_workflows(self) -> list[Workflow]:
        rows = await asyncio.to_thread(
            self._fetchall, "SELECT definition FROM workflows ORDER BY name"
        )
        return [Workflow.model_validate_json(r["definition"]) for r in rows]

    async def create_execution(self, execution: Execution) -> None:
        await asyncio.to_thread(
            self._execute,
            """
            INSERT INTO executions (
                id, workflow_id, status, current_step_order, context, error,
                paused_at, resume_at, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            execution.id,
            execution.workflow_id,
            execution.status.value,
            execution.current_step_order,
            json.dumps(execution.context, default=str),
            execution.error,
            _iso(execution.paused_at),
            _iso(execution.resume_at),
            _iso(execution.created_at),
            _iso(execution.updated_at),
        )

    async def update_execution(self, execution: Execution) -> None:
        await asyncio.to_thread(
            self._execute,
            """
            UPDATE executions
            SET status = ?, current_step_order = ?, context = ?, error = ?,
                paused_at = ?, resume_at = ?, updated_at = ?
            WHERE id = ?
            """,
            execution.status.value,
            execution.current_step_order,
            json.dumps(execution.context, default=str),
            execution.error,
            _iso(execution.paused_at),
            _iso(execution.resume_at),
            _iso(execution.updated_at),
            execution.id,
        )

    async def get_execution(self, execution_id: str) -> Execution | None:
        row = await asyncio.to_thread(
            self._fetchone, "SELECT * FROM executions WHERE id = ?", execution_id
        )
        return self._row_to_execution(row) if row else None

    async def list_executions(
        self,
        workflow_id: Optional[str] = None,
        status: Optional[ExecutionStatus] = None,
    ) -> list[Execution]:
        query = "SELECT * FROM executions WHERE 1 = 1"
        params: list[Any] = []
        if workflow_id is not None:
            query += " AND workflow_id = ?"
            params.append(workflow_id)
        if status is not None:
            query += " AND status = ?"
            params.append(ExecutionStatus(status).value)
        query += " ORDER BY created_at"
        rows = await asyncio.to_thread(self._fetchall, query, *params)
        return [self._row_to_execution(r) for r in rows]

    async def append_log(self, entry: ExecutionLogEntry) -> None:
        await asyncio.to_thread(
            self._execute,
            """
            INSERT INTO execution_logs (
                id, execution_id, step_id, step_order, event_type, timestamp, metadata
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            entry.id,
            entry.execution_id,
            entry.step_id,
            entry.step_order,
            entry.event_type.value,
            _iso(entry.timestamp),
            json.dumps(entry.metadata) if entry.metadata is not None else None,
        )

    async def list_logs(self, execution_id: str) -> list[ExecutionLogEntry]:
        rows = await asyncio.to_thread(
            self._fetchall,
            "SELECT * FROM execution_logs WHERE execution_id = ? ORDER BY seq",
            execution_id,
        )
        return [
            ExecutionLogEntry(
                id=r["id"],
                execution_id=r["execution_id"],
                step_id=r["step_id"],
                step_order=r["step_order"],
                event_type=r["event_type"],
                timestamp=_dt(r["timestamp"]),
                metadata=json.loads(r["metadata"]) if r["metadata"] else None,
            )
            for r in rows
        ]
