"""Repository abstraction for workflow and execution persistence."""

from __future__ import annotations

from typing import Optional, Protocol

from ..contracts import Execution, ExecutionLogEntry, ExecutionStatus, Workflow


class ExecutionRepository(Protocol):
    """Protocol for persistence backends."""

    async def save_workflow(self, workflow: Workflow) -> None:
        """Insert or replace a workflow definition."""

    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        """Load a workflow with its trigger and ordered steps."""

    async def list_workflows(self) -> list[Workflow]:
        """Return all stored workflows."""

    async def create_execution(self, execution: Execution) -> None:
        """Persist a new execution row."""

    async def update_execution(self, execution: Execution) -> None:
        """Persist the execution's current status, step, context and timestamps."""

    async def get_execution(self, execution_id: str) -> Execution | None:
        """Retrieve an execution by id."""

    async def list_executions(
        self,
        workflow_id: Optional[str] = None,
        status: Optional[ExecutionStatus] = None,
    ) -> list[Execution]:
        """Return executions, optionally filtered, oldest first."""

    async def append_log(self, entry: ExecutionLogEntry) -> None:
        """Append a log entry. Entries are never updated or deleted."""

    async def list_logs(self, execution_id: str) -> list[ExecutionLogEntry]:
        """Return the log trail of an execution in insertion order."""
