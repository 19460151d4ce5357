"""In-memory implementation of the execution repository."""

from __future__ import annotations

from typing import Dict, List, Optional

from ..contracts import Execution, ExecutionLogEntry, ExecutionStatus, Workflow
from .repository import ExecutionRepository


class InMemoryExecutionRepository(ExecutionRepository):
    """Store workflows and executions in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts.
    """

    def __init__(self) -> None:
        self._workflows: Dict[str, Workflow] = {}
        self._executions: Dict[str, Execution] = {}
        self._logs: Dict[str, List[ExecutionLogEntry]] = {}

    # ------------------------------------------------------------------
    async def save_workflow(self, workflow: Workflow) -> None:
        self._workflows[workflow.id] = workflow.model_copy(deep=True)

    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        wf = self._workflows.get(workflow_id)
        return wf.model_copy(deep=True) if wf else None

    async def list_workflows(self) -> list[Workflow]:
        return [wf.model_copy(deep=True) for wf in self._workflows.values()]

    async def create_execution(self, execution: Execution) -> None:
        if execution.id in self._executions:
            raise ValueError(f"Execution {execution.id} already exists")
        self._executions[execution.id] = execution.model_copy(deep=True)

    async def update_execution(self, execution: Execution) -> None:
        if execution.id not in self._executions:
            raise KeyError(f"Execution {execution.id} not found")
        self._executions[execution.id] = execution.model_copy(deep=True)

    async def get_execution(self, execution_id: str) -> Execution | None:
        execution = self._executions.get(execution_id)
        return execution.model_copy(deep=True) if execution else None

    async def list_executions(
        self,
        workflow_id: Optional[str] = None,
        status: Optional[ExecutionStatus] = None,
    ) -> list[Execution]:
        return [
            e.model_copy(deep=True)
            for e in sorted(self._executions.values(), key=lambda e: e.created_at)
            if (workflow_id is None or e.workflow_id == workflow_id)
            and (status is None or e.status == status)
        ]

    async def append_log(self, entry: ExecutionLogEntry) -> None:
        self._logs.setdefault(entry.execution_id, []).append(entry)

    async def list_logs(self, execution_id: str) -> list[ExecutionLogEntry]:
        return list(self._logs.get(execution_id, []))
