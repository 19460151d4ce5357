"""Enqueue workflow execution jobs."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .constants import DEFAULT_QUEUE_NAME
from .contracts import ExecutionJob
from .transports import BaseTransport

logger = logging.getLogger(__name__)


class WorkflowDispatcher:
    """Publish execution jobs for webhook, cron and manual triggers.

    Dispatching only acknowledges acceptance of the job; the execution itself
    runs asynchronously in a worker.
    """

    def __init__(self, transport: BaseTransport, queue: str = DEFAULT_QUEUE_NAME) -> None:
        self._transport = transport
        self._queue = queue

    async def dispatch(
        self, workflow_id: str, trigger_payload: Optional[Dict[str, Any]] = None
    ) -> str:
        """Enqueue a fresh execution of ``workflow_id`` and return the job id."""
        job = ExecutionJob(workflow_id=workflow_id, trigger_payload=trigger_payload or {})
        await self._transport.publish(self._queue, job)
        logger.info(f"Enqueued job {job.job_id} for workflow {workflow_id}")
        return job.job_id

    async def resume(self, execution_id: str, workflow_id: str) -> str:
        """Enqueue a resume of a paused execution and return the job id."""
        job = ExecutionJob(workflow_id=workflow_id, execution_id=execution_id)
        await self._transport.publish(self._queue, job)
        logger.info(f"Enqueued resume job {job.job_id} for execution {execution_id}")
        return job.job_id
