"""Automatic resumption of paused executions."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Optional

from .contracts import ExecutionStatus, utc_now
from .dispatch import WorkflowDispatcher
from .persistence import ExecutionRepository

logger = logging.getLogger(__name__)


class ResumeScheduler:
    """Enqueue resume jobs for paused executions whose ``resume_at`` has passed.

    A pause is identified by its execution id and ``resume_at`` together, so an
    execution that resumes and pauses again at a later step is scheduled again.
    Each pause is enqueued at most once per scheduler instance; a duplicate from
    another process is skipped by the worker once the first resume runs.
    """

    def __init__(
        self, repository: ExecutionRepository, dispatcher: WorkflowDispatcher
    ) -> None:
        self._repository = repository
        self._dispatcher = dispatcher
        self._enqueued: set[tuple[str, datetime]] = set()

    async def tick(self, now: Optional[datetime] = None) -> list[str]:
        """Enqueue every due execution and return their ids."""
        now = now or utc_now()
        paused = await self._repository.list_executions(status=ExecutionStatus.PAUSED)
        # forget pauses that are no longer current
        self._enqueued &= {(e.id, e.resume_at) for e in paused if e.resume_at is not None}

        due = [
            e
            for e in paused
            if e.resume_at is not None
            and e.resume_at <= now
            and (e.id, e.resume_at) not in self._enqueued
        ]
        for execution in due:
            await self._dispatcher.resume(execution.id, execution.workflow_id)
            self._enqueued.add((execution.id, execution.resume_at))
        if due:
            logger.info(f"Scheduled {len(due)} paused execution(s) for resumption")
        return [e.id for e in due]

    async def run(self, interval: float = 5.0, lifespan: Optional[float] = None) -> None:
        """Call :meth:`tick` every ``interval`` seconds."""
        loop = asyncio.get_running_loop()
        start_time = loop.time()
        while lifespan is None or loop.time() - start_time < lifespan:
            try:
                await self.tick()
            except Exception:
                logger.exception("Resume scheduler tick failed")
            await asyncio.sleep(interval)
