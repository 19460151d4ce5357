"""Queue consumer that runs workflow executions."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from .config import RelayflowConfig, load_config
from .constants import DEFAULT_QUEUE_NAME, DEFAULT_WORKER_CONCURRENCY
from .contracts import ExecutionJob, ExecutionResult, ExecutionStatus, RetryPolicy
from .execute import WorkflowExecutor
from .notifications import NotificationService
from .persistence import ExecutionRepository, get_repository
from .steps import SmtpEmailProvider, build_default_registry
from .transports import BaseTransport, get_transport

logger = logging.getLogger(__name__)


class ExecutionWorker:
    """Consume execution jobs and hand them to the :class:`WorkflowExecutor`.

    Jobs without ``execution_id`` start a fresh execution; jobs with one resume
    that execution if it is still paused. A failing job is logged and
    acknowledged; it never stops the worker.
    """

    def __init__(
        self,
        transport: BaseTransport,
        repository: ExecutionRepository,
        executor: WorkflowExecutor,
        queue: str = DEFAULT_QUEUE_NAME,
        concurrency: int = DEFAULT_WORKER_CONCURRENCY,
    ) -> None:
        if concurrency < 1:
            raise ValueError("Worker concurrency must be at least 1")
        self._transport = transport
        self._repository = repository
        self._executor = executor
        self._queue = queue
        self._concurrency = concurrency

    async def start(self, lifespan: Optional[float] = None) -> None:
        """Consume jobs until ``lifespan`` seconds elapse (forever if None).

        Up to ``concurrency`` jobs run at once, so a job sleeping through retry
        backoff does not hold up the rest of the queue. Jobs still running when
        consumption stops are awaited before returning.
        """
        logger.info(
            f"Worker consuming from queue {self._queue!r} "
            f"with concurrency {self._concurrency}"
        )
        slots = asyncio.Semaphore(self._concurrency)
        running: set[asyncio.Task] = set()
        try:
            async for raw_message, job in self._transport.subscribe(
                self._queue, lifespan=lifespan
            ):
                await slots.acquire()
                task = asyncio.create_task(self._process(raw_message, job, slots))
                running.add(task)
                task.add_done_callback(running.discard)
        finally:
            if running:
                await asyncio.gather(*running, return_exceptions=True)

    async def _process(
        self, raw_message: Any, job: ExecutionJob, slots: asyncio.Semaphore
    ) -> None:
        try:
            await self.handle_job(job)
        except Exception:
            logger.exception(f"Error processing job {job.job_id}")
        finally:
            slots.release()
            await self._transport.ack(raw_message)

    async def handle_job(self, job: ExecutionJob) -> ExecutionResult | None:
        """Run one job. Returns None when the job was skipped."""
        logger.info(f"Job {job.job_id} started for workflow {job.workflow_id}")

        if job.is_resume:
            execution = await self._repository.get_execution(job.execution_id)
            if execution is None:
                logger.error(f"Execution {job.execution_id} not found, skipping job {job.job_id}")
                return None
            if execution.status != ExecutionStatus.PAUSED:
                logger.warning(
                    f"Execution {execution.id} is {execution.status.value}, not paused; "
                    f"skipping resume job {job.job_id}"
                )
                return None
            workflow = await self._repository.get_workflow(execution.workflow_id)
            if workflow is None:
                logger.error(f"Workflow {execution.workflow_id} not found, skipping job {job.job_id}")
                return None
            return await self._executor.run(
                workflow, workflow.steps, resume_from_execution=execution
            )

        workflow = await self._repository.get_workflow(job.workflow_id)
        if workflow is None:
            logger.error(f"Workflow {job.workflow_id} not found, skipping job {job.job_id}")
            return None
        return await self._executor.run(workflow, workflow.steps, job.trigger_payload)


def build_worker(
    config: Optional[RelayflowConfig] = None,
    transport: Optional[BaseTransport] = None,
    repository: Optional[ExecutionRepository] = None,
) -> ExecutionWorker:
    """Wire a worker from configuration with the built-in step types."""
    config = config or load_config()
    repository = repository or get_repository(config=config)
    email_provider = SmtpEmailProvider(config.smtp)
    executor = WorkflowExecutor(
        registry=build_default_registry(config, email_provider=email_provider),
        repository=repository,
        notifier=NotificationService(email_provider=email_provider),
        default_retry=RetryPolicy(
            max_retries=config.retry.max_retries,
            initial_delay=config.retry.initial_delay,
        ),
    )
    return ExecutionWorker(
        transport or get_transport(config=config),
        repository,
        executor,
        queue=config.queue_name,
        concurrency=config.worker_concurrency,
    )
