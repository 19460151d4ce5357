"""Workflow execution engine for relayflow."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional

from .constants import RESERVED_CONFIG_KEYS
from .contracts import (
    Execution,
    ExecutionResult,
    ExecutionStatus,
    LogEvent,
    RetryPolicy,
    Step,
    StepResult,
    Workflow,
    utc_now,
)
from .errors import StepConfigError, StepPaused
from .execution_log import ExecutionLogger
from .notifications import Notifier, NullNotifier, build_notification_payload
from .persistence import ExecutionRepository
from .registry import StepExecutorRegistry
from .template import render_value
from .utils.retry import Sleep, schedule_retry, should_retry

logger = logging.getLogger(__name__)


@dataclass
class _StepOutcome:
    status: LogEvent
    output: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    retry_count: int = 0
    pause: Optional[StepPaused] = None


def _pause_policy(step: Step) -> Optional[Dict[str, Any]]:
    policy = step.config.get("onFailure")
    if isinstance(policy, dict) and policy.get("action") == "pause":
        return policy
    return None


class WorkflowExecutor:
    """Run a workflow's steps in order against an accumulating context.

    Each step is templated against the current context, invoked through the
    registry under its retry policy, and its output is shallow-merged into the
    context. Unrecoverable failures mark the execution ``failed``; pauses leave
    it resumable from ``current_step_order``.
    """

    def __init__(
        self,
        registry: StepExecutorRegistry,
        repository: ExecutionRepository,
        notifier: Optional[Notifier] = None,
        default_retry: Optional[RetryPolicy] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._registry = registry
        self._repository = repository
        self._notifier = notifier or NullNotifier()
        self._log = ExecutionLogger(repository)
        self._default_retry = default_retry or RetryPolicy()
        self._sleep = sleep

    async def run(
        self,
        workflow: Workflow,
        steps: Iterable[Step],
        initial_context: Optional[Dict[str, Any]] = None,
        resume_from_execution: Optional[Execution] = None,
        execution_id: Optional[str] = None,
    ) -> ExecutionResult:
        """Execute ``steps`` of ``workflow`` and return the outcome.

        Args:
            workflow: Workflow being executed.
            steps: The workflow's steps, in any order.
            initial_context: Trigger payload seeding a fresh execution.
            resume_from_execution: A paused execution to continue. Its stored
                context is used and steps before its ``current_step_order``
                are skipped.
            execution_id: Optional id for a fresh execution.
        """
        ordered = sorted(steps, key=lambda s: s.order)

        if resume_from_execution is not None:
            execution = resume_from_execution.model_copy(deep=True)
            if execution.status != ExecutionStatus.PAUSED:
                raise ValueError(
                    f"Execution {execution.id} is {execution.status.value}, not paused"
                )
            context = dict(execution.context)
            start = execution.current_step_order
            pending = [s for s in ordered if start is None or s.order >= start]
            execution.status = ExecutionStatus.RUNNING
            execution.error = None
            execution.paused_at = None
            execution.resume_at = None
            await self._save(execution)
            logger.info(
                f"Resuming execution {execution.id} of workflow {workflow.id} at step order {start}"
            )
        else:
            context = dict(initial_context or {})
            execution = Execution(workflow_id=workflow.id, context=dict(context))
            if execution_id:
                execution.id = execution_id
            await self._repository.create_execution(execution)
            pending = ordered
            logger.info(
                f"Started execution {execution.id} of workflow {workflow.id} ({len(ordered)} steps)"
            )

        for index, step in enumerate(pending):
            next_order = pending[index + 1].order if index + 1 < len(pending) else None
            execution.current_step_order = step.order
            outcome = await self._run_step(execution, step, context)

            if outcome.status == LogEvent.COMPLETED:
                context.update(outcome.output)
                await self._log.append(execution.id, step.id, step.order, LogEvent.COMPLETED)
                execution.context = dict(context)
                execution.current_step_order = next_order
                await self._save(execution)
                continue

            if outcome.status == LogEvent.PAUSED:
                pause = outcome.pause
                if pause.step_completed:
                    context.update(pause.output)
                    if next_order is None:
                        # nothing left to wait for
                        await self._log.append(
                            execution.id, step.id, step.order, LogEvent.COMPLETED
                        )
                        execution.context = dict(context)
                        break
                    execution.current_step_order = next_order
                return await self._pause(workflow, ordered, execution, step, context, outcome)

            return await self._fail(workflow, ordered, execution, step, context, outcome)

        execution.status = ExecutionStatus.COMPLETED
        execution.current_step_order = None
        execution.error = None
        execution.context = dict(context)
        await self._save(execution)
        logger.info(f"Execution {execution.id} of workflow {workflow.id} completed")
        return ExecutionResult(
            execution_id=execution.id,
            status=execution.status,
            success=True,
            context=dict(context),
        )

    # ------------------------------------------------------------------
    def _prepare_config(self, step: Step, context: Dict[str, Any]) -> Dict[str, Any]:
        config = {k: v for k, v in step.config.items() if k not in RESERVED_CONFIG_KEYS}
        return render_value(config, context)

    async def _run_step(
        self, execution: Execution, step: Step, context: Dict[str, Any]
    ) -> _StepOutcome:
        """Invoke one step under its retry policy."""
        await self._log.append(execution.id, step.id, step.order, LogEvent.STARTED)
        try:
            policy = RetryPolicy.from_step_config(step.config, self._default_retry)
        except StepConfigError as e:
            logger.error(
                f"Step {step.order} ({step.type}) of execution {execution.id} "
                f"has invalid retry config: {e}"
            )
            return _StepOutcome(status=LogEvent.FAILED, error=str(e))
        executor = self._registry.get(step.type)

        attempt = 0
        while True:
            config = self._prepare_config(step, context)
            try:
                result = await executor.execute(config, dict(context))
                if not isinstance(result, StepResult):
                    result = StepResult.model_validate(result)
                return _StepOutcome(status=LogEvent.COMPLETED, output=result.output)
            except StepPaused as pause:
                return _StepOutcome(status=LogEvent.PAUSED, pause=pause, retry_count=attempt)
            except StepConfigError as e:
                logger.error(
                    f"Step {step.order} ({step.type}) of execution {execution.id} "
                    f"has invalid config: {e}"
                )
                return _StepOutcome(status=LogEvent.FAILED, error=str(e), retry_count=attempt)
            except Exception as e:
                error = str(e) or e.__class__.__name__
                if not should_retry(attempt, policy.max_retries):
                    logger.error(
                        f"Step {step.order} ({step.type}) of execution {execution.id} "
                        f"failed after {attempt + 1} attempt(s): {error}"
                    )
                    return _StepOutcome(status=LogEvent.FAILED, error=error, retry_count=attempt)
                logger.warning(
                    f"Step {step.order} ({step.type}) of execution {execution.id} "
                    f"failed on attempt {attempt + 1}: {error}; retrying"
                )
                await schedule_retry(attempt, policy.initial_delay, sleep=self._sleep)
                attempt += 1
                await self._log.append(
                    execution.id,
                    step.id,
                    step.order,
                    LogEvent.RETRIED,
                    {"retryCount": attempt, "error": error},
                )

    async def _save(self, execution: Execution) -> None:
        execution.updated_at = utc_now()
        await self._repository.update_execution(execution)

    async def _notify(
        self,
        workflow: Workflow,
        steps: list[Step],
        execution: Execution,
        status: str,
        step_order: int,
    ) -> None:
        payload = build_notification_payload(
            workflow_id=workflow.id,
            execution_id=execution.id,
            status=status,
            current_step_order=step_order,
            error_message=execution.error,
            paused_at=execution.paused_at,
            resume_at=execution.resume_at,
            steps=steps,
        )
        try:
            await self._notifier.notify(workflow, payload)
        except Exception as e:
            logger.error(f"Failed to dispatch {status} notification for {execution.id}: {e}")

    async def _fail(
        self,
        workflow: Workflow,
        steps: list[Step],
        execution: Execution,
        step: Step,
        context: Dict[str, Any],
        outcome: _StepOutcome,
    ) -> ExecutionResult:
        policy = _pause_policy(step)
        if policy is not None:
            pause = StepPaused(reason=outcome.error or "Step failed")
            delay = policy.get("resumeAfter")
            if isinstance(delay, int) and not isinstance(delay, bool):
                pause.resume_at = utc_now() + timedelta(milliseconds=delay)
            outcome = _StepOutcome(
                status=LogEvent.PAUSED,
                error=outcome.error,
                retry_count=outcome.retry_count,
                pause=pause,
            )
            return await self._pause(workflow, steps, execution, step, context, outcome)

        await self._log.append(
            execution.id,
            step.id,
            step.order,
            LogEvent.FAILED,
            {"error": outcome.error, "retryCount": outcome.retry_count},
        )
        execution.status = ExecutionStatus.FAILED
        execution.current_step_order = step.order
        execution.error = outcome.error
        execution.context = dict(context)
        await self._save(execution)
        await self._notify(workflow, steps, execution, "failed", step.order)
        return ExecutionResult(
            execution_id=execution.id,
            status=execution.status,
            success=False,
            context=dict(context),
            error=outcome.error,
        )

    async def _pause(
        self,
        workflow: Workflow,
        steps: list[Step],
        execution: Execution,
        step: Step,
        context: Dict[str, Any],
        outcome: _StepOutcome,
    ) -> ExecutionResult:
        pause = outcome.pause
        paused_at: datetime = utc_now()
        metadata: Dict[str, Any] = {"reason": pause.reason}
        if pause.resume_at:
            metadata["resumeAt"] = pause.resume_at.isoformat()
        if outcome.error:
            metadata["error"] = outcome.error
            metadata["retryCount"] = outcome.retry_count
        await self._log.append(execution.id, step.id, step.order, LogEvent.PAUSED, metadata)

        execution.status = ExecutionStatus.PAUSED
        execution.paused_at = paused_at
        execution.resume_at = pause.resume_at
        execution.error = outcome.error
        execution.context = dict(context)
        await self._save(execution)
        logger.info(
            f"Execution {execution.id} paused at step {step.order}"
            + (f", resuming at {pause.resume_at.isoformat()}" if pause.resume_at else "")
        )
        await self._notify(workflow, steps, execution, "paused", step.order)
        return ExecutionResult(
            execution_id=execution.id,
            status=execution.status,
            success=False,
            context=dict(context),
            error=outcome.error,
        )
