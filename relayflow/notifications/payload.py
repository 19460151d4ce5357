"""Assemble notification payloads from execution state."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Literal, Optional

from ..contracts import FailedStep, NotificationPayload, Step


def build_notification_payload(
    workflow_id: str,
    execution_id: str,
    status: Literal["failed", "paused"],
    current_step_order: Optional[int],
    error_message: Optional[str],
    paused_at: Optional[datetime] = None,
    resume_at: Optional[datetime] = None,
    steps: Optional[Iterable[Step]] = None,
) -> NotificationPayload:
    """Build the payload describing a failed or paused execution.

    ``failedStep`` is the step whose order equals ``current_step_order``; it is
    ``None`` when no step order was supplied or no such step exists. Pause
    timestamps are only carried for the ``paused`` status.
    """
    failed_step = None
    if current_step_order is not None and steps:
        step = next((s for s in steps if s.order == current_step_order), None)
        if step is not None:
            failed_step = FailedStep(order=step.order, type=step.type)

    payload = NotificationPayload(
        workflowId=workflow_id,
        executionId=execution_id,
        failedStep=failed_step,
        errorMessage=error_message,
        status=status,
    )
    if status == "paused":
        if paused_at:
            payload.pausedAt = paused_at.isoformat()
        if resume_at:
            payload.resumeAt = resume_at.isoformat()
    return payload
