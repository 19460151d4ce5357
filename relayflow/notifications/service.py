"""Deliver failure and pause notifications."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional, Protocol

from ..contracts import NotificationConfig, NotificationPayload, Workflow
from ..steps.email_step import EmailProvider, EmailStepExecutor
from ..steps.http_step import HttpStepExecutor

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Outbound delivery boundary used by the workflow executor."""

    async def notify(self, workflow: Workflow, payload: NotificationPayload) -> None: ...


class NullNotifier:
    """Notifier that only records payloads in the log."""

    async def notify(self, workflow: Workflow, payload: NotificationPayload) -> None:
        logger.info(
            f"Execution {payload.executionId} of workflow {payload.workflowId} "
            f"{payload.status}: {payload.errorMessage}"
        )


class NotificationService:
    """Send a payload to every notification target configured on a workflow.

    Email targets need ``config.to``; webhook targets need ``config.url``.
    Delivery is best effort: errors are logged per target and never raised.
    """

    def __init__(
        self,
        email_provider: Optional[EmailProvider] = None,
        http_executor: Optional[HttpStepExecutor] = None,
    ) -> None:
        self._email = EmailStepExecutor(email_provider)
        self._http = http_executor or HttpStepExecutor()

    @staticmethod
    def _wants(target: NotificationConfig, status: str) -> bool:
        if status == "failed":
            return target.on_failure
        if status == "paused":
            return target.on_pause
        return False

    async def notify(self, workflow: Workflow, payload: NotificationPayload) -> None:
        targets = [t for t in workflow.notifications if self._wants(t, payload.status)]
        if not targets:
            return
        await asyncio.gather(*(self._send(t, payload) for t in targets))

    async def _send(self, target: NotificationConfig, payload: NotificationPayload) -> None:
        body = payload.to_dict()
        try:
            if target.type == "email":
                to = target.config.get("to")
                if not to or not isinstance(to, str):
                    logger.error("Email notification config missing 'to' field, skipping")
                    return
                title = "Failed" if payload.status == "failed" else "Paused"
                await self._email.execute(
                    {
                        "to": to,
                        "subject": f"Workflow Execution {title}",
                        "body": json.dumps(body, indent=2),
                    },
                    {},
                )
            elif target.type == "webhook":
                url = target.config.get("url")
                if not url or not isinstance(url, str):
                    logger.error("Webhook notification config missing 'url' field, skipping")
                    return
                await self._http.execute({"method": "POST", "url": url, "body": body}, {})
        except Exception as e:
            logger.error(
                f"Error sending {target.type} notification for execution "
                f"{payload.executionId}: {e}"
            )
