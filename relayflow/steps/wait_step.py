"""Wait step: pause the execution and resume later."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from ..contracts import StepResult, utc_now
from ..errors import StepConfigError, StepPaused


class WaitStepExecutor:
    """Pause for ``delayMs`` milliseconds or until ``resumeAt`` (ISO-8601).

    Without either key the execution waits for a manual resume. The wait step
    itself counts as completed, so resuming continues with the next step.
    """

    async def execute(
        self, config: Dict[str, Any], context: Dict[str, Any]
    ) -> StepResult:
        resume_at = None
        if "delayMs" in config:
            delay = config["delayMs"]
            if not isinstance(delay, int) or isinstance(delay, bool) or delay < 0:
                raise StepConfigError("Wait step delayMs must be a non-negative integer")
            resume_at = utc_now() + timedelta(milliseconds=delay)
        elif "resumeAt" in config:
            try:
                resume_at = datetime.fromisoformat(
                    str(config["resumeAt"]).replace("Z", "+00:00")
                )
            except ValueError as e:
                raise StepConfigError(
                    f"Wait step resumeAt must be an ISO-8601 timestamp: {e}"
                ) from e
            if resume_at.tzinfo is None:
                resume_at = resume_at.replace(tzinfo=timezone.utc)

        raise StepPaused(
            reason=config.get("reason") or "Waiting",
            resume_at=resume_at,
            output={"waitUntil": resume_at.isoformat() if resume_at else None},
            step_completed=True,
        )
