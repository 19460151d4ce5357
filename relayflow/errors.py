"""Exceptions raised while executing workflow steps."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional


class RelayflowError(Exception):
    """Base class for relayflow errors."""


class StepConfigError(RelayflowError):
    """A step's configuration is missing or has an invalid field.

    Configuration errors are never retried.
    """


class StepExecutionError(RelayflowError):
    """A transient failure inside a step, subject to the retry policy."""


class StepPaused(RelayflowError):
    """Raised by a step executor to pause the execution instead of failing.

    When ``step_completed`` is true the step counts as done: its ``output`` is
    merged into the context and a resume continues with the next step.
    Otherwise the resume re-runs the same step.
    """

    def __init__(
        self,
        reason: str = "Execution paused",
        resume_at: Optional[datetime] = None,
        output: Optional[dict[str, Any]] = None,
        step_completed: bool = False,
    ) -> None:
        super().__init__(reason)
        self.reason = reason
        self.resume_at = resume_at
        self.output = output or {}
        self.step_completed = step_completed
