"""Core data contracts for relayflow workflows and executions."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .constants import DEFAULT_INITIAL_DELAY_MS, DEFAULT_MAX_RETRIES
from .errors import StepConfigError

ExecutionContext = Dict[str, Any]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class ExecutionStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    PAUSED = "paused"


class LogEvent(str, Enum):
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"
    PAUSED = "paused"
    RETRIED = "retried"


class Trigger(BaseModel):
    """Event source that starts a workflow."""

    type: Literal["email", "cron", "webhook", "manual"]
    config: Dict[str, Any] = Field(default_factory=dict)


class Step(BaseModel):
    """One unit of work within a workflow."""

    id: str = Field(default_factory=new_id)
    type: str
    config: Dict[str, Any] = Field(default_factory=dict)
    order: int = Field(ge=0)


class NotificationConfig(BaseModel):
    """Where to deliver failure and pause notifications for a workflow."""

    type: Literal["email", "webhook"]
    config: Dict[str, Any] = Field(default_factory=dict)
    on_failure: bool = True
    on_pause: bool = False


class Workflow(BaseModel):
    """A named, ordered set of steps plus an optional trigger."""

    id: str = Field(default_factory=new_id)
    name: str
    status: Literal["draft", "published", "active"] = "draft"
    trigger: Optional[Trigger] = None
    steps: List[Step] = Field(default_factory=list)
    notifications: List[NotificationConfig] = Field(default_factory=list)

    @field_validator("steps")
    @classmethod
    def _unique_orders(cls, steps: List[Step]) -> List[Step]:
        orders = [s.order for s in steps]
        if len(orders) != len(set(orders)):
            raise ValueError("step order values must be unique")
        return sorted(steps, key=lambda s: s.order)


class Execution(BaseModel):
    """One run of a workflow."""

    id: str = Field(default_factory=new_id)
    workflow_id: str
    status: ExecutionStatus = ExecutionStatus.RUNNING
    current_step_order: Optional[int] = None
    context: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
    paused_at: Optional[datetime] = None
    resume_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class ExecutionLogEntry(BaseModel):
    """Immutable record of a single step lifecycle event."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    execution_id: str
    step_id: str
    step_order: int
    event_type: LogEvent
    timestamp: datetime = Field(default_factory=utc_now)
    metadata: Optional[Dict[str, Any]] = None


class RetryPolicy(BaseModel):
    """Per-step retry settings. Total attempts are ``max_retries + 1``."""

    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    initial_delay: int = Field(default=DEFAULT_INITIAL_DELAY_MS, ge=0)

    @classmethod
    def from_step_config(
        cls, config: Dict[str, Any], default: Optional["RetryPolicy"] = None
    ) -> "RetryPolicy":
        """Read the ``retry`` override from a step config, else ``default``.

        Raises:
            StepConfigError: If the override is not an object or holds invalid values.
        """
        base = default or cls()
        override = config.get("retry")
        if override is None:
            return base
        if not isinstance(override, dict):
            raise StepConfigError('Step "retry" must be an object')
        try:
            return cls(
                max_retries=override.get("maxRetries", base.max_retries),
                initial_delay=override.get("initialDelay", base.initial_delay),
            )
        except ValidationError as e:
            raise StepConfigError(f"Invalid retry policy: {e}") from e


class StepResult(BaseModel):
    """Value returned by a step executor."""

    output: Dict[str, Any] = Field(default_factory=dict)


class FailedStep(BaseModel):
    order: int
    type: str


class NotificationPayload(BaseModel):
    """Failure or pause summary sent to notification targets."""

    workflowId: str
    executionId: str
    failedStep: Optional[FailedStep] = None
    errorMessage: Optional[str] = None
    status: Literal["failed", "paused"]
    pausedAt: Optional[str] = None
    resumeAt: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dict; pause timestamps are omitted when unset."""
        unset = {k for k in ("pausedAt", "resumeAt") if getattr(self, k) is None}
        return self.model_dump(mode="json", exclude=unset)


class ExecutionResult(BaseModel):
    """Outcome of a single orchestrator run."""

    execution_id: str
    status: ExecutionStatus
    success: bool
    context: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None


class ExecutionJob(BaseModel):
    """Envelope consumed from the execution queue.

    The presence of ``execution_id`` selects resume mode.
    """

    job_id: str = Field(default_factory=new_id)
    workflow_id: str
    trigger_payload: Dict[str, Any] = Field(default_factory=dict)
    execution_id: Optional[str] = None
    enqueued_at: datetime = Field(default_factory=utc_now)

    @property
    def is_resume(self) -> bool:
        return self.execution_id is not None

    def to_json(self) -> str:
        """Serialize job to JSON."""
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str) -> "ExecutionJob":
        """Deserialize job from JSON."""
        return cls.model_validate_json(data)
