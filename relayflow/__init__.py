"""relayflow: webhook, schedule and manually triggered workflow automation."""

from .contracts import (
    Execution,
    ExecutionJob,
    ExecutionLogEntry,
    ExecutionResult,
    ExecutionStatus,
    NotificationPayload,
    RetryPolicy,
    Step,
    StepResult,
    Trigger,
    Workflow,
)
from .dispatch import WorkflowDispatcher
from .errors import StepConfigError, StepExecutionError, StepPaused
from .execute import WorkflowExecutor
from .persistence import get_repository
from .registry import StepExecutorRegistry
from .template import render
from .transports import get_transport
from .worker import ExecutionWorker, build_worker

__version__ = "0.1.0"
__all__ = [
    "Execution",
    "ExecutionJob",
    "ExecutionLogEntry",
    "ExecutionResult",
    "ExecutionStatus",
    "ExecutionWorker",
    "NotificationPayload",
    "RetryPolicy",
    "Step",
    "StepConfigError",
    "StepExecutionError",
    "StepExecutorRegistry",
    "StepPaused",
    "StepResult",
    "Trigger",
    "Workflow",
    "WorkflowDispatcher",
    "WorkflowExecutor",
    "build_worker",
    "get_repository",
    "get_transport",
    "render",
]
