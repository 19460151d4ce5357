"""Step executor registry.

Maps a step type tag to the executor that performs it. A registry is built
once at start-up and handed to the :class:`~relayflow.execute.WorkflowExecutor`;
lookups are safe to share across concurrently running executions.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Protocol, runtime_checkable

from .contracts import StepResult

logger = logging.getLogger(__name__)


@runtime_checkable
class StepExecutor(Protocol):
    """Capability every step integration must satisfy.

    ``execute`` receives the templated step config and a read-only copy of the
    execution context. Raising signals the orchestrator to apply the retry
    policy, so implementations should tolerate being invoked more than once.
    """

    async def execute(
        self, config: Dict[str, Any], context: Dict[str, Any]
    ) -> StepResult: ...


class EchoStepExecutor:
    """Fallback for unregistered step types.

    Echoes the config back with markers so tooling can tell that no real
    executor ran.
    """

    async def execute(
        self, config: Dict[str, Any], context: Dict[str, Any]
    ) -> StepResult:
        return StepResult(
            output={**config, "_executed": True, "_contextKeys": list(context)}
        )


class StepExecutorRegistry:
    """Lookup table from step type to executor."""

    def __init__(self, fallback: StepExecutor | None = None) -> None:
        self._executors: Dict[str, StepExecutor] = {}
        self._fallback = fallback or EchoStepExecutor()

    def register(self, step_type: str, executor: StepExecutor) -> None:
        """Register ``executor`` for ``step_type``, replacing any previous one."""
        if not step_type:
            raise ValueError("step_type must be a non-empty string")
        if step_type in self._executors:
            logger.warning(f"Replacing executor registered for step type {step_type!r}")
        self._executors[step_type] = executor

    def get(self, step_type: str) -> StepExecutor:
        """Return the executor for ``step_type``; never fails."""
        executor = self._executors.get(step_type)
        if executor is None:
            logger.warning(
                f"No executor registered for step type {step_type!r}; using echo executor"
            )
            return self._fallback
        return executor

    def __contains__(self, step_type: object) -> bool:
        return step_type in self._executors

    @property
    def step_types(self) -> list[str]:
        return sorted(self._executors)


__all__ = ["StepExecutor", "EchoStepExecutor", "StepExecutorRegistry"]
