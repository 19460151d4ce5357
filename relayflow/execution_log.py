"""Append-only lifecycle logging for running executions."""

from __future__ import annotations

import logging
from typing import Any, Optional

from .contracts import ExecutionLogEntry, LogEvent
from .persistence import ExecutionRepository

logger = logging.getLogger(__name__)


class ExecutionLogger:
    """Write one :class:`ExecutionLogEntry` per step lifecycle event.

    Logging is best effort: a failing repository is reported on the
    ``relayflow.execution_log`` logger and never propagates to the step
    being documented.
    """

    def __init__(self, repository: ExecutionRepository) -> None:
        self._repository = repository

    async def append(
        self,
        execution_id: str,
        step_id: str,
        step_order: int,
        event_type: LogEvent | str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> ExecutionLogEntry | None:
        try:
            entry = ExecutionLogEntry(
                execution_id=execution_id,
                step_id=step_id,
                step_order=step_order,
                event_type=LogEvent(event_type),
                metadata=metadata,
            )
            await self._repository.append_log(entry)
        except Exception as e:
            logger.error(
                f"Failed to append {event_type} log for execution_id={execution_id} "
                f"step_order={step_order}: {e}"
            )
            return None
        logger.debug(
            f"Execution {execution_id} step {step_order}: {entry.event_type.value}"
        )
        return entry
