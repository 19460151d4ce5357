"""In-memory transport for testing."""

from __future__ import annotations

import asyncio
from collections import defaultdict, deque
from typing import AsyncIterator, Deque, Dict, Optional, Tuple

from ..contracts import ExecutionJob
from .base import BaseTransport


class InMemoryTransport(BaseTransport[Tuple[str, ExecutionJob]]):
    """Simple in-process queue for unit tests."""

    def __init__(self) -> None:
        self._queues: Dict[str, Deque[Tuple[str, ExecutionJob]]] = defaultdict(deque)
        self._lock = asyncio.Lock()

    async def publish(self, queue: str, job: ExecutionJob) -> None:
        """Publish job to in-memory queue."""
        raw = (job.to_json(), job)
        async with self._lock:
            self._queues[queue].append(raw)

    async def subscribe(
        self, queue: str, lifespan: Optional[float] = None
    ) -> AsyncIterator[Tuple[Tuple[str, ExecutionJob], ExecutionJob]]:
        """Consume jobs from queue.

        Args:
            queue: The queue to consume from
            lifespan: Maximum time in seconds to keep consuming. If None, runs indefinitely.
        """
        loop = asyncio.get_running_loop()
        start_time = loop.time() if lifespan else None

        while True:
            if lifespan and start_time:
                elapsed = loop.time() - start_time
                if elapsed >= lifespan:
                    break

            async with self._lock:
                raw_message = self._queues[queue].popleft() if self._queues[queue] else None
            if raw_message is not None:
                yield raw_message, raw_message[1]
                continue

            await asyncio.sleep(0.1)

    async def ack(self, raw_message: Tuple[str, ExecutionJob]) -> None:
        """No-op acknowledgment for in-memory transport."""
        pass

    def pending(self, queue: str) -> int:
        """Number of jobs waiting on ``queue``."""
        return len(self._queues[queue])
