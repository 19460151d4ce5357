"""Redis transport for cross-process job queues."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Optional, Tuple

import redis.asyncio as redis
from pydantic import ValidationError

from ..config import RedisConfig
from ..contracts import ExecutionJob
from .base import BaseTransport

logger = logging.getLogger(__name__)


class RedisTransport(BaseTransport[str]):
    """Redis list based job queue."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.db = db
        self.password = password
        self._redis: Optional[Any] = None

    @classmethod
    def from_config(cls, config: RedisConfig) -> "RedisTransport":
        return cls(
            host=config.host,
            port=config.port,
            db=config.db,
            password=config.password,
        )

    @staticmethod
    def queue_key(queue: str) -> str:
        return f"relayflow:{queue}"

    async def connect(self) -> None:
        """Connect to Redis."""
        self._redis = redis.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password,
            decode_responses=True,
        )
        # Test connection
        await self._redis.ping()

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def publish(self, queue: str, job: ExecutionJob) -> None:
        """Push job onto the Redis list acting as queue."""
        if not self._redis:
            await self.connect()
        await self._redis.lpush(self.queue_key(queue), job.to_json())

    async def subscribe(
        self, queue: str, lifespan: Optional[float] = None
    ) -> AsyncIterator[Tuple[str, ExecutionJob]]:
        """Consume jobs from the Redis queue."""
        if not self._redis:
            await self.connect()

        key = self.queue_key(queue)
        loop = asyncio.get_running_loop()
        start_time = loop.time() if lifespan else None

        while True:
            if lifespan and start_time:
                elapsed = loop.time() - start_time
                if elapsed >= lifespan:
                    break

            # Blocking pop with timeout
            result = await self._redis.brpop(key, timeout=1)

            if result:
                _, job_json = result
                try:
                    job = ExecutionJob.from_json(job_json)
                except ValidationError as e:
                    logger.error(f"Dropping malformed job on {key}: {e}")
                    continue
                yield job_json, job

    async def ack(self, raw_message: str) -> None:
        """No-op acknowledgment for Redis transport (message already consumed)."""
        pass
