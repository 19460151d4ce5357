"""Queue interface shared by the worker, the dispatcher and the scheduler."""

from __future__ import annotations

import abc
from typing import AsyncIterator, Generic, Optional, Tuple, TypeVar

from ..contracts import ExecutionJob

RawMessageT = TypeVar("RawMessageT")


class BaseTransport(Generic[RawMessageT], metaclass=abc.ABCMeta):
    """A named-queue carrier for :class:`ExecutionJob` messages.

    ``RawMessageT`` is whatever the backend hands out on consumption (a Redis
    payload string, an in-memory tuple); the worker passes it back to
    :meth:`ack` once the job has been handled, successful or not.
    """

    async def connect(self) -> None:
        """Open the backend connection. Backends without one keep the default."""

    async def disconnect(self) -> None:
        """Release the backend connection."""

    @abc.abstractmethod
    async def publish(self, queue: str, job: ExecutionJob) -> None:
        """Append ``job`` to ``queue``."""
        raise NotImplementedError

    @abc.abstractmethod
    async def subscribe(
        self, queue: str, lifespan: Optional[float] = None
    ) -> AsyncIterator[Tuple[RawMessageT, ExecutionJob]]:
        """Yield ``(raw_message, job)`` pairs in FIFO order.

        Messages that do not decode into an :class:`ExecutionJob` are dropped
        by the backend. Consumption stops after ``lifespan`` seconds, or never
        when it is None.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def ack(self, raw_message: RawMessageT) -> None:
        """Mark ``raw_message`` as handled."""
        raise NotImplementedError
