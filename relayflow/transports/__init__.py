"""Job queues: in-process for tests and single-process runs, Redis otherwise."""

from __future__ import annotations

import os
from typing import Optional

from ..config import RelayflowConfig, load_config
from .base import BaseTransport
from .inmemory import InMemoryTransport

TRANSPORT_ENV_VAR = "RELAYFLOW_TRANSPORT"


def get_transport(
    backend: Optional[str] = None, config: Optional[RelayflowConfig] = None
) -> BaseTransport:
    """Build the job queue transport.

    The backend name comes from ``backend``, then ``RELAYFLOW_TRANSPORT``, then
    ``config.transport.backend``. Redis connection settings always come from
    ``config``. Every call returns a new, unconnected transport; the in-memory
    one is only shared by the components that are handed the same instance.
    """
    config = config or load_config()
    name = (backend or os.getenv(TRANSPORT_ENV_VAR) or config.transport.backend).lower()

    if name == "inmemory":
        return InMemoryTransport()
    if name == "redis":
        # redis.asyncio is only imported when a Redis queue is requested
        from .redis import RedisTransport

        return RedisTransport.from_config(config.transport.redis)
    raise ValueError(
        f"Unsupported transport backend: {name} (expected 'inmemory' or 'redis')"
    )


__all__ = ["BaseTransport", "InMemoryTransport", "TRANSPORT_ENV_VAR", "get_transport"]
