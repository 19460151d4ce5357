"""Storage for workflow definitions, executions and execution logs."""

from __future__ import annotations

import os
from typing import Optional

from ..config import RelayflowConfig, load_config
from .inmemory import InMemoryExecutionRepository
from .postgres import PostgresExecutionRepository
from .repository import ExecutionRepository
from .sqlite import SQLiteExecutionRepository

# Process-wide repository shared by the CLI commands, the worker and the scheduler.
_repository_instance: ExecutionRepository | None = None


def repository_for_url(database_url: Optional[str]) -> ExecutionRepository:
    """Create the repository named by ``database_url``.

    ``None`` or an empty URL keeps everything in memory, ``sqlite://<path>``
    opens a SQLite file and ``postgres://`` / ``postgresql://`` connect through
    asyncpg.
    """
    if not database_url:
        return InMemoryExecutionRepository()
    if database_url.startswith("sqlite://"):
        return SQLiteExecutionRepository(database_url[len("sqlite://"):])
    if database_url.startswith(("postgres://", "postgresql://")):
        return PostgresExecutionRepository(database_url)
    raise ValueError(f"Unsupported database backend: {database_url}")


def get_repository(
    database_url: Optional[str] = None, config: Optional[RelayflowConfig] = None
) -> ExecutionRepository:
    """Return the process-wide execution repository.

    Without arguments the existing repository is reused. Otherwise the URL is
    taken from ``database_url``, ``RELAYFLOW_DATABASE_URL``, ``DATABASE_URL``
    or ``config.database_url`` in that order, and the new repository replaces
    the shared one.
    """
    global _repository_instance
    if _repository_instance is not None and database_url is None and config is None:
        return _repository_instance

    config = config or load_config()
    _repository_instance = repository_for_url(
        database_url
        or os.getenv("RELAYFLOW_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or config.database_url
    )
    return _repository_instance


__all__ = [
    "ExecutionRepository",
    "InMemoryExecutionRepository",
    "PostgresExecutionRepository",
    "SQLiteExecutionRepository",
    "get_repository",
    "repository_for_url",
]
