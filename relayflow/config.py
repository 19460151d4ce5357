from __future__ import annotations

import os
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_INITIAL_DELAY_MS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_QUEUE_NAME,
    DEFAULT_WORKER_CONCURRENCY,
)


class RedisConfig(BaseModel):
    """Configuration for Redis transport."""

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None


class TransportConfig(BaseModel):
    """Transport configuration settings."""

    backend: Literal["inmemory", "redis"] = "inmemory"
    redis: RedisConfig = RedisConfig()


class RetryConfig(BaseModel):
    """Global retry defaults, overridable per step."""

    max_retries: int = DEFAULT_MAX_RETRIES
    initial_delay: int = DEFAULT_INITIAL_DELAY_MS


class SmtpConfig(BaseModel):
    """SMTP settings used by the email step and email notifications."""

    host: str = "localhost"
    port: int = 587
    user: Optional[str] = None
    password: Optional[str] = None
    from_address: str = "noreply@localhost"


class RelayflowConfig(BaseModel):
    """Top-level configuration model."""

    transport: TransportConfig = TransportConfig()
    queue_name: str = DEFAULT_QUEUE_NAME
    worker_concurrency: int = Field(default=DEFAULT_WORKER_CONCURRENCY, ge=1)
    database_url: Optional[str] = None
    retry: RetryConfig = Field(default_factory=RetryConfig)
    smtp: SmtpConfig = Field(default_factory=SmtpConfig)
    telegram_api_base: str = "https://api.telegram.org"


def _apply_smtp_env(smtp: SmtpConfig) -> None:
    if host := os.getenv("SMTP_HOST"):
        smtp.host = host
    if port := os.getenv("SMTP_PORT"):
        smtp.port = int(port)
    if user := os.getenv("SMTP_USER"):
        smtp.user = user
    if password := os.getenv("SMTP_PASS"):
        smtp.password = password
    if from_address := os.getenv("SMTP_FROM"):
        smtp.from_address = from_address


def load_config(path: Optional[str] = None) -> RelayflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to RELAYFLOW_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("RELAYFLOW_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = RelayflowConfig(**data)
    else:
        config = RelayflowConfig()

    env_db_url = os.getenv("RELAYFLOW_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    _apply_smtp_env(config.smtp)
    return config
