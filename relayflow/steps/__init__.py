"""Built-in step integrations."""

from __future__ import annotations

from typing import Optional

from ..config import RelayflowConfig, load_config
from ..registry import StepExecutorRegistry
from .database_step import DatabaseStepExecutor
from .email_step import EmailProvider, EmailStepExecutor, SmtpEmailProvider
from .http_step import HttpStepExecutor
from .telegram_step import TelegramStepExecutor
from .transform_step import TransformStepExecutor
from .wait_step import WaitStepExecutor


def build_default_registry(
    config: Optional[RelayflowConfig] = None,
    email_provider: Optional[EmailProvider] = None,
) -> StepExecutorRegistry:
    """Create a registry with every built-in step type registered."""
    config = config or load_config()
    registry = StepExecutorRegistry()
    registry.register("http", HttpStepExecutor())
    registry.register(
        "email", EmailStepExecutor(email_provider or SmtpEmailProvider(config.smtp))
    )
    registry.register("telegram", TelegramStepExecutor(api_base=config.telegram_api_base))
    registry.register("database", DatabaseStepExecutor())
    registry.register("transform", TransformStepExecutor())
    registry.register("wait", WaitStepExecutor())
    return registry


__all__ = [
    "DatabaseStepExecutor",
    "EmailProvider",
    "EmailStepExecutor",
    "HttpStepExecutor",
    "SmtpEmailProvider",
    "TelegramStepExecutor",
    "TransformStepExecutor",
    "WaitStepExecutor",
    "build_default_registry",
]
