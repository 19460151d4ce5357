"""Telegram message step."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from ..contracts import StepResult
from ..errors import StepConfigError, StepExecutionError


class TelegramStepExecutor:
    """Post a message to a chat through the Telegram Bot API."""

    def __init__(
        self,
        api_base: str = "https://api.telegram.org",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def execute(
        self, config: Dict[str, Any], context: Dict[str, Any]
    ) -> StepResult:
        for field in ("botToken", "chatId", "message"):
            value = config.get(field)
            if not value or not isinstance(value, str):
                raise StepConfigError(
                    f'Telegram step requires a valid "{field}" in config.{field}'
                )
        chat_id = config["chatId"]
        text = config["message"]

        url = f"{self._api_base}/bot{config['botToken']}/sendMessage"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(url, json={"chat_id": chat_id, "text": text})
        except httpx.HTTPError as e:
            raise StepExecutionError(f"Telegram API request failed: {e}") from e

        if response.is_error:
            raise StepExecutionError(
                f"Telegram API request failed: {response.status_code} "
                f"{response.reason_phrase}. {response.text}"
            )

        data = response.json()
        if not data.get("ok"):
            raise StepExecutionError(
                f"Telegram API error: {data.get('description') or 'Unknown error'}"
            )

        result = data.get("result") or {}
        return StepResult(
            output={
                "chatId": (result.get("chat") or {}).get("id") or chat_id,
                "message": result.get("text") or text,
            }
        )
