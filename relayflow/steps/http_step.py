"""HTTP request step."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..contracts import StepResult
from ..errors import StepConfigError, StepExecutionError

logger = logging.getLogger(__name__)


class HttpStepExecutor:
    """Send a GET or POST request and expose the response body.

    Config: ``url`` (required), ``method`` (``GET`` or ``POST``), ``headers``
    and, for POST, ``body`` (string sent as-is, dicts/lists sent as JSON).
    Output: ``httpResponse`` (parsed JSON or text), ``status``, ``statusText``.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def execute(
        self, config: Dict[str, Any], context: Dict[str, Any]
    ) -> StepResult:
        url = config.get("url")
        if not url or not isinstance(url, str):
            raise StepConfigError("HTTP step requires a valid URL in config.url")

        method = str(config.get("method") or "GET").upper()
        if method not in ("GET", "POST"):
            raise StepConfigError(f"HTTP step method must be GET or POST, got: {method}")

        headers: Dict[str, str] = {}
        headers_config = config.get("headers")
        if isinstance(headers_config, dict):
            headers = {k: v for k, v in headers_config.items() if isinstance(v, str)}

        request_kwargs: Dict[str, Any] = {"headers": headers}
        body = config.get("body")
        if method == "POST" and body is not None:
            if isinstance(body, (dict, list)):
                request_kwargs["json"] = body
            else:
                headers.setdefault("Content-Type", "application/json")
                request_kwargs["content"] = str(body)

        try:
            async with self._client() as client:
                response = await client.request(method, url, **request_kwargs)
        except httpx.HTTPError as e:
            raise StepExecutionError(f"HTTP request to {url} failed: {e}") from e

        if response.is_error:
            raise StepExecutionError(
                f"HTTP request failed: {response.status_code} {response.reason_phrase}"
            )

        if "application/json" in response.headers.get("content-type", ""):
            data: Any = response.json()
        else:
            data = response.text

        logger.debug(f"{method} {url} -> {response.status_code}")
        return StepResult(
            output={
                "httpResponse": data,
                "status": response.status_code,
                "statusText": response.reason_phrase,
            }
        )
