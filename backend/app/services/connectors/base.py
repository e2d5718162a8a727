from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import asyncio

import httpx

from ...core.config import get_settings

settings = get_settings()


class ConnectorResult(dict):
    """Light wrapper, but can add metadata later."""


class ConnectorNotConfigured(RuntimeError):
    """Raised when a connector is called without its API key."""


class BaseConnector(ABC):
    name: str

    def __init__(
        self,
        api_key: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.timeout = float(timeout or settings.HTTP_TIMEOUT_SECONDS)
        # Injected in tests (httpx.MockTransport); None means real network
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def _require_key(self) -> str:
        if not self.api_key:
            raise ConnectorNotConfigured(f"{self.name} API key not configured")
        return self.api_key

    async def _post_json_allow_4xx(
        self,
        client: httpx.AsyncClient,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        - returns None for non-retriable 4xx
        - handles 429 with a single Retry-After backoff
        - raises for 5xx so Tenacity can retry
        """
        resp = await client.post(url, json=payload, headers=headers)

        if resp.status_code == 429:
            retry_after = resp.headers.get("Retry-After")
            delay = int(retry_after) if retry_after and retry_after.isdigit() else 5
            await asyncio.sleep(delay)
            resp = await client.post(url, json=payload, headers=headers)

        if 400 <= resp.status_code < 500 and resp.status_code != 429:
            # treat client-side errors as "no data"
            return None

        resp.raise_for_status()
        return resp.json()

    @abstractmethod
    async def fetch(self, **kwargs) -> ConnectorResult:
        ...
