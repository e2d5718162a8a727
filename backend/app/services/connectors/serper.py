from __future__ import annotations

from typing import Any, Dict, List
import logging

import httpx
from tenacity import retry, wait_exponential, stop_after_attempt, retry_if_exception_type

from .base import BaseConnector, ConnectorResult
from ..caching import cache_key, cached_get
from ...core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class SerperConnector(BaseConnector):
    """Google web results via serper.dev, normalized to the Tavily result shape."""

    name = "serper"

    def __init__(self, api_key: str | None = None, **kwargs: Any) -> None:
        super().__init__(api_key if api_key is not None else settings.SERPER_API_KEY, **kwargs)
        self.base_url = settings.SERPER_BASE_URL.rstrip("/")

    async def fetch(self, **kwargs: Any) -> ConnectorResult:
        return ConnectorResult({"results": await self.search(**kwargs)})

    @retry(
        wait=wait_exponential(multiplier=1, min=1, max=10),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(httpx.HTTPError),
        reraise=True,
    )
    async def search(self, query: str, num: int = 10) -> List[Dict[str, Any]]:
        headers = {"X-API-KEY": self._require_key(), "Content-Type": "application/json"}
        payload = {"q": query, "num": num}

        key = cache_key("serper:search", payload)
        cached = await cached_get(key)
        if cached is not None:
            return cached

        async with self._client() as client:
            body = await self._post_json_allow_4xx(
                client, f"{self.base_url}/search", payload, headers=headers
            )

        if not body:
            return []

        organic = body.get("organic") or []
        results: List[Dict[str, Any]] = []
        for rank, item in enumerate(organic):
            if not item.get("link"):
                continue
            results.append(
                {
                    "url": item["link"],
                    "title": item.get("title") or "",
                    "content": item.get("snippet") or "",
                    "raw_content": None,
                    # Serper has no relevance score; derive one from rank
                    "score": round(max(0.1, 1.0 - rank * 0.05), 2),
                    "published_date": item.get("date"),
                    "author": None,
                }
            )

        await cached_get(key, set_value=results, ttl=60 * 60)
        return results
