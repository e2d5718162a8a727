from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging

import httpx
from tenacity import retry, wait_exponential, stop_after_attempt, retry_if_exception_type

from .base import BaseConnector, ConnectorResult
from ..caching import cache_key, cached_get
from ...core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def _normalize_result(item: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "url": item.get("url") or "",
        "title": item.get("title") or "",
        "content": item.get("content") or "",
        "raw_content": item.get("raw_content"),
        "score": float(item.get("score") or 0.0),
        "published_date": item.get("published_date"),
        "author": item.get("author"),
    }


class TavilyConnector(BaseConnector):
    """
    Tavily Search + Extract.

    fetch(mode="search", query=...) -> {"results": [...], "answer": str | None}
    fetch(mode="extract", url=...)  -> {"url", "raw_content", "images"}
    """

    name = "tavily"

    def __init__(self, api_key: str | None = None, **kwargs: Any) -> None:
        super().__init__(api_key if api_key is not None else settings.TAVILY_API_KEY, **kwargs)
        self.base_url = settings.TAVILY_BASE_URL.rstrip("/")
        self.cache_ttl = 60 * 60

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._require_key()}",
            "Content-Type": "application/json",
        }

    async def fetch(self, **kwargs: Any) -> ConnectorResult:
        mode = kwargs.pop("mode", "search")
        if mode == "extract":
            return ConnectorResult(await self.extract(**kwargs))
        return ConnectorResult(await self.search_raw(**kwargs))

    async def search(self, query: str, **kwargs: Any) -> List[Dict[str, Any]]:
        data = await self.search_raw(query=query, **kwargs)
        return data.get("results") or []

    @retry(
        wait=wait_exponential(multiplier=1, min=1, max=10),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(httpx.HTTPError),
        reraise=True,
    )
    async def search_raw(
        self,
        query: str,
        search_depth: str = "basic",
        max_results: int = 10,
        include_answer: bool = False,
        include_raw_content: bool = False,
        include_domains: Optional[List[str]] = None,
        exclude_domains: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        headers = self._headers()
        payload: Dict[str, Any] = {
            "query": query,
            "search_depth": search_depth,
            "max_results": max_results,
            "include_answer": include_answer,
            "include_raw_content": include_raw_content,
            "include_images": False,
        }
        if include_domains:
            payload["include_domains"] = list(include_domains)
        if exclude_domains:
            payload["exclude_domains"] = list(exclude_domains)

        key = cache_key("tavily:search", payload)
        cached = await cached_get(key)
        if cached is not None:
            return cached

        async with self._client() as client:
            body = await self._post_json_allow_4xx(
                client, f"{self.base_url}/search", payload, headers=headers
            )

        if not body:
            logger.warning(
                "Tavily search returned no data for %r",
                query,
                extra={"connector": self.name},
            )
            return {"results": [], "answer": None}

        data = {
            "results": [_normalize_result(r) for r in body.get("results") or []],
            "answer": body.get("answer"),
        }
        await cached_get(key, set_value=data, ttl=self.cache_ttl)
        return data

    @retry(
        wait=wait_exponential(multiplier=1, min=1, max=10),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(httpx.HTTPError),
        reraise=True,
    )
    async def extract(self, url: str, extract_depth: str = "basic", **_: Any) -> Dict[str, Any]:
        """Extract one page as markdown. Returns {} when Tavily has nothing for it."""
        headers = self._headers()
        payload = {
            "urls": [url],
            "include_images": False,
            "extract_depth": extract_depth,
            "format": "markdown",
        }
        async with self._client() as client:
            body = await self._post_json_allow_4xx(
                client, f"{self.base_url}/extract", payload, headers=headers
            )

        results = (body or {}).get("results") or []
        if not results:
            return {}
        first = results[0]
        return {
            "url": first.get("url") or url,
            "raw_content": first.get("raw_content") or "",
            "images": first.get("images") or [],
        }
