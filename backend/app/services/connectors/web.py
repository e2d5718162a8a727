from __future__ import annotations

from typing import Any, Dict
import logging
import random

import httpx
from tenacity import retry, wait_exponential, stop_after_attempt, retry_if_exception_type

from .base import BaseConnector, ConnectorResult

logger = logging.getLogger(__name__)

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
]


class WebPageConnector(BaseConnector):
    """Plain GET of a page, used when Tavily Extract is unavailable."""

    name = "web"

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(None, **kwargs)

    @property
    def configured(self) -> bool:
        return True

    async def fetch(self, **kwargs: Any) -> ConnectorResult:
        return ConnectorResult(await self.get_page(kwargs["url"]))

    @retry(
        wait=wait_exponential(multiplier=1, min=1, max=10),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def get_page(self, url: str) -> Dict[str, Any]:
        headers = {
            "User-Agent": random.choice(USER_AGENTS),
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        }
        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            resp = await client.get(url, headers=headers)

        # 4xx/5xx pages count as a failed crawl
        resp.raise_for_status()
        return {
            "url": str(resp.url),
            "html": resp.text,
            "status_code": resp.status_code,
        }
