from __future__ import annotations

from typing import Any, Dict, List
import logging

import httpx
from tenacity import retry, wait_exponential, stop_after_attempt, retry_if_exception_type

from .base import BaseConnector, ConnectorResult
from ...core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

SYSTEM_PROMPT = (
    "You are an expert research analyst. Provide comprehensive, accurate, "
    "and well-sourced analysis. Always cite your sources and provide "
    "specific data points when available."
)


class PerplexityConnector(BaseConnector):
    """Perplexity chat completions with online search."""

    name = "perplexity"

    def __init__(self, api_key: str | None = None, **kwargs: Any) -> None:
        super().__init__(api_key if api_key is not None else settings.PERPLEXITY_API_KEY, **kwargs)
        self.base_url = settings.PERPLEXITY_BASE_URL.rstrip("/")
        self.model = settings.PERPLEXITY_MODEL

    async def fetch(self, **kwargs: Any) -> ConnectorResult:
        return ConnectorResult(await self.analyze(**kwargs))

    @retry(
        wait=wait_exponential(multiplier=1, min=1, max=10),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(httpx.HTTPError),
        reraise=True,
    )
    async def analyze(self, prompt: str, max_tokens: int = 2000) -> Dict[str, Any]:
        """
        Returns:
            {"analysis": str, "citations": [url, ...], "model": str}
            or {} when the API rejected the request.
        """
        headers = {
            "Authorization": f"Bearer {self._require_key()}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0.1,
            "max_tokens": max_tokens,
        }

        async with self._client() as client:
            body = await self._post_json_allow_4xx(
                client, f"{self.base_url}/chat/completions", payload, headers=headers
            )

        if not body:
            logger.warning("Perplexity returned no data", extra={"connector": self.name})
            return {}

        choices = body.get("choices") or []
        content = ""
        if choices:
            content = (choices[0].get("message") or {}).get("content") or ""

        citations: List[str] = [c for c in body.get("citations") or [] if isinstance(c, str)]
        return {
            "analysis": content,
            "citations": citations,
            "model": body.get("model") or self.model,
        }
