from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Any, Dict, List, Optional
import logging

import httpx
from tenacity import retry, wait_exponential, stop_after_attempt, retry_if_exception_type

from ..core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass
class MemoryContext:
    user_id: str
    session_id: Optional[str] = None
    domain: Optional[str] = None
    research_type: Optional[str] = None


def _items(body: Any) -> List[Dict[str, Any]]:
    # Mem0 answers either a bare list or {"results": [...]}
    if isinstance(body, list):
        return [item for item in body if isinstance(item, dict)]
    if isinstance(body, dict):
        return [item for item in body.get("results") or [] if isinstance(item, dict)]
    return []


def _text(item: Dict[str, Any]) -> str:
    return item.get("memory") or item.get("text") or item.get("content") or ""


class MemoryService:
    """
    Mem0 hosted memory over its REST API.

    Memory is best effort: without MEM0_API_KEY every call is a no-op, and
    API failures are logged and turned into empty results.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.MEM0_API_KEY
        self.base_url = (base_url or settings.MEM0_BASE_URL).rstrip("/")
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    @retry(
        wait=wait_exponential(multiplier=1, min=1, max=10),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Dict[str, Any] | None = None,
        params: Dict[str, Any] | None = None,
    ) -> Any:
        headers = {
            "Authorization": f"Token {self.api_key}",
            "Content-Type": "application/json",
        }
        async with httpx.AsyncClient(
            timeout=settings.HTTP_TIMEOUT_SECONDS, transport=self._transport
        ) as client:
            resp = await client.request(
                method, f"{self.base_url}{path}", json=json, params=params, headers=headers
            )
            resp.raise_for_status()
            return resp.json()

    @staticmethod
    def _scope(context: MemoryContext) -> Dict[str, Any]:
        scope: Dict[str, Any] = {"user_id": context.user_id}
        if context.session_id:
            scope["run_id"] = context.session_id
        return scope

    async def _add(
        self,
        messages: List[Dict[str, str]],
        context: MemoryContext,
        metadata: Dict[str, Any] | None,
    ) -> Optional[str]:
        payload = {"messages": messages, **self._scope(context)}
        if metadata:
            payload["metadata"] = {
                **metadata,
                "session_id": context.session_id,
                "domain": context.domain,
                "research_type": context.research_type,
                "timestamp": datetime.utcnow().isoformat(),
            }
        try:
            body = await self._request("POST", "/v1/memories/", json=payload)
        except httpx.HTTPError as e:
            logger.warning(
                "Mem0 add failed: %s",
                e,
                extra={"user_id": context.user_id, "connector": "mem0"},
            )
            return None

        items = _items(body)
        if items and items[0].get("id"):
            return str(items[0]["id"])
        if isinstance(body, dict) and body.get("id"):
            return str(body["id"])
        # Mem0 processes some writes asynchronously and returns no id
        return "success"

    async def add_memory(
        self,
        memory: str,
        context: MemoryContext,
        metadata: Dict[str, Any] | None = None,
    ) -> Optional[str]:
        if not self.enabled:
            return None
        return await self._add([{"role": "user", "content": memory}], context, metadata)

    async def search_memories(self, query: str, context: MemoryContext, limit: int = 5) -> List[str]:
        if not self.enabled:
            return []
        payload = {"query": query, "limit": limit, **self._scope(context)}
        try:
            body = await self._request("POST", "/v1/memories/search/", json=payload)
        except httpx.HTTPError as e:
            logger.warning(
                "Mem0 search failed: %s",
                e,
                extra={"user_id": context.user_id, "connector": "mem0"},
            )
            return []
        return [text for text in (_text(item) for item in _items(body)) if text][:limit]

    async def get_all_memories(self, context: MemoryContext) -> List[Dict[str, Any]]:
        if not self.enabled:
            return []
        try:
            body = await self._request("GET", "/v1/memories/", params=self._scope(context))
        except httpx.HTTPError as e:
            logger.warning(
                "Mem0 list failed: %s",
                e,
                extra={"user_id": context.user_id, "connector": "mem0"},
            )
            return []
        return _items(body)

    async def store_research_findings(self, findings: Dict[str, Any], context: MemoryContext) -> List[str]:
        """
        Store a research result as several memories: the summary, each key
        finding, each insight and the competitor list. Returns the stored ids.
        """
        if not self.enabled:
            return []
        query = findings.get("query") or ""

        def meta(kind: str) -> Dict[str, Any]:
            return {"type": kind, "query": query, "category": "research"}

        entries = [(f'Research on "{query}": {findings.get("summary") or ""}', meta("research_summary"))]
        entries += [
            (f'Key finding from research on "{query}": {finding}', meta("research_finding"))
            for finding in findings.get("key_findings") or []
        ]
        for insight in findings.get("insights") or []:
            text = insight.get("insight") if isinstance(insight, dict) else insight
            entries.append((f'Insight from research on "{query}": {text}', meta("research_insight")))
        competitors = findings.get("competitors") or []
        if competitors:
            entries.append(
                (
                    f'Competitors identified in research on "{query}": {", ".join(competitors)}',
                    meta("research_competitors"),
                )
            )

        ids = []
        for text, metadata in entries:
            memory_id = await self.add_memory(text, context, metadata)
            if memory_id:
                ids.append(memory_id)
        return ids

    async def store_chat_context(self, messages: List[Dict[str, str]], context: MemoryContext) -> Optional[str]:
        if not self.enabled or not messages:
            return None
        return await self._add(
            [{"role": m["role"], "content": m["content"]} for m in messages],
            context,
            {"type": "chat_conversation"},
        )

    async def store_chat_interaction(
        self,
        user_message: str,
        assistant_response: str,
        context: MemoryContext,
    ) -> Optional[str]:
        return await self.store_chat_context(
            [
                {"role": "user", "content": user_message},
                {"role": "assistant", "content": assistant_response},
            ],
            context,
        )

    async def get_relevant_context(self, query: str, context: MemoryContext, limit: int = 5) -> str:
        return "\n\n".join(await self.search_memories(query, context, limit))

    async def get_chat_context(self, user_id: str, session_id: Optional[str] = None, limit: int = 5) -> str:
        memories = await self.get_all_memories(MemoryContext(user_id=user_id, session_id=session_id))
        chat = [
            _text(m)
            for m in memories
            if (m.get("metadata") or {}).get("type") == "chat_conversation" and _text(m)
        ]
        if not chat:
            return ""
        return "Previous conversation context:\n" + "\n".join(chat[-limit:])

    async def get_user_memories(self, user_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        memories = await self.get_all_memories(MemoryContext(user_id=user_id))
        return [
            {
                "id": m.get("id"),
                "memory": _text(m),
                "created_at": m.get("created_at"),
                "type": (m.get("metadata") or {}).get("type") or "general",
            }
            for m in memories[:limit]
        ]


@lru_cache(maxsize=1)
def get_memory_service() -> MemoryService:
    return MemoryService()
