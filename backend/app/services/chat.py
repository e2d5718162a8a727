from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional
import asyncio
import logging

from ..core.config import get_settings
from .llm import get_llm_client, limit_llm_concurrency, llm_configured
from .memory import MemoryContext, MemoryService

logger = logging.getLogger(__name__)
settings = get_settings()

SYSTEM_PROMPT = (
    "You are a competitive intelligence assistant. You help users analyze "
    "competitors, markets and trends. Use the conversation history and prior "
    "research provided to give specific, concise answers. Say so when the "
    "available context does not cover the question."
)

CAPABILITIES = [
    "Conversational Memory",
    "Research Context Retention",
    "Personalized Responses",
    "Session Continuity",
    "Cross-Session Learning",
]


def rule_based_reply(prompt: str) -> str:
    lowered = prompt.lower()
    if "competitor" in lowered or "competition" in lowered:
        return (
            "I can help you analyze competitors. I have access to your previous research "
            "and can provide contextual insights based on your past queries. What specific "
            "competitive analysis would you like me to perform?"
        )
    if "research" in lowered or "analyze" in lowered:
        return (
            "I can conduct deep research using multiple sources and AI analysis. Based on "
            "your conversation history, I'll provide relevant context and insights. What "
            "topic would you like me to research?"
        )
    if "memory" in lowered or "remember" in lowered:
        return (
            "I have access to your research history and previous conversations. I can recall "
            "past insights and findings across sessions. What would you like me to recall?"
        )
    return (
        "I'm here to help with competitive intelligence, market research and analysis. "
        "Based on your history, I can provide personalized insights. How can I assist you today?"
    )


def _complete(prompt: str, industry: Optional[str]) -> str:
    system = SYSTEM_PROMPT
    if industry:
        system += f" The user works in the {industry} industry."
    client = get_llm_client()
    with limit_llm_concurrency():
        resp = client.chat.completions.create(
            model=settings.LLM_MODEL,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            temperature=0.3,
        )
    return (resp.choices[0].message.content or "").strip()


async def generate_reply(prompt: str, context: Dict[str, Any] | None = None) -> str:
    if not llm_configured():
        return rule_based_reply(prompt)
    try:
        reply = await asyncio.to_thread(_complete, prompt, (context or {}).get("industry"))
    except Exception as e:
        logger.exception("LLM chat completion failed: %s", e, extra={"step": "chat"})
        return rule_based_reply(prompt)
    return reply or rule_based_reply(prompt)


async def chat(
    message: str,
    user_id: str,
    memory: MemoryService,
    session_id: Optional[str] = None,
    context: Dict[str, Any] | None = None,
) -> Dict[str, Any]:
    """
    Answer one chat message using the user's conversation history and
    related research memories, then store the exchange.
    """
    context = context or {}
    message = message.strip()
    mem_ctx = MemoryContext(
        user_id=user_id,
        session_id=session_id,
        domain=context.get("industry"),
        research_type=context.get("research_type"),
    )

    chat_context = await memory.get_chat_context(user_id, session_id, 5)
    relevant = await memory.search_memories(message, mem_ctx, 3)

    prompt = message
    if chat_context:
        prompt = f"{chat_context}\n\nCurrent message: {message}"
    if relevant:
        prompt += "\n\nRelevant previous research:\n" + "\n\n".join(relevant)

    response = await generate_reply(prompt, context)
    await memory.store_chat_interaction(message, response, mem_ctx)

    return {
        "success": True,
        "response": response,
        "metadata": {
            "timestamp": datetime.utcnow().isoformat(),
            "memory_enhanced": memory.enabled,
            "context_used": bool(chat_context or relevant),
            "session_id": session_id,
        },
    }
