import logging

from fastapi import APIRouter, Depends, HTTPException

from ..schemas.chat import ChatRequest, ChatResponse
from ..services.agents.manager import AgentManager, get_agent_manager
from ..services.chat import CAPABILITIES, chat
from ..services.memory import MemoryService, get_memory_service
from .routes_agents import verify_api_key

router = APIRouter(prefix="/chat", tags=["chat"])
logger = logging.getLogger(__name__)


@router.post("", response_model=ChatResponse)
async def post_chat(
    payload: ChatRequest,
    memory: MemoryService = Depends(get_memory_service),
    _: None = Depends(verify_api_key),
):
    try:
        return await chat(
            payload.message,
            payload.user_id,
            memory,
            session_id=payload.session_id,
            context=payload.context,
        )
    except Exception as e:
        logger.exception(
            "Chat failed: %s",
            e,
            extra={"user_id": payload.user_id, "step": "chat"},
        )
        raise HTTPException(status_code=500, detail="Failed to process chat message")


@router.get("")
async def get_chat(
    operation: str,
    user_id: str | None = None,
    memory: MemoryService = Depends(get_memory_service),
    manager: AgentManager = Depends(get_agent_manager),
    _: None = Depends(verify_api_key),
):
    if operation == "memory-status":
        return {
            "enabled": memory.enabled,
            "status": "ready" if memory.enabled else "disabled",
            "agent_system_ready": manager.initialized,
            "capabilities": CAPABILITIES,
        }

    if operation == "user-memories" and user_id:
        if not memory.enabled:
            raise HTTPException(status_code=503, detail="Memory service not initialized")
        memories = await memory.get_user_memories(user_id, 20)
        return {
            "user_id": user_id,
            "total_memories": len(memories),
            "memories": [
                {
                    "id": m["id"],
                    "preview": m["memory"][:100] + ("..." if len(m["memory"]) > 100 else ""),
                    "created_at": m["created_at"],
                    "type": m["type"],
                }
                for m in memories
            ],
        }

    raise HTTPException(status_code=400, detail="Invalid operation or missing parameters")
