"""Chat endpoints - one turn at a time, plus history"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from aistaff.api.auth import get_current_user
from aistaff.db import get_db, User
from aistaff.schemas import ChatRequest, ChatResponse, MessageResponse
from aistaff.services import ConversationService, LLMService, get_llm_service
from aistaff.structured_logging import set_request_context

router = APIRouter(prefix="/agent", tags=["Chat"])


@router.post("/{agent_id}/chat", response_model=ChatResponse)
async def chat(
    agent_id: str,
    request: ChatRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    llm: LLMService = Depends(get_llm_service),
):
    """
    Send a message to an agent.

    Quota exhaustion at the provider is not an error: the reply is a local
    fallback and ``note`` says so.
    """
    set_request_context(agent_id=agent_id)
    service = ConversationService(db, llm_service=llm)
    result = await service.chat(agent_id, request.message, current_user.id)
    return ChatResponse(message=result.message, usage=result.usage, note=result.note)


@router.get("/{agent_id}/messages", response_model=List[MessageResponse])
async def list_messages(
    agent_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    llm: LLMService = Depends(get_llm_service),
):
    """Full conversation history, oldest first"""
    service = ConversationService(db, llm_service=llm)
    messages = await service.list_messages(agent_id, current_user.id)
    return [MessageResponse.model_validate(m) for m in messages]
