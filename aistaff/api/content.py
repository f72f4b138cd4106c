"""Content generation endpoints"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from aistaff.api.auth import get_current_user
from aistaff.db import get_db, User, GeneratedContent
from aistaff.schemas import ContentCreate, ContentRecord, ContentResponse
from aistaff.services import ContentService, LLMService, get_llm_service, content_payload
from aistaff.structured_logging import set_request_context

router = APIRouter(prefix="/agent", tags=["Content"])


def content_to_record(record: GeneratedContent) -> ContentRecord:
    return ContentRecord(
        id=record.id,
        agent_id=record.agent_id,
        type=record.content_type,
        data=content_payload(record),
        created_at=record.created_at,
    )


@router.post(
    "/{agent_id}/content/create",
    response_model=ContentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_content(
    agent_id: str,
    request: ContentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    llm: LLMService = Depends(get_llm_service),
):
    """Generate a post, caption, ad, blog intro or email for an agent"""
    set_request_context(agent_id=agent_id)
    service = ContentService(db, llm_service=llm)
    result = await service.generate(agent_id, request.type.value, request.prompt, current_user.id)
    return ContentResponse(
        content=content_to_record(result.content),
        usage=result.usage,
        note=result.note,
    )


@router.get("/{agent_id}/content/all", response_model=List[ContentRecord])
async def list_content(
    agent_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    llm: LLMService = Depends(get_llm_service),
):
    """Generated content of an agent, newest first"""
    service = ContentService(db, llm_service=llm)
    records = await service.list_content(agent_id, current_user.id)
    return [content_to_record(r) for r in records]
