"""Agent endpoints"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from aistaff.api.auth import get_current_user
from aistaff.db import get_db, User
from aistaff.schemas import AgentCreate, AgentResponse, DeleteResponse
from aistaff.services import agent_service

router = APIRouter(prefix="/agent", tags=["Agents"])


@router.post("/create", response_model=AgentResponse, status_code=status.HTTP_201_CREATED)
async def create_agent(
    data: AgentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create an agent for one of the user's businesses"""
    agent = await agent_service.create_agent(
        db,
        business_id=data.business_id,
        agent_name=data.agent_name,
        user_id=current_user.id,
        persona=data.persona,
    )
    return AgentResponse.model_validate(agent)


@router.get("/by-business/{business_id}", response_model=List[AgentResponse])
async def list_agents_by_business(
    business_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    agents = await agent_service.list_agents_by_business(db, business_id, current_user.id)
    return [AgentResponse.model_validate(agent) for agent in agents]


@router.get("/{agent_id}", response_model=AgentResponse)
async def get_agent(
    agent_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    agent = await agent_service.get_owned_agent(db, agent_id, current_user.id)
    return AgentResponse.model_validate(agent)


@router.delete("/{agent_id}", response_model=DeleteResponse)
async def delete_agent(
    agent_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Delete an agent with its memories, messages and content"""
    await agent_service.delete_agent(db, agent_id, current_user.id)
    return DeleteResponse(message="Agent deleted")


@router.put("/{agent_id}/update-memory", response_model=AgentResponse)
async def update_agent_memory(
    agent_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Regenerate the agent's memory from the current business profile"""
    agent = await agent_service.refresh_agent_memory(db, agent_id, current_user.id)
    return AgentResponse.model_validate(agent)
