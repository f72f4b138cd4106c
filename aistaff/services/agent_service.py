"""
Agent service - agents bound to a business

Creating an agent snapshots the business into a brand profile, stores it on
the agent and as a ``business_profile`` memory entry. Editing the business
later does not touch either copy until ``refresh_agent_memory`` runs.
"""

import logging
from typing import List, Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from aistaff.db.models import Agent, Business, MemoryTag
from aistaff.errors import NotFoundError
from aistaff.services.business_service import get_business
from aistaff.services.memory_profile import build_profile
from aistaff.services.memory_store import MemoryStore

logger = logging.getLogger(__name__)


async def get_owned_agent(
    db: AsyncSession,
    agent_id: str,
    user_id: str,
    with_business: bool = True,
) -> Agent:
    """
    Load an agent whose business belongs to ``user_id``.

    Missing and foreign agents are indistinguishable: both raise NotFoundError.
    """
    query = (
        select(Agent)
        .join(Business, Agent.business_id == Business.id)
        .where(and_(Agent.id == agent_id, Business.user_id == user_id))
        .execution_options(populate_existing=True)
    )
    if with_business:
        query = query.options(selectinload(Agent.business))

    result = await db.execute(query)
    agent = result.scalar_one_or_none()
    if agent is None:
        raise NotFoundError("Agent not found")
    return agent


def _agent_memory_text(business: Business, persona: Optional[str]) -> str:
    if persona and persona.strip():
        return persona.strip()
    return build_profile(business)


async def create_agent(
    db: AsyncSession,
    business_id: str,
    agent_name: str,
    user_id: str,
    persona: Optional[str] = None,
    memory_store: Optional[MemoryStore] = None,
) -> Agent:
    """Create an agent for an owned business and seed its profile memory."""
    business = await get_business(db, business_id, user_id)
    memory_text = _agent_memory_text(business, persona)

    agent = Agent(
        business_id=business.id,
        agent_name=agent_name,
        memory=memory_text,
        persona=persona,
    )
    db.add(agent)
    await db.flush()

    store = memory_store or MemoryStore(db)
    await store.upsert_profile_memory(
        agent.id,
        memory_text,
        {"type": MemoryTag.BUSINESS_PROFILE.value, "businessId": business.id},
    )
    logger.info(f"Created agent {agent.id} ({agent_name}) for business {business.id}")
    return await get_owned_agent(db, agent.id, user_id)


async def list_agents_by_business(db: AsyncSession, business_id: str, user_id: str) -> List[Agent]:
    """Agents of an owned business, newest first"""
    await get_business(db, business_id, user_id)
    result = await db.execute(
        select(Agent)
        .options(selectinload(Agent.business))
        .where(Agent.business_id == business_id)
        .order_by(Agent.created_at.desc())
    )
    return list(result.scalars().all())


async def delete_agent(db: AsyncSession, agent_id: str, user_id: str) -> None:
    """Delete an owned agent with its memories, messages and content."""
    agent = await get_owned_agent(db, agent_id, user_id, with_business=False)
    await db.delete(agent)
    await db.commit()
    logger.info(f"Deleted agent {agent_id}")


async def refresh_agent_memory(
    db: AsyncSession,
    agent_id: str,
    user_id: str,
    memory_store: Optional[MemoryStore] = None,
) -> Agent:
    """
    Regenerate an agent's memory from the current business record and
    replace its profile memory entry.
    """
    agent = await get_owned_agent(db, agent_id, user_id)
    memory_text = _agent_memory_text(agent.business, agent.persona)
    agent.memory = memory_text

    store = memory_store or MemoryStore(db)
    await store.upsert_profile_memory(
        agent.id,
        memory_text,
        {"type": MemoryTag.BUSINESS_PROFILE.value, "businessId": agent.business_id},
    )
    logger.info(f"Refreshed memory for agent {agent_id}")
    return await get_owned_agent(db, agent_id, user_id)
