"""Business service - owner-scoped CRUD over business profiles"""

import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from aistaff.db.models import Business
from aistaff.errors import NotFoundError

logger = logging.getLogger(__name__)

# Fields stored as JSON text
JSON_FIELDS = ("social_links", "brand_colors", "goals")


def _serialize(value: Any) -> Optional[str]:
    """Structured value -> JSON text; empty values are stored as NULL."""
    if not value:
        return None
    return json.dumps(value)


async def create_business(
    db: AsyncSession,
    user_id: str,
    name: str,
    industry: Optional[str] = None,
    description: Optional[str] = None,
    target_audience: Optional[str] = None,
    brand_tone: Optional[str] = None,
    social_links: Optional[Dict[str, str]] = None,
    logo_url: Optional[str] = None,
    brand_colors: Optional[Dict[str, str]] = None,
    goals: Optional[List[str]] = None,
) -> Business:
    """Create a business owned by ``user_id``"""
    business = Business(
        user_id=user_id,
        name=name,
        industry=industry,
        description=description,
        target_audience=target_audience,
        brand_tone=brand_tone or "professional",
        social_links=_serialize(social_links),
        logo_url=logo_url,
        brand_colors=_serialize(brand_colors),
        goals=_serialize(goals),
    )
    db.add(business)
    await db.commit()
    logger.info(f"Created business {business.id} for user {user_id}")
    return await get_business(db, business.id, user_id)


async def list_businesses(db: AsyncSession, user_id: str) -> List[Business]:
    """All businesses of a user, newest first, with their agents loaded"""
    result = await db.execute(
        select(Business)
        .options(selectinload(Business.agents))
        .where(Business.user_id == user_id)
        .order_by(Business.created_at.desc())
    )
    return list(result.scalars().all())


async def get_business(db: AsyncSession, business_id: str, user_id: str) -> Business:
    """Get an owned business or raise NotFoundError"""
    result = await db.execute(
        select(Business)
        .options(selectinload(Business.agents))
        .where(and_(Business.id == business_id, Business.user_id == user_id))
        .execution_options(populate_existing=True)
    )
    business = result.scalar_one_or_none()
    if business is None:
        raise NotFoundError("Business not found")
    return business


async def update_business(
    db: AsyncSession,
    business_id: str,
    user_id: str,
    changes: Dict[str, Any],
) -> Business:
    """
    Partially update a business.

    Only keys present in ``changes`` are touched. Structured fields are
    re-serialized; an explicit empty value clears them. A null ``name`` is
    ignored since a business always has one. The agents' stored
    memory is NOT refreshed here (see agent_service.refresh_agent_memory).
    """
    business = await get_business(db, business_id, user_id)

    for key, value in changes.items():
        if key == "name" and value is None:
            continue
        if key in JSON_FIELDS:
            setattr(business, key, _serialize(value))
        elif key == "brand_tone":
            business.brand_tone = value or "professional"
        elif hasattr(Business, key) and key not in ("id", "user_id", "created_at", "updated_at"):
            setattr(business, key, value)

    await db.commit()
    return await get_business(db, business_id, user_id)


async def delete_business(db: AsyncSession, business_id: str, user_id: str) -> None:
    """Delete an owned business; its agents and their data go with it."""
    business = await get_business(db, business_id, user_id)
    await db.delete(business)
    await db.commit()
    logger.info(f"Deleted business {business_id}")
