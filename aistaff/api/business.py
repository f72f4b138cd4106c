"""Business profile endpoints"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from aistaff.api.auth import get_current_user
from aistaff.db import get_db, User, Business
from aistaff.schemas import (
    AgentSummary, BusinessCreate, BusinessUpdate, BusinessResponse, DeleteResponse,
)
from aistaff.services import business_service
from aistaff.services.memory_profile import parse_string_list, parse_string_map

router = APIRouter(prefix="/business", tags=["Business"])


def business_to_response(business: Business) -> BusinessResponse:
    """ORM business (agents loaded) -> response with JSON fields decoded"""
    return BusinessResponse(
        id=business.id,
        user_id=business.user_id,
        name=business.name,
        industry=business.industry,
        description=business.description,
        target_audience=business.target_audience,
        brand_tone=business.brand_tone,
        social_links=parse_string_map(business.social_links, "social_links") or None,
        logo_url=business.logo_url,
        brand_colors=parse_string_map(business.brand_colors, "brand_colors") or None,
        goals=parse_string_list(business.goals, "goals") or None,
        agents=[AgentSummary.model_validate(agent) for agent in business.agents],
        created_at=business.created_at,
        updated_at=business.updated_at,
    )


@router.post("/create", response_model=BusinessResponse, status_code=status.HTTP_201_CREATED)
async def create_business(
    data: BusinessCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create a business profile"""
    business = await business_service.create_business(
        db,
        user_id=current_user.id,
        **data.model_dump(),
    )
    return business_to_response(business)


@router.get("/all", response_model=List[BusinessResponse])
async def list_businesses(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """All businesses of the current user, newest first"""
    businesses = await business_service.list_businesses(db, current_user.id)
    return [business_to_response(b) for b in businesses]


@router.get("/{business_id}", response_model=BusinessResponse)
async def get_business(
    business_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    business = await business_service.get_business(db, business_id, current_user.id)
    return business_to_response(business)


@router.put("/{business_id}/edit", response_model=BusinessResponse)
async def edit_business(
    business_id: str,
    data: BusinessUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Partially update a business. Agents keep their stored memory."""
    business = await business_service.update_business(
        db, business_id, current_user.id, data.model_dump(exclude_unset=True)
    )
    return business_to_response(business)


@router.delete("/{business_id}", response_model=DeleteResponse)
async def delete_business(
    business_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Delete a business with all of its agents"""
    await business_service.delete_business(db, business_id, current_user.id)
    return DeleteResponse(message="Business deleted")
