"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, EmailStr, ConfigDict
from pydantic.alias_generators import to_camel

from aistaff.db.models import ContentType


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ============ Auth Schemas ============

class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=6)


class UserLogin(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: str
    email: str
    name: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    user: UserResponse
    token: str


class MeResponse(BaseModel):
    user: UserResponse


# ============ Business Schemas ============

class BusinessCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    industry: Optional[str] = None
    description: Optional[str] = None
    target_audience: Optional[str] = None
    brand_tone: Optional[str] = None
    social_links: Optional[Dict[str, str]] = None
    logo_url: Optional[str] = None
    brand_colors: Optional[Dict[str, str]] = None
    goals: Optional[List[str]] = None


class BusinessUpdate(BusinessCreate):
    """Partial update; only fields present in the request are applied."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)


class AgentSummary(CamelModel):
    id: str
    agent_name: str
    created_at: datetime


class BusinessResponse(CamelModel):
    id: str
    user_id: str
    name: str
    industry: Optional[str] = None
    description: Optional[str] = None
    target_audience: Optional[str] = None
    brand_tone: str
    social_links: Optional[Dict[str, str]] = None
    logo_url: Optional[str] = None
    brand_colors: Optional[Dict[str, str]] = None
    goals: Optional[List[str]] = None
    agents: List[AgentSummary] = []
    created_at: datetime
    updated_at: datetime


# ============ Agent Schemas ============

class AgentCreate(CamelModel):
    business_id: str
    agent_name: str = Field(min_length=1, max_length=255)
    persona: Optional[str] = None


class BusinessBrief(CamelModel):
    id: str
    name: str
    brand_tone: str


class AgentResponse(CamelModel):
    id: str
    business_id: str
    agent_name: str
    memory: str
    persona: Optional[str] = None
    business: Optional[BusinessBrief] = None
    created_at: datetime
    updated_at: datetime


# ============ Chat Schemas ============

class ChatRequest(BaseModel):
    message: str = Field(min_length=1, max_length=10000)


class ChatResponse(BaseModel):
    message: str
    usage: Optional[Dict[str, Any]] = None
    note: Optional[str] = None


class MessageResponse(CamelModel):
    id: str
    agent_id: str
    role: str
    content: str
    created_at: datetime


# ============ Content Schemas ============

class ContentCreate(BaseModel):
    type: ContentType
    prompt: str = Field(min_length=1, max_length=5000)


class ContentRecord(CamelModel):
    id: str
    agent_id: str
    type: str
    data: Dict[str, Any]
    created_at: datetime


class ContentResponse(BaseModel):
    content: ContentRecord
    usage: Optional[Dict[str, Any]] = None
    note: Optional[str] = None


class DeleteResponse(BaseModel):
    message: str
