"""
Database models for the AI Staff backend

Ownership chain: User -> Business -> Agent -> (AgentMemory, Message, GeneratedContent).
Structured business fields (goals, social links, brand colors) are stored as
JSON text so the same schema runs on SQLite and PostgreSQL.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, List
from enum import Enum
import threading
import uuid

from sqlalchemy import String, Text, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.orm import DeclarativeBase, relationship, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    """Naive UTC timestamp (columns are timezone-less)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


_clock_lock = threading.Lock()
_last_tick: Optional[datetime] = None


def monotonic_utcnow() -> datetime:
    """
    Strictly increasing naive UTC timestamp within this process.

    Message replay orders by ``created_at``; two inserts in the same
    microsecond would otherwise tie.
    """
    global _last_tick
    with _clock_lock:
        now = utcnow()
        if _last_tick is not None and now <= _last_tick:
            now = _last_tick + timedelta(microseconds=1)
        _last_tick = now
        return now


def _uuid() -> str:
    return str(uuid.uuid4())


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ContentType(str, Enum):
    """Content kinds with a dedicated generation template"""
    POST = "post"
    CAPTION = "caption"
    AD = "ad"
    BLOG = "blog"
    EMAIL = "email"


class MemoryTag(str, Enum):
    """Known ``metadata.type`` tags for agent memory entries"""
    BUSINESS_PROFILE = "business_profile"


class User(Base):
    """Account that owns businesses"""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255))
    name: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=monotonic_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    businesses: Mapped[List["Business"]] = relationship(
        "Business", back_populates="user", cascade="all, delete-orphan"
    )


class Business(Base):
    """Brand metadata a user onboards; agents are bound to one business"""
    __tablename__ = "businesses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True)

    name: Mapped[str] = mapped_column(String(255))
    industry: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    target_audience: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    brand_tone: Mapped[str] = mapped_column(String(100), default="professional")
    logo_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    # JSON stored as text
    social_links: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # {"instagram": "..."}
    brand_colors: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # {"primary": "#..."}
    goals: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # ["Grow sales", ...]

    created_at: Mapped[datetime] = mapped_column(DateTime, default=monotonic_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    user: Mapped["User"] = relationship("User", back_populates="businesses")
    agents: Mapped[List["Agent"]] = relationship(
        "Agent", back_populates="business", cascade="all, delete-orphan",
        order_by="Agent.created_at.desc()",
    )


class Agent(Base):
    """AI persona bound to a business"""
    __tablename__ = "agents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    business_id: Mapped[str] = mapped_column(String(36), ForeignKey("businesses.id", ondelete="CASCADE"), index=True)
    agent_name: Mapped[str] = mapped_column(String(255))

    # Last generated brand profile (or the persona script when one is set).
    # Only refreshed by an explicit update-memory call.
    memory: Mapped[str] = mapped_column(Text, default="")
    persona: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=monotonic_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    business: Mapped["Business"] = relationship("Business", back_populates="agents")
    memories: Mapped[List["AgentMemory"]] = relationship(
        "AgentMemory", back_populates="agent", cascade="all, delete-orphan"
    )
    messages: Mapped[List["Message"]] = relationship(
        "Message", back_populates="agent", cascade="all, delete-orphan",
        order_by="Message.created_at",
    )
    contents: Mapped[List["GeneratedContent"]] = relationship(
        "GeneratedContent", back_populates="agent", cascade="all, delete-orphan"
    )


class AgentMemory(Base):
    """Text fragment + opaque embedding used to enrich an agent's context"""
    __tablename__ = "agent_memories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    agent_id: Mapped[str] = mapped_column(String(36), ForeignKey("agents.id", ondelete="CASCADE"), index=True)
    content: Mapped[str] = mapped_column(Text)

    # Embedding stored as JSON array (placeholder vectors for now)
    embedding_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Full metadata as JSON text; ``tag`` mirrors metadata["type"] for filtering
    metadata_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tag: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=monotonic_utcnow, index=True)

    agent: Mapped["Agent"] = relationship("Agent", back_populates="memories")

    __table_args__ = (
        Index("ix_agent_memories_agent_tag", "agent_id", "tag"),
        Index("ix_agent_memories_agent_created", "agent_id", "created_at"),
    )


class Message(Base):
    """One chat turn; immutable once written"""
    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    agent_id: Mapped[str] = mapped_column(String(36), ForeignKey("agents.id", ondelete="CASCADE"), index=True)
    role: Mapped[str] = mapped_column(String(20))  # "user" | "assistant"
    content: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=monotonic_utcnow)

    agent: Mapped["Agent"] = relationship("Agent", back_populates="messages")

    __table_args__ = (
        Index("ix_messages_agent_created", "agent_id", "created_at"),
    )


class GeneratedContent(Base):
    """Output of a one-shot content generation turn; immutable once written"""
    __tablename__ = "contents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    agent_id: Mapped[str] = mapped_column(String(36), ForeignKey("agents.id", ondelete="CASCADE"), index=True)
    content_type: Mapped[str] = mapped_column(String(20), index=True)

    # {"prompt", "content", "businessName", "brandTone", "generatedAt", "note"?}
    data_json: Mapped[str] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=monotonic_utcnow)

    agent: Mapped["Agent"] = relationship("Agent", back_populates="contents")
