from aistaff.db.models import (
    Base, User, Business, Agent, AgentMemory, Message, GeneratedContent,
    MessageRole, ContentType, MemoryTag,
)
from aistaff.db.database import get_db, init_db, drop_db, async_session_maker, engine

__all__ = [
    "Base",
    "User",
    "Business",
    "Agent",
    "AgentMemory",
    "Message",
    "GeneratedContent",
    "MessageRole",
    "ContentType",
    "MemoryTag",
    # Database
    "get_db",
    "init_db",
    "drop_db",
    "async_session_maker",
    "engine",
]
