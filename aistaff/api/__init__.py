from aistaff.api.auth import router as auth_router, get_current_user
from aistaff.api.business import router as business_router
from aistaff.api.agent import router as agent_router
from aistaff.api.chat import router as chat_router
from aistaff.api.content import router as content_router

__all__ = [
    "auth_router",
    "business_router",
    "agent_router",
    "chat_router",
    "content_router",
    "get_current_user",
]
