from aistaff.services.auth_service import (
    verify_password, get_password_hash, create_access_token,
    decode_access_token, authenticate_user, create_user,
    get_user_by_id, get_user_by_email
)
from aistaff.services.embedding_service import PlaceholderEmbeddingService, get_embedding_service
from aistaff.services.memory_profile import build_profile
from aistaff.services.memory_store import MemoryStore, RetrievedMemory, RecencyRetrieval
from aistaff.services.llm_service import LLMService, LLMResponse, get_llm_service, classify_provider_error
from aistaff.services.context_assembler import ContextAssembler, AssembledContext
from aistaff.services.conversation_service import ConversationService, ChatResult
from aistaff.services.content_service import ContentService, GenerationResult, content_payload
from aistaff.services.task_extraction import Task, TaskPriority, extract_tasks, tasks_from_reply
from aistaff.services.task_store import TaskStore

__all__ = [
    "verify_password",
    "get_password_hash",
    "create_access_token",
    "decode_access_token",
    "authenticate_user",
    "create_user",
    "get_user_by_id",
    "get_user_by_email",
    "PlaceholderEmbeddingService",
    "get_embedding_service",
    "build_profile",
    "MemoryStore",
    "RetrievedMemory",
    "RecencyRetrieval",
    "LLMService",
    "LLMResponse",
    "get_llm_service",
    "classify_provider_error",
    "ContextAssembler",
    "AssembledContext",
    "ConversationService",
    "ChatResult",
    "ContentService",
    "GenerationResult",
    "content_payload",
    # Client-side tasks
    "Task",
    "TaskPriority",
    "extract_tasks",
    "tasks_from_reply",
    "TaskStore",
]
