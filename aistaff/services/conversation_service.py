"""
Conversation Service - orchestrates one chat turn

Turn pipeline:
1. Ownership and provider-key checks (both short-circuit before any write)
2. Persist the user message
3. Assemble context (system prompt + recent history without this message)
4. Call the completion provider
5. Persist the assistant reply

A quota/rate-limit failure does not fail the turn: a local apology-plus-echo
reply is persisted instead and the result carries a degraded-service note.
Any other provider failure propagates and leaves only the user message.
"""

import contextlib
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from aistaff.config import settings
from aistaff.db.models import Message, MessageRole
from aistaff.errors import ProviderErrorKind
from aistaff.services.agent_service import get_owned_agent
from aistaff.services.agent_locks import turn_locks
from aistaff.services.context_assembler import ContextAssembler
from aistaff.services.llm_service import LLMService, get_llm_service, to_provider_error

logger = logging.getLogger(__name__)

FALLBACK_NOTE = "Served from local fallback due to provider quota/rate limit."


def fallback_chat_reply(message: str) -> str:
    return f"I'm currently at capacity. Here's a quick on-brand reply: {message}"


@dataclass
class ChatResult:
    """Outcome of a chat turn"""
    message: str
    message_id: str
    usage: Optional[Dict[str, Any]] = None
    note: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.note is not None


def agent_turn(agent_id: str):
    """Async context manager guarding one agent's turn (no-op when disabled)."""
    if not settings.serialize_agent_turns:
        return contextlib.nullcontext()
    return turn_locks.get(agent_id)


class ConversationService:
    """Chat with an agent and read back its history."""

    def __init__(
        self,
        db: AsyncSession,
        llm_service: Optional[LLMService] = None,
        assembler: Optional[ContextAssembler] = None,
    ):
        self.db = db
        self.llm_service = llm_service or get_llm_service()
        self.assembler = assembler or ContextAssembler(db)
        self.temperature = settings.chat_temperature
        self.max_tokens = settings.chat_max_tokens

    async def chat(self, agent_id: str, message: str, user_id: str) -> ChatResult:
        """
        Run one chat turn.

        Raises:
            NotFoundError: agent missing or not owned by ``user_id``
            ProviderAuthError / ProviderError: non-quota provider failure
        """
        await get_owned_agent(self.db, agent_id, user_id, with_business=False)
        # Fail before anything is written when no provider key is set
        self.llm_service.ensure_configured()

        async with agent_turn(agent_id):
            user_msg = await self._persist(agent_id, MessageRole.USER, message)

            # The just-sent message is appended as the final turn below, so it
            # is kept out of this turn's history window.
            context = await self.assembler.assemble(
                agent_id, message, exclude_message_ids=[user_msg.id]
            )
            messages: List[Dict[str, str]] = [
                {"role": "system", "content": context.system_prompt},
                *context.history(),
                {"role": "user", "content": message},
            ]

            try:
                llm_response = await self.llm_service.complete(
                    messages=messages,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                )
            except Exception as e:
                error = to_provider_error(e)
                if error.kind != ProviderErrorKind.QUOTA:
                    logger.error(f"Chat turn failed for agent {agent_id}: {error.message}")
                    if error is e:
                        raise
                    raise error from e

                logger.warning(f"Provider quota exhausted; serving local fallback for agent {agent_id}")
                reply = fallback_chat_reply(message)
                assistant_msg = await self._persist(agent_id, MessageRole.ASSISTANT, reply)
                return ChatResult(
                    message=reply,
                    message_id=assistant_msg.id,
                    usage=None,
                    note=FALLBACK_NOTE,
                )

            assistant_msg = await self._persist(agent_id, MessageRole.ASSISTANT, llm_response.content)
            logger.info(
                f"Chat turn for agent {agent_id}: {llm_response.tokens_total} tokens "
                f"({len(context.recent_messages)} history messages, {len(context.memories)} memories)"
            )
            return ChatResult(
                message=llm_response.content,
                message_id=assistant_msg.id,
                usage=llm_response.usage,
            )

    async def list_messages(self, agent_id: str, user_id: str) -> List[Message]:
        """All messages of an owned agent in creation order."""
        await get_owned_agent(self.db, agent_id, user_id, with_business=False)
        result = await self.db.execute(
            select(Message)
            .where(Message.agent_id == agent_id)
            .order_by(Message.created_at.asc())
        )
        return list(result.scalars().all())

    async def _persist(self, agent_id: str, role: MessageRole, content: str) -> Message:
        msg = Message(agent_id=agent_id, role=role.value, content=content)
        self.db.add(msg)
        await self.db.commit()
        return msg
