"""
Context Assembler - builds the system prompt for a chat or generation turn

The system prompt is constructed in layers:
1. Persona line - agent name and business
2. Agent memory - the stored brand profile (or persona script)
3. Relevant context - retrieved memory entries
4. Directives - tone, goals, continuity and the task-phrasing rules

Recent conversation turns are returned alongside the prompt, oldest first,
for the caller to replay as separate messages.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from aistaff.config import settings
from aistaff.db.models import Agent, Message
from aistaff.errors import NotFoundError
from aistaff.services.memory_profile import DEFAULT_BRAND_TONE, NOT_SPECIFIED, parse_string_list
from aistaff.services.memory_store import MemoryStore, RetrievedMemory

logger = logging.getLogger(__name__)

# Rules 6-8 and the formatting block below pair with the "I'll ..." pattern in
# services/task_extraction.py.
DIRECTIVES_TEMPLATE = """You must:
1. Always speak in the brand's tone: {brand_tone}
2. Remember and use the business identity in all responses
3. Stay consistent with the brand colors and values
4. Reference the business goals when relevant: {goals}
5. Maintain conversation continuity
6. When the user asks you to create tasks or mentions tasks, respond with multiple action items
7. ALWAYS format action items as separate sentences starting with "I'll" or "I will"
8. Break down complex requests into 3-5 specific, actionable tasks

CRITICAL TASK FORMATTING RULES:
- When user says "create tasks", "make tasks", "add tasks", or similar, you MUST respond with multiple "I'll" statements
- Each task must be on its own sentence
- Start each task sentence with "I'll" followed by a specific action
- Be concrete and specific about what you will do

Example response formats:
User: "Create tasks for launching a product"
Assistant: "I'll create a product launch timeline. I'll draft social media announcements. I'll prepare email marketing campaigns. I'll design promotional graphics. I'll develop a pricing strategy."

User: "Help me with marketing"
Assistant: "I'll analyze your target audience. I'll create a content calendar. I'll design social media posts. I'll write email campaigns."

User: "Make tasks for this week"
Assistant: "I'll review this week's priorities. I'll schedule client meetings. I'll prepare presentation materials. I'll update project documentation."

Respond naturally and helpfully while staying in character as {agent_name}."""


@dataclass
class AssembledContext:
    """Everything a turn needs from storage"""
    agent: Agent
    system_prompt: str
    recent_messages: List[Message] = field(default_factory=list)
    memories: List[RetrievedMemory] = field(default_factory=list)

    def history(self) -> List[Dict[str, str]]:
        """Recent messages as provider-ready dicts, oldest first."""
        return [{"role": msg.role, "content": msg.content} for msg in self.recent_messages]


def render_system_prompt(agent: Agent, memories: List[RetrievedMemory]) -> str:
    """Pure rendering of the system prompt from an agent (with business loaded)."""
    business = agent.business
    brand_tone = (business.brand_tone or "").strip() or DEFAULT_BRAND_TONE
    goals = parse_string_list(business.goals, "goals")

    relevant = "\n\n".join(m.content for m in memories if m.content) or NOT_SPECIFIED

    sections = [
        f"You are {agent.agent_name} for {business.name}.",
        agent.memory or "",
        f"RELEVANT CONTEXT:\n{relevant}",
        DIRECTIVES_TEMPLATE.format(
            brand_tone=brand_tone,
            goals="; ".join(goals) if goals else NOT_SPECIFIED,
            agent_name=agent.agent_name,
        ),
    ]
    return "\n\n".join(section for section in sections if section)


class ContextAssembler:
    """Loads agent, memories and history, and renders the system prompt."""

    def __init__(
        self,
        db: AsyncSession,
        memory_store: Optional[MemoryStore] = None,
        memory_limit: Optional[int] = None,
        history_limit: Optional[int] = None,
    ):
        self.db = db
        self.memory_store = memory_store or MemoryStore(db)
        self.memory_limit = settings.memory_recall_limit if memory_limit is None else memory_limit
        self.history_limit = settings.max_history_messages if history_limit is None else history_limit

    async def assemble(
        self,
        agent_id: str,
        triggering_text: str,
        exclude_message_ids: Optional[Iterable[str]] = None,
    ) -> AssembledContext:
        """
        Build the context for one turn.

        Raises:
            NotFoundError: the agent does not exist
        """
        agent = await self._load_agent(agent_id)
        if agent is None:
            raise NotFoundError("Agent not found")

        memories = await self.memory_store.retrieve_relevant(
            agent_id, triggering_text, self.memory_limit
        )
        recent = await self.get_recent_messages(
            agent_id, self.history_limit, exclude_message_ids
        )

        system_prompt = render_system_prompt(agent, memories)
        logger.debug(
            f"Assembled context for agent {agent_id}: "
            f"{len(memories)} memories, {len(recent)} messages, {len(system_prompt)} chars"
        )
        return AssembledContext(
            agent=agent,
            system_prompt=system_prompt,
            recent_messages=recent,
            memories=memories,
        )

    async def get_recent_messages(
        self,
        agent_id: str,
        limit: int = 10,
        exclude_message_ids: Optional[Iterable[str]] = None,
    ) -> List[Message]:
        """The newest ``limit`` messages of an agent, returned oldest first."""
        if limit <= 0:
            return []

        conditions = [Message.agent_id == agent_id]
        excluded = [mid for mid in (exclude_message_ids or []) if mid]
        if excluded:
            conditions.append(Message.id.notin_(excluded))

        result = await self.db.execute(
            select(Message)
            .where(and_(*conditions))
            .order_by(Message.created_at.desc())
            .limit(limit)
        )
        return list(reversed(result.scalars().all()))  # Oldest first

    async def _load_agent(self, agent_id: str) -> Optional[Agent]:
        result = await self.db.execute(
            select(Agent)
            .options(selectinload(Agent.business))
            .where(Agent.id == agent_id)
        )
        return result.scalar_one_or_none()
