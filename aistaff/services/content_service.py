"""
Content Generation Service - one-shot marketing content turns

Each known content type wraps the user's prompt in an instruction template;
an unknown type sends the raw prompt. Generation runs hotter and longer than
chat. Quota failures are served by a local placeholder, stored like any
other result and flagged with a note.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from aistaff.config import settings
from aistaff.db.models import Agent, ContentType, GeneratedContent, utcnow
from aistaff.errors import ProviderErrorKind
from aistaff.services.agent_service import get_owned_agent
from aistaff.services.context_assembler import ContextAssembler
from aistaff.services.conversation_service import FALLBACK_NOTE
from aistaff.services.llm_service import LLMService, get_llm_service, to_provider_error
from aistaff.services.memory_profile import parse_json_field

logger = logging.getLogger(__name__)

CONTENT_TEMPLATES: Dict[str, str] = {
    ContentType.POST.value: "Create a social media post about: {prompt}\n\nInclude relevant hashtags and make it engaging.",
    ContentType.CAPTION.value: "Write an Instagram caption for: {prompt}\n\nMake it catchy and include emojis where appropriate.",
    ContentType.AD.value: "Create an advertisement copy for: {prompt}\n\nMake it persuasive and highlight key benefits.",
    ContentType.BLOG.value: "Write a blog post introduction about: {prompt}\n\nMake it informative and engaging.",
    ContentType.EMAIL.value: "Write a professional email about: {prompt}\n\nKeep it concise and actionable.",
}


def build_content_prompt(content_type: str, prompt: str) -> str:
    """Wrap ``prompt`` in the template for ``content_type``; raw prompt if unknown."""
    template = CONTENT_TEMPLATES.get(content_type)
    if template is None:
        return prompt
    return template.replace("{prompt}", prompt)


def fallback_content(content_type: str, prompt: str) -> str:
    return f"Fallback {content_type}: {prompt}\n\n(Generated locally because provider quota was exceeded.)"


def content_payload(record: GeneratedContent) -> Dict[str, Any]:
    """Decoded ``data_json`` of a content record ({} if unreadable)."""
    data = parse_json_field(record.data_json, "content data")
    return data if isinstance(data, dict) else {}


@dataclass
class GenerationResult:
    """Outcome of a generation turn"""
    content: GeneratedContent
    usage: Optional[Dict[str, Any]] = None
    note: Optional[str] = None


class ContentService:
    """Generate and list marketing content for an agent."""

    def __init__(
        self,
        db: AsyncSession,
        llm_service: Optional[LLMService] = None,
        assembler: Optional[ContextAssembler] = None,
    ):
        self.db = db
        self.llm_service = llm_service or get_llm_service()
        self.assembler = assembler or ContextAssembler(db)
        self.temperature = settings.content_temperature
        self.max_tokens = settings.content_max_tokens

    async def generate(
        self,
        agent_id: str,
        content_type: str,
        prompt: str,
        user_id: str,
    ) -> GenerationResult:
        """
        Generate content of ``content_type`` from ``prompt``.

        Raises:
            NotFoundError: agent missing or not owned by ``user_id``
            ProviderAuthError / ProviderError: non-quota provider failure
        """
        agent = await get_owned_agent(self.db, agent_id, user_id)
        context = await self.assembler.assemble(agent_id, prompt)

        messages = [
            {
                "role": "system",
                "content": (
                    f"{context.system_prompt}\n\nYou are creating {content_type} content. "
                    "Make it professional, on-brand, and effective."
                ),
            },
            {"role": "user", "content": build_content_prompt(content_type, prompt)},
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
                logger.error(f"Content generation failed for agent {agent_id}: {error.message}")
                if error is e:
                    raise
                raise error from e

            logger.warning(f"Provider quota exhausted; storing fallback {content_type} for agent {agent_id}")
            record = await self._persist(
                agent, content_type, prompt, fallback_content(content_type, prompt), note=FALLBACK_NOTE
            )
            return GenerationResult(content=record, usage=None, note=FALLBACK_NOTE)

        record = await self._persist(agent, content_type, prompt, llm_response.content)
        logger.info(f"Generated {content_type} for agent {agent_id} ({llm_response.tokens_total} tokens)")
        return GenerationResult(content=record, usage=llm_response.usage)

    async def list_content(self, agent_id: str, user_id: str) -> List[GeneratedContent]:
        """All generated content of an owned agent, newest first."""
        await get_owned_agent(self.db, agent_id, user_id, with_business=False)
        result = await self.db.execute(
            select(GeneratedContent)
            .where(GeneratedContent.agent_id == agent_id)
            .order_by(GeneratedContent.created_at.desc())
        )
        return list(result.scalars().all())

    async def _persist(
        self,
        agent: Agent,
        content_type: str,
        prompt: str,
        text: str,
        note: Optional[str] = None,
    ) -> GeneratedContent:
        data: Dict[str, Any] = {
            "prompt": prompt,
            "content": text,
            "businessName": agent.business.name,
            "brandTone": agent.business.brand_tone,
            "generatedAt": utcnow().isoformat() + "Z",
        }
        if note:
            data["note"] = note

        record = GeneratedContent(
            agent_id=agent.id,
            content_type=content_type,
            data_json=json.dumps(data),
        )
        self.db.add(record)
        await self.db.commit()
        return record
