"""
Memory Store - per-agent memory entries

Two operations matter to the rest of the system:

- ``upsert_profile_memory``: append an entry; entries tagged
  ``business_profile`` replace every earlier entry with that tag. The delete
  and the insert share one transaction and run under the agent's memory
  lock, which retrieval also takes, so a reader sees the old set or the new
  one, never neither.
- ``retrieve_relevant``: best-effort lookup for context assembly. It never
  raises; a storage failure yields an empty list.

Retrieval goes through a ``RetrievalStrategy``. The only strategy today is a
recency window; semantic search would be another strategy, not a change here.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, delete, and_
from sqlalchemy.ext.asyncio import AsyncSession

from aistaff.db.models import AgentMemory, MemoryTag
from aistaff.services.agent_locks import memory_locks
from aistaff.services.embedding_service import PlaceholderEmbeddingService, get_embedding_service
from aistaff.services.memory_profile import parse_json_field

logger = logging.getLogger(__name__)

# Tags whose entries are replaced rather than accumulated
REPLACE_ON_WRITE_TAGS = frozenset({MemoryTag.BUSINESS_PROFILE.value})


@dataclass
class RetrievedMemory:
    """A memory entry as handed to the context assembler"""
    id: str
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None


class RetrievalStrategy(ABC):
    """Chooses which memory entries accompany a turn."""

    @abstractmethod
    async def retrieve(
        self,
        db: AsyncSession,
        agent_id: str,
        query: str,
        limit: int,
    ) -> List[AgentMemory]:
        ...


class RecencyRetrieval(RetrievalStrategy):
    """The ``limit`` newest entries, newest first. Ignores the query."""

    async def retrieve(
        self,
        db: AsyncSession,
        agent_id: str,
        query: str,
        limit: int,
    ) -> List[AgentMemory]:
        result = await db.execute(
            select(AgentMemory)
            .where(AgentMemory.agent_id == agent_id)
            .order_by(AgentMemory.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


class MemoryStore:
    """Append/prune/retrieve over one agent's memory entries."""

    def __init__(
        self,
        db: AsyncSession,
        embedding_service: Optional[PlaceholderEmbeddingService] = None,
        strategy: Optional[RetrievalStrategy] = None,
    ):
        self.db = db
        self.embedding_service = embedding_service or get_embedding_service()
        self.strategy = strategy or RecencyRetrieval()

    async def upsert_profile_memory(
        self,
        agent_id: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
        commit: bool = True,
    ) -> AgentMemory:
        """
        Store a memory entry for an agent.

        When ``metadata["type"]`` is a replace-on-write tag, all existing
        entries of the agent with that tag are deleted first. Prior profile
        memories are not retained. The agent's memory lock is held from the
        delete through the commit.
        """
        metadata = dict(metadata or {})
        tag = metadata.get("type")
        tag = str(tag) if tag is not None else None

        async with memory_locks.get(agent_id):
            try:
                if tag in REPLACE_ON_WRITE_TAGS:
                    result = await self.db.execute(
                        delete(AgentMemory).where(
                            and_(
                                AgentMemory.agent_id == agent_id,
                                AgentMemory.tag == tag,
                            )
                        )
                    )
                    if result.rowcount:
                        logger.info(f"Replaced {result.rowcount} '{tag}' memory entries for agent {agent_id}")

                memory = AgentMemory(
                    agent_id=agent_id,
                    content=content,
                    embedding_json=self.embedding_service.embed_to_json(content),
                    metadata_json=json.dumps(metadata),
                    tag=tag,
                )
                self.db.add(memory)

                if commit:
                    await self.db.commit()
                    await self.db.refresh(memory)
                else:
                    await self.db.flush()
            except Exception:
                await self.db.rollback()
                logger.exception(f"Storing memory for agent {agent_id} failed")
                raise

        return memory

    async def retrieve_relevant(
        self,
        agent_id: str,
        query: str,
        limit: int = 3,
    ) -> List[RetrievedMemory]:
        """
        Return at most ``limit`` entries for context assembly.

        Best effort: any storage error is logged and yields []. An entry
        whose metadata cannot be read is returned with empty metadata.
        """
        if limit <= 0:
            return []

        try:
            async with memory_locks.get(agent_id):
                rows = await self.strategy.retrieve(self.db, agent_id, query, limit)
                memories = [self._to_retrieved(row) for row in rows[:limit]]
        except Exception as e:
            logger.warning(f"Memory retrieval failed for agent {agent_id}: {e}")
            try:
                await self.db.rollback()
            except Exception as rollback_error:
                logger.warning(f"Rollback after retrieval failure failed: {rollback_error}")
            return []

        return memories

    @staticmethod
    def _to_retrieved(row: AgentMemory) -> RetrievedMemory:
        try:
            metadata = parse_json_field(row.metadata_json, "memory metadata")
        except Exception as e:
            logger.warning(f"Ignoring unreadable metadata on memory {row.id}: {e}")
            metadata = None
        return RetrievedMemory(
            id=row.id,
            content=row.content,
            metadata=metadata if isinstance(metadata, dict) else {},
            created_at=row.created_at,
        )
