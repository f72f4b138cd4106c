"""
Tests for agent memory storage and retrieval
"""

import asyncio
import json

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from aistaff.db import init_db, drop_db, async_session_maker
from aistaff.db.models import AgentMemory
from aistaff.services import create_user
from aistaff.services.agent_service import create_agent, refresh_agent_memory
from aistaff.services.business_service import create_business, update_business
from aistaff.services.embedding_service import PlaceholderEmbeddingService
from aistaff.services.memory_store import MemoryStore, RetrievalStrategy


@pytest_asyncio.fixture(autouse=True)
async def setup_database():
    """Create a fresh database for each test"""
    await init_db()
    yield
    await drop_db()


@pytest_asyncio.fixture
async def db_session():
    """Get a database session"""
    async with async_session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession):
    return await create_user(
        db_session,
        email="owner@example.com",
        password="testpassword123",
        name="Owner",
    )


@pytest_asyncio.fixture
async def test_agent(db_session: AsyncSession, test_user):
    business = await create_business(
        db_session,
        user_id=test_user.id,
        name="Acme",
        goals=["Grow sales"],
    )
    return await create_agent(db_session, business.id, "Marketing Manager", test_user.id)


@pytest_asyncio.fixture
async def store(db_session: AsyncSession):
    return MemoryStore(db_session, embedding_service=PlaceholderEmbeddingService(dimension=8, seed=1))


async def _memories(db: AsyncSession, agent_id: str):
    result = await db.execute(
        select(AgentMemory)
        .where(AgentMemory.agent_id == agent_id)
        .order_by(AgentMemory.created_at)
    )
    return list(result.scalars().all())


class TestUpsert:

    @pytest.mark.asyncio
    async def test_agent_creation_seeds_profile_memory(self, db_session, test_agent):
        memories = await _memories(db_session, test_agent.id)

        assert len(memories) == 1
        assert memories[0].content == test_agent.memory
        assert memories[0].tag == "business_profile"
        metadata = json.loads(memories[0].metadata_json)
        assert metadata == {"type": "business_profile", "businessId": test_agent.business_id}
        assert len(json.loads(memories[0].embedding_json)) == 1536

    @pytest.mark.asyncio
    async def test_profile_memory_replaced(self, db_session, test_agent, store):
        await store.upsert_profile_memory(test_agent.id, "Profile v2", {"type": "business_profile"})
        await store.upsert_profile_memory(test_agent.id, "Profile v3", {"type": "business_profile"})

        memories = await _memories(db_session, test_agent.id)
        assert [m.content for m in memories] == ["Profile v3"]

    @pytest.mark.asyncio
    async def test_other_tags_accumulate(self, db_session, test_agent, store):
        await store.upsert_profile_memory(test_agent.id, "Customer prefers email", {"type": "note"})
        await store.upsert_profile_memory(test_agent.id, "Launch is in May", {"type": "note"})
        await store.upsert_profile_memory(test_agent.id, "Untagged fact")

        memories = await _memories(db_session, test_agent.id)
        assert len(memories) == 4
        assert [m.tag for m in memories] == ["business_profile", "note", "note", None]

    @pytest.mark.asyncio
    async def test_replacing_profile_keeps_other_tags(self, db_session, test_agent, store):
        await store.upsert_profile_memory(test_agent.id, "Customer prefers email", {"type": "note"})
        await store.upsert_profile_memory(test_agent.id, "Profile v2", {"type": "business_profile"})

        contents = {m.content for m in await _memories(db_session, test_agent.id)}
        assert contents == {"Customer prefers email", "Profile v2"}

    @pytest.mark.asyncio
    async def test_refresh_agent_memory(self, db_session, test_user, test_agent):
        await update_business(db_session, test_agent.business_id, test_user.id, {"industry": "Robotics"})
        # Business edits alone do not touch the agent
        memories = await _memories(db_session, test_agent.id)
        assert "Robotics" not in memories[0].content

        agent = await refresh_agent_memory(db_session, test_agent.id, test_user.id)

        assert "- Industry: Robotics" in agent.memory
        memories = await _memories(db_session, test_agent.id)
        assert len(memories) == 1
        assert memories[0].content == agent.memory


class TestRetrieve:

    @pytest.mark.asyncio
    async def test_newest_first_bounded(self, test_agent, store):
        for i in range(4):
            await store.upsert_profile_memory(test_agent.id, f"Note {i}", {"type": "note"})

        memories = await store.retrieve_relevant(test_agent.id, "anything", limit=3)
        assert [m.content for m in memories] == ["Note 3", "Note 2", "Note 1"]
        assert memories[0].metadata == {"type": "note"}

    @pytest.mark.asyncio
    async def test_zero_limit(self, test_agent, store):
        assert await store.retrieve_relevant(test_agent.id, "anything", limit=0) == []

    @pytest.mark.asyncio
    async def test_unknown_agent(self, store):
        assert await store.retrieve_relevant("missing-agent", "anything") == []

    @pytest.mark.asyncio
    async def test_failure_yields_empty(self, db_session, test_agent):
        class BrokenStrategy(RetrievalStrategy):
            async def retrieve(self, db, agent_id, query, limit):
                raise RuntimeError("storage offline")

        store = MemoryStore(db_session, strategy=BrokenStrategy())
        assert await store.retrieve_relevant(test_agent.id, "anything") == []

    @pytest.mark.asyncio
    async def test_unreadable_metadata_is_empty(self, db_session, test_agent, store):
        for content, metadata_json in (
            ("Broken", "{not json"),
            ("Nested", "[" * 100000 + "]" * 100000),
        ):
            db_session.add(AgentMemory(agent_id=test_agent.id, content=content, metadata_json=metadata_json))
            await db_session.commit()

        memories = await store.retrieve_relevant(test_agent.id, "anything")
        assert [m.content for m in memories] == ["Nested", "Broken", test_agent.memory]
        assert memories[0].metadata == {}
        assert memories[1].metadata == {}
        assert memories[2].metadata["type"] == "business_profile"


class TestConcurrentAccess:

    @pytest.mark.asyncio
    async def test_reader_never_sees_profile_gap(self, test_agent):
        reads = []

        async def write(session):
            writer = MemoryStore(session, embedding_service=PlaceholderEmbeddingService(dimension=8, seed=1))
            for i in range(20):
                await writer.upsert_profile_memory(test_agent.id, f"Profile {i}", {"type": "business_profile"})

        async def read(session):
            reader = MemoryStore(session)
            for _ in range(60):
                memories = await reader.retrieve_relevant(test_agent.id, "anything", limit=3)
                reads.append([m.metadata.get("type") for m in memories])
                await asyncio.sleep(0)

        async with async_session_maker() as write_session, async_session_maker() as read_session:
            await asyncio.gather(write(write_session), read(read_session))

        assert len(reads) == 60
        assert all(tags.count("business_profile") == 1 for tags in reads)
