"""
Tests for context assembly and chat turns
"""

import gc

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from aistaff.db import init_db, drop_db, async_session_maker
from aistaff.db.models import Message
from aistaff.errors import NotFoundError, ProviderAuthError, ProviderError, ProviderQuotaError
from aistaff.services import create_user
from aistaff.services.agent_service import create_agent
from aistaff.services.agent_locks import AgentLocks
from aistaff.services.business_service import create_business
from aistaff.services.context_assembler import ContextAssembler
from aistaff.services.conversation_service import FALLBACK_NOTE, ConversationService
from aistaff.services.task_extraction import extract_tasks

from helpers import ScriptedLLM


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
async def other_user(db_session: AsyncSession):
    return await create_user(
        db_session,
        email="intruder@example.com",
        password="testpassword123",
        name="Intruder",
    )


@pytest_asyncio.fixture
async def test_agent(db_session: AsyncSession, test_user):
    business = await create_business(
        db_session,
        user_id=test_user.id,
        name="Acme",
        brand_tone="playful",
        goals=["Grow sales"],
    )
    return await create_agent(db_session, business.id, "Marketing Manager", test_user.id)


async def _seed_messages(db: AsyncSession, agent_id: str, count: int):
    for i in range(count):
        db.add(Message(agent_id=agent_id, role="user" if i % 2 == 0 else "assistant", content=f"m{i}"))
    await db.commit()


class TestContextAssembler:

    @pytest.mark.asyncio
    async def test_system_prompt_layers(self, db_session, test_agent):
        context = await ContextAssembler(db_session).assemble(test_agent.id, "hello")
        prompt = context.system_prompt

        assert prompt.startswith("You are Marketing Manager for Acme.")
        assert test_agent.memory in prompt
        assert "RELEVANT CONTEXT:" in prompt
        assert "Always speak in the brand's tone: playful" in prompt
        assert "Reference the business goals when relevant: Grow sales" in prompt
        assert "staying in character as Marketing Manager" in prompt
        assert "I'll" in prompt

    @pytest.mark.asyncio
    async def test_unknown_agent(self, db_session):
        with pytest.raises(NotFoundError):
            await ContextAssembler(db_session).assemble("missing", "hello")

    @pytest.mark.asyncio
    async def test_history_window_oldest_first(self, db_session, test_agent):
        await _seed_messages(db_session, test_agent.id, 12)

        context = await ContextAssembler(db_session).assemble(test_agent.id, "hello")

        assert [m.content for m in context.recent_messages] == [f"m{i}" for i in range(2, 12)]
        assert context.history()[0] == {"role": "user", "content": "m2"}

    @pytest.mark.asyncio
    async def test_memories_bounded(self, db_session, test_agent):
        assembler = ContextAssembler(db_session)
        for i in range(5):
            await assembler.memory_store.upsert_profile_memory(test_agent.id, f"Fact {i}", {"type": "note"})

        context = await assembler.assemble(test_agent.id, "hello")
        assert len(context.memories) == 3
        assert "Fact 4" in context.system_prompt
        assert "Fact 1" not in context.system_prompt


class TestChat:

    @pytest.mark.asyncio
    async def test_successful_turn(self, db_session, test_user, test_agent):
        llm = ScriptedLLM("I'll schedule three client calls. I'll draft a proposal.")
        service = ConversationService(db_session, llm_service=llm)

        result = await service.chat(test_agent.id, "Create tasks for this week", test_user.id)

        assert result.message == "I'll schedule three client calls. I'll draft a proposal."
        assert result.usage["total_tokens"] == 15
        assert result.note is None
        assert not result.degraded

        messages = await service.list_messages(test_agent.id, test_user.id)
        assert [(m.role, m.content) for m in messages] == [
            ("user", "Create tasks for this week"),
            ("assistant", result.message),
        ]
        assert extract_tasks(result.message) == ["schedule three client calls", "draft a proposal"]

    @pytest.mark.asyncio
    async def test_provider_request_shape(self, db_session, test_user, test_agent):
        llm = ScriptedLLM("First reply", "Second reply")
        service = ConversationService(db_session, llm_service=llm)

        await service.chat(test_agent.id, "Hello", test_user.id)
        await service.chat(test_agent.id, "Again", test_user.id)

        first, second = llm.calls
        assert first["temperature"] == 0.7
        assert first["max_tokens"] == 1000
        assert first["messages"][0]["role"] == "system"
        # The new message is sent once, as the final turn
        assert first["messages"][1:] == [{"role": "user", "content": "Hello"}]
        assert second["messages"][1:] == [
            {"role": "user", "content": "Hello"},
            {"role": "assistant", "content": "First reply"},
            {"role": "user", "content": "Again"},
        ]

    @pytest.mark.asyncio
    async def test_quota_fallback(self, db_session, test_user, test_agent):
        llm = ScriptedLLM(ProviderQuotaError("quota exceeded", status=429))
        service = ConversationService(db_session, llm_service=llm)

        result = await service.chat(test_agent.id, "Hello there", test_user.id)

        assert result.note == FALLBACK_NOTE
        assert result.usage is None
        assert result.message == "I'm currently at capacity. Here's a quick on-brand reply: Hello there"
        messages = await service.list_messages(test_agent.id, test_user.id)
        assert [(m.role, m.content) for m in messages] == [
            ("user", "Hello there"),
            ("assistant", result.message),
        ]

    @pytest.mark.asyncio
    async def test_quota_text_in_plain_exception(self, db_session, test_user, test_agent):
        llm = ScriptedLLM(RuntimeError("You exceeded your current quota"))
        service = ConversationService(db_session, llm_service=llm)

        result = await service.chat(test_agent.id, "Hello", test_user.id)
        assert result.degraded

    @pytest.mark.asyncio
    async def test_auth_failure_keeps_only_user_message(self, db_session, test_user, test_agent):
        llm = ScriptedLLM(ProviderAuthError("bad key", status=401))
        service = ConversationService(db_session, llm_service=llm)

        with pytest.raises(ProviderAuthError):
            await service.chat(test_agent.id, "Hello", test_user.id)

        messages = await service.list_messages(test_agent.id, test_user.id)
        assert [(m.role, m.content) for m in messages] == [("user", "Hello")]

    @pytest.mark.asyncio
    async def test_other_failure_propagates(self, db_session, test_user, test_agent):
        llm = ScriptedLLM(RuntimeError("connection reset"))
        service = ConversationService(db_session, llm_service=llm)

        with pytest.raises(ProviderError):
            await service.chat(test_agent.id, "Hello", test_user.id)

    @pytest.mark.asyncio
    async def test_foreign_agent_is_not_found(self, db_session, other_user, test_agent):
        llm = ScriptedLLM("never used")
        service = ConversationService(db_session, llm_service=llm)

        with pytest.raises(NotFoundError):
            await service.chat(test_agent.id, "Hello", other_user.id)
        with pytest.raises(NotFoundError):
            await service.list_messages(test_agent.id, other_user.id)
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_no_write_for_missing_agent(self, db_session, test_user, test_agent):
        service = ConversationService(db_session, llm_service=ScriptedLLM())
        with pytest.raises(NotFoundError):
            await service.chat("missing", "Hello", test_user.id)
        assert await service.list_messages(test_agent.id, test_user.id) == []

    @pytest.mark.asyncio
    async def test_missing_key_writes_nothing(self, db_session, test_user, test_agent):
        llm = ScriptedLLM("never used", configured=False)
        service = ConversationService(db_session, llm_service=llm)

        with pytest.raises(ProviderAuthError):
            await service.chat(test_agent.id, "Hello", test_user.id)
        assert await service.list_messages(test_agent.id, test_user.id) == []
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_list_messages_idempotent(self, db_session, test_user, test_agent):
        service = ConversationService(db_session, llm_service=ScriptedLLM("One", "Two"))
        await service.chat(test_agent.id, "a", test_user.id)
        await service.chat(test_agent.id, "b", test_user.id)

        first = [(m.id, m.role, m.content) for m in await service.list_messages(test_agent.id, test_user.id)]
        second = [(m.id, m.role, m.content) for m in await service.list_messages(test_agent.id, test_user.id)]

        assert first == second
        assert [c for _, _, c in first] == ["a", "One", "b", "Two"]


class TestAgentLocks:

    def test_one_lock_per_agent(self):
        locks = AgentLocks("test")
        lock = locks.get("agent-1")
        assert locks.get("agent-1") is lock
        assert locks.get("agent-2") is not lock

    @pytest.mark.asyncio
    async def test_released_locks_are_dropped(self):
        locks = AgentLocks("test")
        async with locks.get("agent-1"):
            assert len(locks) == 1
        gc.collect()
        assert len(locks) == 0
