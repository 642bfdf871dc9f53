"""Tests for chat history and session state accessors."""

import pytest

from kyartu.services.cache import CacheService, MAX_CHAT_MESSAGES
from kyartu.services.cache.models import ChatMessage, ConversationMode, Role

from tests.conftest import FakeKeyValueStore


def _messages() -> list[dict]:
    return [
        {"id": "msg_1", "role": "user", "content": "Barev Kyartu", "timestamp": "2025-01-01T10:00:00Z"},
        {"id": "msg_2", "role": "assistant", "content": "Barev, axper jan", "timestamp": "2025-01-01T10:00:05Z", "mood": "happy"},
    ]


class TestChatHistory:
    @pytest.mark.asyncio
    async def test_two_messages_round_trip_in_order(
        self, cache: CacheService, kv_store: FakeKeyValueStore
    ):
        assert await cache.store_chat_history("abc", _messages()) is True

        snapshot = await cache.get_chat_history("abc")

        assert [m.id for m in snapshot.messages] == ["msg_1", "msg_2"]
        assert [m.content for m in snapshot.messages] == ["Barev Kyartu", "Barev, axper jan"]
        assert snapshot.messages[1].mood == "happy"
        assert "chat:session:abc" in kv_store.values

    @pytest.mark.asyncio
    async def test_timestamps_align_with_messages(
        self, cache: CacheService, kv_store: FakeKeyValueStore
    ):
        await cache.store_chat_history("abc", _messages())

        document = kv_store.document("chat:session:abc")
        assert len(document["timestamps"]) == len(document["messages"]) == 2
        assert document["timestamps"][0] < document["timestamps"][1]
        assert document["lastUpdated"] > 0

    @pytest.mark.asyncio
    async def test_written_with_chat_ttl(self, cache: CacheService, kv_store: FakeKeyValueStore):
        await cache.store_chat_history("abc", _messages())
        assert kv_store.ttls["chat:session:abc"] == 86400

    @pytest.mark.asyncio
    async def test_missing_history_is_empty_and_not_created(
        self, cache: CacheService, kv_store: FakeKeyValueStore
    ):
        first = await cache.get_chat_history("nobody")
        second = await cache.get_chat_history("nobody")

        assert first.messages == [] and second.messages == []
        assert first == second
        assert kv_store.values == {}

    @pytest.mark.asyncio
    async def test_append_keeps_order_and_bound(self, cache: CacheService):
        await cache.store_chat_history("abc", _messages())
        extra = [
            ChatMessage(id=f"msg_x{i}", role=Role.USER, content=str(i))
            for i in range(MAX_CHAT_MESSAGES)
        ]

        assert await cache.append_chat_messages("abc", *extra) is True

        snapshot = await cache.get_chat_history("abc")
        assert len(snapshot.messages) == MAX_CHAT_MESSAGES
        assert snapshot.messages[0].id == "msg_x0"
        assert snapshot.messages[-1].id == f"msg_x{MAX_CHAT_MESSAGES - 1}"

    @pytest.mark.asyncio
    async def test_append_nothing_is_noop(self, cache: CacheService, kv_store: FakeKeyValueStore):
        assert await cache.append_chat_messages("abc") is False
        assert kv_store.requests == []

    @pytest.mark.asyncio
    async def test_malformed_message_rejected(
        self, cache: CacheService, kv_store: FakeKeyValueStore
    ):
        assert await cache.store_chat_history("abc", [{"id": "m", "role": "robot"}]) is False
        assert kv_store.values == {}

    @pytest.mark.asyncio
    async def test_clear(self, cache: CacheService):
        await cache.store_chat_history("abc", _messages())
        assert await cache.clear_chat_history("abc") is True
        assert (await cache.get_chat_history("abc")).messages == []

    @pytest.mark.asyncio
    async def test_malformed_stored_document_reads_as_default(
        self, cache: CacheService, kv_store: FakeKeyValueStore
    ):
        kv_store.values["chat:session:abc"] = '{"messages": "nope"}'
        assert (await cache.get_chat_history("abc")).messages == []

        kv_store.values["chat:session:abc"] = "{broken"
        assert (await cache.get_chat_history("abc")).messages == []


class TestSessionState:
    @pytest.mark.asyncio
    async def test_default_state_is_stable(self, cache: CacheService, kv_store: FakeKeyValueStore):
        first = await cache.get_session_state("s1")
        second = await cache.get_session_state("s1")

        assert first.current_mode == ConversationMode.DEFAULT
        assert first.last_page == "chat"
        assert first == second
        assert kv_store.values == {}

    @pytest.mark.asyncio
    async def test_create_and_read(self, cache: CacheService, kv_store: FakeKeyValueStore):
        created = await cache.create_session_state("s1", last_page="lobby", theme="dark")

        state = await cache.get_session_state("s1")
        assert state.current_mode == ConversationMode.DEFAULT
        assert state.last_page == "lobby"
        assert state.joined_at == created.joined_at > 0
        assert kv_store.document("session:session:s1")["theme"] == "dark"
        assert kv_store.ttls["session:session:s1"] == 86400

    @pytest.mark.asyncio
    async def test_mode_transition(self, cache: CacheService):
        await cache.create_session_state("s1")

        state = await cache.set_session_mode("s1", "savage", last_page="roast")

        assert state.current_mode == ConversationMode.SAVAGE
        stored = await cache.get_session_state("s1")
        assert stored.current_mode == ConversationMode.SAVAGE
        assert stored.last_page == "roast"

    @pytest.mark.asyncio
    async def test_unknown_mode_is_ignored(self, cache: CacheService):
        await cache.create_session_state("s1")
        await cache.set_session_mode("s1", "friendly")

        state = await cache.set_session_mode("s1", "chaotic")

        assert state.current_mode == ConversationMode.FRIENDLY
        assert (await cache.get_session_state("s1")).current_mode == ConversationMode.FRIENDLY

    @pytest.mark.asyncio
    async def test_invalid_state_document_rejected(self, cache: CacheService):
        assert await cache.store_session_state("s1", {"currentMode": "chaotic"}) is False
