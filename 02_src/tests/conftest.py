"""Pytest configuration and fixtures."""

import asyncio
import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

from polyglot.models import Chat, Message, Profile


class FakeTranslationProvider:
    """Deterministic translation backend with per-language failures."""

    def __init__(self):
        self.results: dict[str, str] = {}
        self.errors: dict[str, Exception] = {}
        self.delays: dict[str, float] = {}
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple[str, str, str]] = []

    async def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        self.calls.append((text, source_lang, target_lang))
        if self.gate is not None:
            await self.gate.wait()
        if target_lang in self.delays:
            await asyncio.sleep(self.delays[target_lang])
        if target_lang in self.errors:
            raise self.errors[target_lang]
        return self.results.get(target_lang, f"[{target_lang}] {text}")


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from polyglot.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def tracker(storage):
    """Create Tracker with storage."""
    from polyglot.tracker import Tracker

    return Tracker(storage=storage)


@pytest_asyncio.fixture
async def task_queue(storage):
    """Create TaskQueue; tests start the worker when they need it."""
    from polyglot.tasks import TaskQueue

    queue = TaskQueue(storage, poll_interval=0.01, max_concurrency=8)
    yield queue
    await queue.stop()


@pytest.fixture
def mock_llm():
    """Create mock LLM provider."""
    llm = Mock()
    llm.complete = AsyncMock(return_value="Test response")
    return llm


@pytest.fixture
def translator():
    """Create fake translation provider."""
    return FakeTranslationProvider()


@pytest.fixture
def generator():
    """Create mock response generator."""
    gen = Mock()
    gen.generate = AsyncMock(return_value="Here is a summary.")
    return gen


@pytest.fixture
def fanout(storage, task_queue, translator, tracker):
    """Create TranslationFanOut registered on the task queue."""
    from polyglot.pipeline import TranslationFanOut

    fo = TranslationFanOut(
        storage=storage,
        task_queue=task_queue,
        translation_provider=translator,
        tracker=tracker,
        timeout=1.0,
    )
    fo.register()
    return fo


@pytest.fixture
def assistant(storage, task_queue, generator, tracker):
    """Create AssistantMentionHandler registered on the task queue."""
    from polyglot.pipeline import AssistantMentionHandler

    handler = AssistantMentionHandler(
        storage=storage,
        task_queue=task_queue,
        response_generator=generator,
        tracker=tracker,
    )
    handler.register()
    return handler


@pytest.fixture
def chat_service(storage, fanout, assistant, tracker):
    """Create ChatService wired to the pipeline."""
    from polyglot.chat import ChatService

    return ChatService(
        storage=storage,
        fanout=fanout,
        assistant=assistant,
        tracker=tracker,
    )


@pytest.fixture
def sticker_catalog(storage, tracker):
    """Create StickerCatalog."""
    from polyglot.chat import StickerCatalog

    return StickerCatalog(storage=storage, tracker=tracker)


@pytest.fixture
def make_chat(storage):
    """Factory: create profiles for {user_id: language} and a chat with them."""

    async def _make(
        languages: dict[str, str],
        chat_type: str = "group",
        name: str | None = "Team",
    ) -> Chat:
        for user_id, language in languages.items():
            await storage.save_profile(
                Profile(
                    user_id=user_id,
                    name=user_id.capitalize(),
                    preferred_language=language,
                )
            )
        participants = list(languages)
        chat = Chat(
            id=f"chat-{uuid.uuid4().hex[:8]}",
            type=chat_type,
            participants=participants,
            created_by=participants[0],
            last_activity_at=datetime.now(timezone.utc),
            name=name if chat_type == "group" else None,
        )
        await storage.save_chat(chat)
        return chat

    return _make


@pytest.fixture
def make_message(storage):
    """Factory: insert a message directly into storage."""

    async def _make(
        chat_id: str,
        sender_id: str,
        content: str,
        kind: str = "text",
        **fields,
    ) -> Message:
        message = Message(
            id=f"msg-{uuid.uuid4().hex[:8]}",
            chat_id=chat_id,
            sender_id=sender_id,
            kind=kind,
            content=content,
            created_at=fields.pop("created_at", datetime.now(timezone.utc)),
            **fields,
        )
        await storage.insert_message(message)
        return message

    return _make
