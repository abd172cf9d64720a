"""Tests for Application."""

import os
import tempfile

import pytest
import pytest_asyncio

from polyglot.app import Application
from polyglot.translation import LLMTranslationProvider


@pytest_asyncio.fixture
async def app(translator, generator):
    """Started application with fake LLM-backed capabilities."""
    application = Application(
        db_path=":memory:",
        translation_provider=translator,
        response_generator=generator,
        task_poll_interval=0.01,
    )
    await application.start()
    yield application
    await application.stop()


class TestApplicationStart:
    """Tests for Application.start()."""

    async def test_start_initializes_components(self, app):
        assert app._storage is not None
        assert app._tracker is not None
        assert app._task_queue is not None
        assert app._fanout is not None
        assert app._assistant is not None
        assert app._chat_service is not None
        assert app.task_queue.running

    async def test_start_wires_dependencies(self, app):
        assert app._tracker._storage is app._storage
        assert app._fanout._queue is app._task_queue
        assert app._assistant._queue is app._task_queue
        assert app._chat_service._fanout is app._fanout
        assert app._chat_service._assistant is app._assistant

    async def test_start_creates_database_tables(self, app):
        async with app._storage._conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ) as cursor:
            tables = {row[0] for row in await cursor.fetchall()}
        assert {"profiles", "chats", "messages", "translations", "tasks"} <= tables

    async def test_start_builds_llm_capabilities(self, mock_llm):
        application = Application(db_path=":memory:", llm_provider=mock_llm)
        await application.start()
        try:
            assert isinstance(
                application._translation_provider, LLMTranslationProvider
            )
            assert application._llm is mock_llm
        finally:
            await application.stop()

    def test_properties_require_start(self):
        application = Application(db_path=":memory:")

        with pytest.raises(RuntimeError, match="Application not started"):
            _ = application.chat_service
        with pytest.raises(RuntimeError, match="Application not started"):
            _ = application.storage


class TestApplicationStop:
    """Tests for Application.stop()."""

    async def test_stop_closes_storage(self, translator, generator):
        application = Application(
            db_path=":memory:",
            translation_provider=translator,
            response_generator=generator,
        )
        await application.start()
        await application.stop()

        assert application._storage._conn is None
        assert not application._task_queue.running


class TestApplicationReset:
    """Tests for Application.reset()."""

    async def test_reset_clears_storage(self, app):
        await app.chat_service.update_profile("alice", "Alice", "en")

        await app.reset()

        assert await app.storage.get_profile("alice") is None
        assert app.task_queue.running


class TestEndToEnd:
    """Full flow through the running task worker."""

    async def _setup_chat(self, app, languages):
        users = list(languages)
        for user_id, language in languages.items():
            await app.chat_service.update_profile(
                user_id, user_id.capitalize(), language
            )
        return await app.chat_service.create_group_chat(users[0], "Team", users[1:])

    async def test_translation_reaches_each_viewer(self, app, translator):
        translator.results.update({"es": "Hola", "fr": "Bonjour"})
        chat = await self._setup_chat(
            app, {"alice": "en", "bob": "es", "carol": "es", "dana": "fr"}
        )

        await app.chat_service.send_message(chat.id, "alice", "Hello")
        await app.task_queue.join(timeout=3)

        bob = await app.chat_service.get_messages(chat.id, "bob")
        dana = await app.chat_service.get_messages(chat.id, "dana")
        alice = await app.chat_service.get_messages(chat.id, "alice")
        assert bob[0].translation.translated_text == "Hola"
        assert dana[0].translation.translated_text == "Bonjour"
        assert alice[0].translation is None
        assert sorted(call[2] for call in translator.calls) == ["es", "fr"]

    async def test_assistant_mention(self, app, generator):
        chat = await self._setup_chat(app, {"alice": "en", "bob": "en"})
        await app.chat_service.send_message(chat.id, "alice", "Plan for today?")
        await app.chat_service.send_message(chat.id, "bob", "Ship the release")
        await app.chat_service.send_message(chat.id, "alice", "@assistant summarize")

        await app.task_queue.join(timeout=5)

        transcript, chat_name = generator.generate.await_args.args
        assert transcript.count("\n") == 2
        assert transcript.endswith("Alice: @assistant summarize")
        assert chat_name == "Team"

        messages = await app.storage.get_messages(chat.id)
        replies = [m for m in messages if m.from_assistant]
        assert len(replies) == 1
        assert replies[0].content == "Here is a summary."

        events = await app.storage.get_trace_events(event_types=["assistant_replied"])
        assert events[0].data["history_size"] == 3

    async def test_assistant_reply_not_translated(self, app, translator):
        chat = await self._setup_chat(app, {"alice": "en", "bob": "es"})

        await app.chat_service.send_message(chat.id, "alice", "@assistant hi")
        await app.task_queue.join(timeout=5)

        # Only the user's own message was translated
        assert len(translator.calls) == 1


@pytest.mark.asyncio
async def test_pending_tasks_survive_restart(translator, generator):
    """Tasks persisted before a shutdown run after the next start."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    try:
        first = Application(
            db_path=db_path,
            translation_provider=translator,
            response_generator=generator,
            task_poll_interval=0.01,
        )
        await first.start()
        await first.task_queue.stop()
        for user_id, language in (("alice", "en"), ("bob", "es")):
            await first.chat_service.update_profile(user_id, user_id, language)
        chat = await first.chat_service.create_direct_chat("alice", "bob")
        message = await first.chat_service.send_message(chat.id, "alice", "Hello")
        await first.stop()

        second = Application(
            db_path=db_path,
            translation_provider=translator,
            response_generator=generator,
            task_poll_interval=0.01,
        )
        await second.start()
        try:
            await second.task_queue.join(timeout=3)
            translation = await second.storage.get_translation(message.id, "es")
            assert translation.translated_text == "[es] Hello"
        finally:
            await second.stop()
    finally:
        os.unlink(db_path)
