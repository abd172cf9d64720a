"""Application bootstrap and lifecycle management."""

import os
from typing import Protocol

from .assistant import IResponseGenerator, LLMResponseGenerator
from .chat import ChatService, StickerCatalog
from .config import resolve_db_path
from .languages import load_language_names
from .llm import ILLMProvider, LLMProvider
from .logging_config import get_logger
from .pipeline import AssistantMentionHandler, TranslationFanOut
from .storage import IStorage, Storage
from .tasks import TaskQueue
from .tracker import ITracker, Tracker
from .translation import ITranslationProvider, LLMTranslationProvider

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Reset data between test runs."""
        ...


class Application:
    """Main application bootstrap."""

    def __init__(
        self,
        db_path: str | None = None,
        llm_provider: ILLMProvider | None = None,
        translation_provider: ITranslationProvider | None = None,
        response_generator: IResponseGenerator | None = None,
        task_poll_interval: float | None = None,
    ):
        env_db_path = os.getenv("DATABASE_URL") if db_path is None else db_path
        self._db_path = resolve_db_path(env_db_path)
        self._task_poll_interval = task_poll_interval

        # Injected capabilities; defaults are built in start()
        self._llm: ILLMProvider | None = llm_provider
        self._translation_provider = translation_provider
        self._response_generator = response_generator

        # Components (will be initialized in start())
        self._storage: IStorage | None = None
        self._tracker: ITracker | None = None
        self._task_queue: TaskQueue | None = None
        self._fanout: TranslationFanOut | None = None
        self._assistant: AssistantMentionHandler | None = None
        self._chat_service: ChatService | None = None
        self._stickers: StickerCatalog | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")

        # 1. Storage (no dependencies)
        self._storage = Storage(self._db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. Tracker (depends on Storage)
        self._tracker = Tracker(self._storage)

        # 3. TaskQueue (depends on Storage); worker starts last
        self._task_queue = TaskQueue(
            self._storage, poll_interval=self._task_poll_interval
        )

        # 4. LLM-backed capabilities (no internal dependencies)
        if self._translation_provider is None or self._response_generator is None:
            if self._llm is None:
                self._llm = LLMProvider()
                logger.info("LLM provider initialized")
        if self._translation_provider is None:
            self._translation_provider = LLMTranslationProvider(
                self._llm, language_names=load_language_names()
            )
        if self._response_generator is None:
            self._response_generator = LLMResponseGenerator(self._llm)

        # 5. Pipeline handlers (depend on Storage, TaskQueue, Tracker)
        self._fanout = TranslationFanOut(
            storage=self._storage,
            task_queue=self._task_queue,
            translation_provider=self._translation_provider,
            tracker=self._tracker,
        )
        self._fanout.register()
        self._assistant = AssistantMentionHandler(
            storage=self._storage,
            task_queue=self._task_queue,
            response_generator=self._response_generator,
            tracker=self._tracker,
        )
        self._assistant.register()

        # 6. ChatService (depends on the pipeline)
        self._chat_service = ChatService(
            storage=self._storage,
            fanout=self._fanout,
            assistant=self._assistant,
            tracker=self._tracker,
        )
        self._stickers = StickerCatalog(storage=self._storage, tracker=self._tracker)

        # 7. Task worker
        await self._task_queue.start()
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._task_queue:
            await self._task_queue.stop()
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Reset data between test runs."""
        # 1. Pause the worker
        if self._task_queue:
            await self._task_queue.stop()

        # 2. Clear storage
        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")

        # 3. Restart the worker
        if self._task_queue:
            await self._task_queue.start()
            logger.info("Reset complete")

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def chat_service(self) -> ChatService:
        """Get chat service instance."""
        if not self._chat_service:
            raise RuntimeError("Application not started")
        return self._chat_service

    @property
    def stickers(self) -> StickerCatalog:
        """Get sticker catalog instance."""
        if not self._stickers:
            raise RuntimeError("Application not started")
        return self._stickers

    @property
    def task_queue(self) -> TaskQueue:
        """Get task queue instance."""
        if not self._task_queue:
            raise RuntimeError("Application not started")
        return self._task_queue

    @property
    def fanout(self) -> TranslationFanOut:
        """Get translation fan-out instance."""
        if not self._fanout:
            raise RuntimeError("Application not started")
        return self._fanout

    @property
    def assistant(self) -> AssistantMentionHandler:
        """Get assistant mention handler instance."""
        if not self._assistant:
            raise RuntimeError("Application not started")
        return self._assistant
