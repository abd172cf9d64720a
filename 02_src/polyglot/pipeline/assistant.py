"""Assistant replies triggered by a mention in chat."""

import uuid
from datetime import datetime, timezone

from ..assistant import IResponseGenerator
from ..config import (
    ASSISTANT_DELAY,
    ASSISTANT_HISTORY_LIMIT,
    ASSISTANT_LANGUAGE,
    ASSISTANT_MENTION,
    ASSISTANT_NAME,
)
from ..logging_config import get_logger
from ..models import Message, Task, TaskType
from ..storage import IStorage
from ..tasks import ITaskQueue
from ..tracker import ITracker

logger = get_logger(__name__)

ACTOR = "assistant"
UNKNOWN_SENDER = "Unknown"


def mentions_assistant(content: str) -> bool:
    """Check whether a message summons the assistant."""
    return ASSISTANT_MENTION in content


class AssistantMentionHandler:
    """Posts one assistant reply per mention, using recent chat history."""

    def __init__(
        self,
        storage: IStorage,
        task_queue: ITaskQueue,
        response_generator: IResponseGenerator,
        tracker: ITracker,
        history_limit: int = ASSISTANT_HISTORY_LIMIT,
    ):
        self._storage = storage
        self._queue = task_queue
        self._generator = response_generator
        self._tracker = tracker
        self._history_limit = history_limit

    def register(self) -> None:
        """Subscribe the mention handler to the task queue."""
        self._queue.subscribe(TaskType.ASSISTANT_MENTION, self.handle)

    async def on_message_sent(self, message: Message) -> Task | None:
        """Defer an assistant reply if the message mentions the assistant."""
        if message.from_assistant or not mentions_assistant(message.content):
            return None

        task = await self._queue.enqueue(
            TaskType.ASSISTANT_MENTION,
            {"chat_id": message.chat_id, "message_id": message.id},
            delay=ASSISTANT_DELAY,
        )
        await self._tracker.track(
            "assistant_scheduled",
            ACTOR,
            {"chat_id": message.chat_id, "message_id": message.id, "task_id": task.id},
        )
        return task

    async def handle(self, task: Task) -> None:
        """Task queue entry point."""
        await self.on_mention(task.payload["chat_id"], task.payload["message_id"])

    async def on_mention(
        self, chat_id: str, triggering_message_id: str
    ) -> Message | None:
        """
        Generate and post a reply for a mention.

        Generation failures are logged and swallowed: the chat simply gets
        no assistant reply. A trigger that was already answered, for example
        by a task redelivered after a crash, gets no second reply.

        Returns:
            The posted assistant message, or None if nothing was posted.
        """
        if await self._storage.has_assistant_reply(triggering_message_id):
            await self._skip_duplicate(chat_id, triggering_message_id)
            return None

        chat = await self._storage.get_chat(chat_id)
        if chat is None:
            await self._abort(chat_id, triggering_message_id, "chat_missing")
            return None

        history = await self._storage.list_recent_text_messages(
            chat_id, self._history_limit
        )
        transcript = await self.format_transcript(history)

        try:
            reply = await self._generator.generate(transcript, chat.display_name)
        except Exception as e:
            logger.error(
                "Assistant response failed for chat %s: %s",
                chat_id,
                e,
                exc_info=True,
                extra={"chat_id": chat_id, "message_id": triggering_message_id},
            )
            await self._tracker.track(
                "assistant_failed",
                ACTOR,
                {
                    "chat_id": chat_id,
                    "message_id": triggering_message_id,
                    "error": str(e),
                },
            )
            return None

        if await self._storage.get_chat(chat_id) is None:
            await self._abort(chat_id, triggering_message_id, "chat_missing")
            return None

        assistant_id = await self._storage.ensure_system_identity(
            ASSISTANT_NAME, ASSISTANT_LANGUAGE
        )
        now = datetime.now(timezone.utc)
        reply_message = Message(
            id=str(uuid.uuid4()),
            chat_id=chat_id,
            sender_id=assistant_id,
            kind="text",
            content=reply,
            created_at=now,
            from_assistant=True,
        )
        stored = await self._storage.insert_assistant_reply(
            triggering_message_id, reply_message
        )
        if not stored:
            if await self._storage.get_chat(chat_id) is None:
                await self._abort(chat_id, triggering_message_id, "chat_missing")
            else:
                await self._skip_duplicate(chat_id, triggering_message_id)
            return None
        await self._storage.touch_chat_activity(chat_id, now)

        logger.info(
            "Assistant replied in chat %s",
            chat_id,
            extra={"chat_id": chat_id, "message_id": triggering_message_id},
        )
        await self._tracker.track(
            "assistant_replied",
            ACTOR,
            {
                "chat_id": chat_id,
                "message_id": reply_message.id,
                "history_size": len(history),
            },
        )
        return reply_message

    async def format_transcript(self, messages: list[Message]) -> str:
        """One "{sender name}: {content}" line per message, oldest first."""
        names: dict[str, str] = {}
        lines = []
        for message in messages:
            if message.sender_id not in names:
                profile = await self._storage.get_profile(message.sender_id)
                names[message.sender_id] = profile.name if profile else UNKNOWN_SENDER
            lines.append(f"{names[message.sender_id]}: {message.content}")
        return "\n".join(lines)

    async def _skip_duplicate(self, chat_id: str, message_id: str) -> None:
        logger.info(
            "Mention %s already answered",
            message_id,
            extra={"chat_id": chat_id, "message_id": message_id},
        )
        await self._tracker.track(
            "assistant_duplicate",
            ACTOR,
            {"chat_id": chat_id, "message_id": message_id},
        )

    async def _abort(self, chat_id: str, message_id: str, reason: str) -> None:
        logger.info(
            "Assistant reply for chat %s aborted: %s",
            chat_id,
            reason,
            extra={"chat_id": chat_id, "message_id": message_id},
        )
        await self._tracker.track(
            "assistant_aborted",
            ACTOR,
            {"chat_id": chat_id, "message_id": message_id, "reason": reason},
        )
