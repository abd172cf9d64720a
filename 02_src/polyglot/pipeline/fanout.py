"""Per-message translation fan-out."""

import asyncio
from datetime import datetime, timezone
from typing import Literal

from ..config import TRANSLATION_DELAY, translation_timeout
from ..logging_config import get_logger
from ..models import Message, Task, TaskType, Translation
from ..storage import IStorage
from ..tasks import ITaskQueue
from ..tracker import ITracker
from ..translation import ITranslationProvider, resolve_target_languages

logger = get_logger(__name__)

ACTOR = "translation_fanout"

Outcome = Literal["saved", "duplicate", "unchanged", "failed"]

_OUTCOME_EVENTS: dict[str, str] = {
    "saved": "translation_saved",
    "duplicate": "translation_duplicate",
    "unchanged": "translation_skipped",
    "failed": "translation_failed",
}


def needs_translation(message: Message) -> bool:
    """Only user-authored text with visible content is translated."""
    return (
        message.kind == "text"
        and not message.from_assistant
        and bool(message.content.strip())
    )


def is_distinct_translation(original: str, translated: str | None) -> bool:
    """False for empty results and for results equal to the original text."""
    if not translated or not translated.strip():
        return False
    return translated.strip().lower() != original.strip().lower()


class TranslationFanOut:
    """
    Schedules and runs translation of a message into every language its
    chat needs.

    Each target language is attempted independently: one language failing
    or timing out leaves the others untouched, and a failed language is not
    retried. Writes go through Storage.try_insert_translation, so running
    the fan-out for the same message again never duplicates a translation.
    """

    def __init__(
        self,
        storage: IStorage,
        task_queue: ITaskQueue,
        translation_provider: ITranslationProvider,
        tracker: ITracker,
        timeout: float | None = None,
    ):
        self._storage = storage
        self._queue = task_queue
        self._provider = translation_provider
        self._tracker = tracker
        self._timeout = timeout if timeout is not None else translation_timeout()

    def register(self) -> None:
        """Subscribe the fan-out handler to the task queue."""
        self._queue.subscribe(TaskType.TRANSLATE_MESSAGE, self.handle)

    async def on_message_sent(
        self, message: Message, sender_language: str
    ) -> Task | None:
        """Defer translation of a freshly sent message. Returns the task, if any."""
        if not needs_translation(message):
            return None

        task = await self._queue.enqueue(
            TaskType.TRANSLATE_MESSAGE,
            {
                "message_id": message.id,
                "chat_id": message.chat_id,
                "sender_language": sender_language,
            },
            delay=TRANSLATION_DELAY,
        )
        await self._tracker.track(
            "translation_scheduled",
            ACTOR,
            {"message_id": message.id, "task_id": task.id},
        )
        return task

    async def handle(self, task: Task) -> None:
        """Task queue entry point."""
        await self.run(
            message_id=task.payload["message_id"],
            sender_language=task.payload["sender_language"],
        )

    async def run(self, message_id: str, sender_language: str) -> dict[str, Outcome]:
        """
        Translate one message for its chat's current participants.

        Args:
            message_id: Message to translate.
            sender_language: Sender's preferred language at send time.

        Returns:
            Outcome per target language; empty if nothing was attempted.
        """
        message = await self._storage.get_message(message_id)
        if message is None:
            await self._abort(message_id, "message_missing")
            return {}

        chat = await self._storage.get_chat(message.chat_id)
        if chat is None:
            await self._abort(message_id, "chat_missing")
            return {}

        targets = await resolve_target_languages(
            chat.participants,
            sender_language,
            self._storage.get_preferred_language,
        )
        logger.info(
            "Message %s: target languages %s",
            message_id,
            targets,
            extra={"message_id": message_id, "chat_id": chat.id},
        )

        outcomes: dict[str, Outcome] = {}
        if targets:
            results = await asyncio.gather(
                *[
                    self._translate_one(message, sender_language, target)
                    for target in targets
                ]
            )
            outcomes = dict(zip(targets, results))

        await self._tracker.track(
            "fanout_completed",
            ACTOR,
            {"message_id": message_id, "outcomes": outcomes},
        )
        return outcomes

    async def _translate_one(
        self, message: Message, sender_language: str, target_language: str
    ) -> Outcome:
        """One isolated attempt for one language. Never raises."""
        context = {"message_id": message.id, "target_language": target_language}
        outcome: Outcome
        error = None

        try:
            translated = await asyncio.wait_for(
                self._provider.translate(
                    message.content, sender_language, target_language
                ),
                timeout=self._timeout,
            )

            if not is_distinct_translation(message.content, translated):
                logger.debug(
                    "No translation needed for %s in %s",
                    message.id,
                    target_language,
                    extra=context,
                )
                outcome = "unchanged"
            elif await self._storage.try_insert_translation(
                Translation(
                    message_id=message.id,
                    target_language=target_language,
                    translated_text=translated.strip(),
                    original_text=message.content,
                    created_at=datetime.now(timezone.utc),
                )
            ):
                outcome = "saved"
            else:
                logger.info(
                    "Translation already exists for %s in %s",
                    message.id,
                    target_language,
                    extra=context,
                )
                outcome = "duplicate"
        except asyncio.TimeoutError:
            logger.warning(
                "Translation of %s to %s timed out after %ss",
                message.id,
                target_language,
                self._timeout,
                extra=context,
            )
            outcome, error = "failed", "timeout"
        except Exception as e:
            logger.error(
                "Translation of %s to %s failed: %s",
                message.id,
                target_language,
                e,
                exc_info=True,
                extra=context,
            )
            outcome, error = "failed", str(e)

        # Outcome is final here; a tracing error must not change it.
        data = dict(context)
        if error is not None:
            data["error"] = error
        await self._track_outcome(_OUTCOME_EVENTS[outcome], data)
        return outcome

    async def _track_outcome(self, event_type: str, data: dict) -> None:
        try:
            await self._tracker.track(event_type, ACTOR, data)
        except Exception as e:
            logger.error(
                "Could not record %s: %s",
                event_type,
                e,
                exc_info=True,
                extra=data,
            )

    async def _abort(self, message_id: str, reason: str) -> None:
        logger.info(
            "Fan-out for %s aborted: %s",
            message_id,
            reason,
            extra={"message_id": message_id},
        )
        await self._tracker.track(
            "fanout_aborted",
            ACTOR,
            {"message_id": message_id, "reason": reason},
        )
