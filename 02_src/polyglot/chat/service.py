"""Chat service: profiles, chats and the message send path."""

import uuid
from datetime import datetime, timezone
from typing import Protocol

from ..errors import (
    AccessDeniedError,
    ChatNotFoundError,
    InvalidChatError,
    InvalidMessageError,
    ProfileNotFoundError,
)
from ..logging_config import get_logger
from ..models import (
    Chat,
    ChatDetails,
    ChatSummary,
    Message,
    MessageKind,
    MessageView,
    PresenceStatus,
    Profile,
    ReplyPreview,
)
from ..pipeline import AssistantMentionHandler, TranslationFanOut
from ..storage import IStorage
from ..tracker import ITracker

logger = get_logger(__name__)

ACTOR = "chat_service"
SENDABLE_KINDS = ("text", "image", "sticker")


class IChatService(Protocol):
    """User-facing chat operations."""

    async def update_profile(
        self, user_id: str, name: str, preferred_language: str
    ) -> Profile:
        """Create or update the user's profile."""
        ...

    async def create_direct_chat(self, user_id: str, participant_id: str) -> Chat:
        """Return the direct chat between two users, creating it if needed."""
        ...

    async def create_group_chat(
        self, user_id: str, name: str, participant_ids: list[str]
    ) -> Chat:
        """Create a named group chat."""
        ...

    async def list_chats(self, user_id: str) -> list[ChatSummary]:
        """Chats of a user with their last message and other members."""
        ...

    async def get_chat_details(
        self, chat_id: str, viewer_id: str
    ) -> ChatDetails | None:
        """The chat with its participants' profiles."""
        ...

    async def send_message(
        self,
        chat_id: str,
        sender_id: str,
        content: str,
        kind: MessageKind = "text",
        reply_to: str | None = None,
        image_ref: str | None = None,
        sticker_ref: str | None = None,
    ) -> Message:
        """Store a message and schedule its deferred processing."""
        ...

    async def get_messages(
        self, chat_id: str, viewer_id: str, limit: int = 50
    ) -> list[MessageView]:
        """Recent messages as seen by the viewer."""
        ...


class ChatService:
    """Chat operations on top of Storage, feeding the message pipeline."""

    def __init__(
        self,
        storage: IStorage,
        fanout: TranslationFanOut,
        assistant: AssistantMentionHandler,
        tracker: ITracker,
    ):
        self._storage = storage
        self._fanout = fanout
        self._assistant = assistant
        self._tracker = tracker

    # Profiles
    async def update_profile(
        self, user_id: str, name: str, preferred_language: str
    ) -> Profile:
        """Create or update the user's profile."""
        name = name.strip()
        preferred_language = preferred_language.strip()
        if not name:
            raise ValueError("Profile name must not be empty")
        if not preferred_language:
            raise ValueError("Preferred language must not be empty")

        existing = await self._storage.get_profile(user_id)
        profile = Profile(
            user_id=user_id,
            name=name,
            preferred_language=preferred_language,
            status=existing.status if existing else "online",
            last_seen=datetime.now(timezone.utc),
        )
        await self._storage.save_profile(profile)
        logger.info("Profile saved for %s (%s)", user_id, preferred_language)
        return profile

    async def set_status(self, user_id: str, status: PresenceStatus) -> None:
        """Update presence; unknown users are ignored."""
        if not await self._storage.set_status(user_id, status):
            logger.debug("Status update for unknown user %s ignored", user_id)

    async def search_users(
        self, query: str, exclude_user_id: str | None = None
    ) -> list[Profile]:
        """Find other users by name."""
        profiles = await self._storage.search_profiles(query.strip())
        return [p for p in profiles if p.user_id != exclude_user_id]

    # Chats
    async def create_direct_chat(self, user_id: str, participant_id: str) -> Chat:
        """Return the direct chat between two users, creating it if needed."""
        if user_id == participant_id:
            raise InvalidChatError("A direct chat needs two different users")

        existing = await self._storage.find_direct_chat(user_id, participant_id)
        if existing:
            return existing

        chat = Chat(
            id=str(uuid.uuid4()),
            type="direct",
            participants=[user_id, participant_id],
            created_by=user_id,
            last_activity_at=datetime.now(timezone.utc),
        )
        await self._storage.save_chat(chat)
        logger.info("Direct chat %s created", chat.id)
        return chat

    async def create_group_chat(
        self, user_id: str, name: str, participant_ids: list[str]
    ) -> Chat:
        """Create a named group chat. The creator is always the first member."""
        name = name.strip()
        if not name:
            raise InvalidChatError("Group chats need a name")

        participants = [user_id]
        for participant_id in participant_ids:
            if participant_id not in participants:
                participants.append(participant_id)

        chat = Chat(
            id=str(uuid.uuid4()),
            type="group",
            participants=participants,
            created_by=user_id,
            last_activity_at=datetime.now(timezone.utc),
            name=name,
        )
        await self._storage.save_chat(chat)
        logger.info("Group chat %s created with %s members", chat.id, len(participants))
        return chat

    async def list_chats(self, user_id: str) -> list[ChatSummary]:
        """Chats of a user, most recently active first, with a preview each."""
        chats = await self._storage.list_chats_for_user(user_id)

        summaries = []
        for chat in chats:
            others = [p for p in chat.participants if p != user_id]
            summaries.append(
                ChatSummary(
                    chat=chat,
                    last_message=await self._storage.get_last_message(chat.id),
                    other_participants=await self._profiles(others),
                )
            )
        return summaries

    async def get_chat_details(
        self, chat_id: str, viewer_id: str
    ) -> ChatDetails | None:
        """The chat with its participants' profiles, if the viewer belongs to it."""
        chat = await self._storage.get_chat(chat_id)
        if chat is None or not chat.has_participant(viewer_id):
            return None
        return ChatDetails(
            chat=chat, participants=await self._profiles(chat.participants)
        )

    async def _profiles(self, user_ids: list[str]) -> list[Profile]:
        profiles = []
        for user_id in user_ids:
            profile = await self._storage.get_profile(user_id)
            if profile:
                profiles.append(profile)
        return profiles

    async def delete_chat(self, chat_id: str, user_id: str) -> None:
        """Delete a chat. Only participants may do this."""
        chat = await self._storage.get_chat(chat_id)
        if chat is None:
            raise ChatNotFoundError(chat_id)
        if not chat.has_participant(user_id):
            raise AccessDeniedError(chat_id, user_id)

        await self._storage.delete_chat(chat_id)
        logger.info("Chat %s deleted by %s", chat_id, user_id)

    # Messages
    async def send_message(
        self,
        chat_id: str,
        sender_id: str,
        content: str,
        kind: MessageKind = "text",
        reply_to: str | None = None,
        image_ref: str | None = None,
        sticker_ref: str | None = None,
    ) -> Message:
        """
        Store a message and schedule its deferred processing.

        Translation and assistant work is only enqueued here; the message is
        readable as soon as this returns.

        Raises:
            ChatNotFoundError: The chat does not exist.
            AccessDeniedError: The sender is not a participant.
            ProfileNotFoundError: The sender has no profile.
            InvalidMessageError: The kind or reply target is not acceptable.
        """
        if kind not in SENDABLE_KINDS:
            raise InvalidMessageError(f"Cannot send messages of kind {kind!r}")

        chat = await self._storage.get_chat(chat_id)
        if chat is None:
            raise ChatNotFoundError(chat_id)
        if not chat.has_participant(sender_id):
            raise AccessDeniedError(chat_id, sender_id)

        profile = await self._storage.get_profile(sender_id)
        if profile is None:
            raise ProfileNotFoundError(sender_id)

        if reply_to is not None:
            target = await self._storage.get_message(reply_to)
            if target is None or target.chat_id != chat_id:
                raise InvalidMessageError(
                    f"Reply target {reply_to} is not a message of chat {chat_id}"
                )

        now = datetime.now(timezone.utc)
        message = Message(
            id=str(uuid.uuid4()),
            chat_id=chat_id,
            sender_id=sender_id,
            kind=kind,
            content=content,
            created_at=now,
            reply_to=reply_to,
            image_ref=image_ref,
            sticker_ref=sticker_ref,
        )
        await self._storage.insert_message(message)
        await self._storage.touch_chat_activity(chat_id, now)

        await self._tracker.track(
            "message_sent",
            ACTOR,
            {"chat_id": chat_id, "message_id": message.id, "kind": kind},
        )

        await self._fanout.on_message_sent(message, profile.preferred_language)
        await self._assistant.on_message_sent(message)

        return message

    async def get_messages(
        self, chat_id: str, viewer_id: str, limit: int = 50
    ) -> list[MessageView]:
        """
        Recent messages as seen by the viewer, oldest first.

        Each view carries the translation into the viewer's current language
        if one has been stored, and the catalog entry of a sent sticker. Returns nothing for unknown chats,
        non-participants and viewers without a profile.
        """
        chat = await self._storage.get_chat(chat_id)
        if chat is None or not chat.has_participant(viewer_id):
            return []

        viewer = await self._storage.get_profile(viewer_id)
        if viewer is None:
            return []

        messages = await self._storage.get_messages(chat_id, limit)
        names: dict[str, str | None] = {}

        async def sender_name(user_id: str) -> str | None:
            if user_id not in names:
                profile = await self._storage.get_profile(user_id)
                names[user_id] = profile.name if profile else None
            return names[user_id]

        views = []
        for message in messages:
            translation = await self._storage.get_translation(
                message.id, viewer.preferred_language
            )

            reply_preview = None
            if message.reply_to:
                replied = await self._storage.get_message(message.reply_to)
                if replied:
                    reply_preview = ReplyPreview(
                        message_id=replied.id,
                        sender_name=await sender_name(replied.sender_id),
                        content=replied.content,
                        kind=replied.kind,
                    )

            sticker = None
            if message.sticker_ref:
                sticker = await self._storage.get_sticker(message.sticker_ref)

            views.append(
                MessageView(
                    message=message,
                    sender_name=await sender_name(message.sender_id),
                    translation=translation,
                    reply_preview=reply_preview,
                    sticker=sticker,
                )
            )

        return views
