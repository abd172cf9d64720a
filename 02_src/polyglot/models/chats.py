"""Chat, profile and message data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from .stickers import Sticker
from .translations import Translation

ChatType = Literal["direct", "group"]
MessageKind = Literal["text", "image", "sticker", "system"]
PresenceStatus = Literal["online", "away", "offline"]

DIRECT_CHAT_NAME = "Direct Chat"


@dataclass
class Profile:
    """A user's public profile, including the preferred language."""

    user_id: str
    name: str
    preferred_language: str  # e.g. "en", "pt-BR"
    status: PresenceStatus = "online"
    last_seen: datetime | None = None


@dataclass
class Chat:
    """A direct or group conversation."""

    id: str
    type: ChatType
    participants: list[str]  # user ids, creation order
    created_by: str
    last_activity_at: datetime
    name: str | None = None  # only group chats are named

    @property
    def display_name(self) -> str:
        return self.name or DIRECT_CHAT_NAME

    def has_participant(self, user_id: str) -> bool:
        return user_id in self.participants


@dataclass
class Message:
    """A single message in a chat."""

    id: str
    chat_id: str
    sender_id: str
    kind: MessageKind
    content: str
    created_at: datetime
    reply_to: str | None = None
    image_ref: str | None = None
    sticker_ref: str | None = None
    from_assistant: bool = False
    edited: bool = False
    edited_at: datetime | None = None


@dataclass
class ReplyPreview:
    """Short view of the message being replied to."""

    message_id: str
    sender_name: str | None
    content: str
    kind: MessageKind


@dataclass
class MessageView:
    """A message as seen by one particular viewer."""

    message: Message
    sender_name: str | None
    translation: Translation | None = None
    reply_preview: ReplyPreview | None = None
    sticker: Sticker | None = None


@dataclass
class ChatSummary:
    """A chat as listed for one user."""

    chat: Chat
    last_message: Message | None = None
    other_participants: list[Profile] = field(default_factory=list)


@dataclass
class ChatDetails:
    """A chat with the profiles of its participants."""

    chat: Chat
    participants: list[Profile] = field(default_factory=list)
