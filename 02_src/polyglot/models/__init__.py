"""Core data models for Polyglot Chat."""

from .chats import (
    DIRECT_CHAT_NAME,
    Chat,
    ChatDetails,
    ChatSummary,
    ChatType,
    Message,
    MessageKind,
    MessageView,
    PresenceStatus,
    Profile,
    ReplyPreview,
)
from .stickers import Sticker
from .tasks import Task, TaskStatus, TaskType
from .tracing import TraceEvent
from .translations import Translation

__all__ = [
    # Chats
    "Chat",
    "ChatDetails",
    "ChatSummary",
    "ChatType",
    "DIRECT_CHAT_NAME",
    "Message",
    "MessageKind",
    "MessageView",
    "PresenceStatus",
    "Profile",
    "ReplyPreview",
    # Stickers
    "Sticker",
    # Translations
    "Translation",
    # Tasks
    "Task",
    "TaskStatus",
    "TaskType",
    # Tracing
    "TraceEvent",
]
