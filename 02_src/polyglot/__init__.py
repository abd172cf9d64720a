"""Polyglot Chat: multi-user chat with per-recipient translation."""

from .app import Application, IApplication
from .chat import ChatService, IChatService
from .errors import (
    AccessDeniedError,
    ChatNotFoundError,
    InvalidChatError,
    InvalidMessageError,
    PolyglotError,
    ProfileNotFoundError,
    ResponseGenerationError,
    SendRejectedError,
    TranslationProviderError,
)
from .llm import ILLMProvider, LLMProvider
from .models import (
    Chat,
    Message,
    MessageView,
    Profile,
    Task,
    TaskType,
    TraceEvent,
    Translation,
)
from .pipeline import AssistantMentionHandler, TranslationFanOut
from .storage import IStorage, Storage
from .tasks import ITaskQueue, TaskQueue
from .tracker import ITracker, Tracker
from .translation import (
    ITranslationProvider,
    LLMTranslationProvider,
    resolve_target_languages,
)

__all__ = [
    # Application
    "Application",
    "IApplication",
    # Models
    "Chat",
    "Message",
    "MessageView",
    "Profile",
    "Task",
    "TaskType",
    "TraceEvent",
    "Translation",
    # Errors
    "PolyglotError",
    "SendRejectedError",
    "ChatNotFoundError",
    "AccessDeniedError",
    "ProfileNotFoundError",
    "InvalidMessageError",
    "InvalidChatError",
    "TranslationProviderError",
    "ResponseGenerationError",
    # Components
    "IStorage",
    "Storage",
    "ITracker",
    "Tracker",
    "ITaskQueue",
    "TaskQueue",
    "ILLMProvider",
    "LLMProvider",
    "ITranslationProvider",
    "LLMTranslationProvider",
    "resolve_target_languages",
    "TranslationFanOut",
    "AssistantMentionHandler",
    "IChatService",
    "ChatService",
]
