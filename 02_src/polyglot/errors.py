"""Exception hierarchy for Polyglot Chat.

Only ``SendRejectedError`` and its subclasses ever reach a caller. Errors
raised inside deferred tasks are caught at the task boundary, logged and
traced.
"""


class PolyglotError(Exception):
    """Base class for all domain errors."""


class SendRejectedError(PolyglotError):
    """A message could not be sent; reported synchronously to the sender."""


class ChatNotFoundError(SendRejectedError):
    """The target chat does not exist."""

    def __init__(self, chat_id: str):
        super().__init__(f"Chat not found: {chat_id}")
        self.chat_id = chat_id


class AccessDeniedError(SendRejectedError):
    """The user is not a participant of the chat."""

    def __init__(self, chat_id: str, user_id: str):
        super().__init__(f"User {user_id} is not a participant of chat {chat_id}")
        self.chat_id = chat_id
        self.user_id = user_id


class ProfileNotFoundError(SendRejectedError):
    """The user has no profile (and therefore no preferred language)."""

    def __init__(self, user_id: str):
        super().__init__(f"Profile not found: {user_id}")
        self.user_id = user_id


class InvalidMessageError(SendRejectedError):
    """The message fields are not acceptable."""


class InvalidChatError(PolyglotError):
    """A chat could not be created with the given participants."""


class InvalidStickerError(PolyglotError):
    """Sticker metadata is incomplete."""


class TranslationProviderError(PolyglotError):
    """The translation backend failed or returned an unusable result."""


class ResponseGenerationError(PolyglotError):
    """The assistant response backend failed."""
