"""Message pipeline: translation fan-out and assistant replies."""

from .assistant import AssistantMentionHandler, mentions_assistant
from .fanout import TranslationFanOut, is_distinct_translation, needs_translation

__all__ = [
    "AssistantMentionHandler",
    "TranslationFanOut",
    "is_distinct_translation",
    "mentions_assistant",
    "needs_translation",
]
