"""Translation data model."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Translation:
    """Translated text of one message into one language. Write-once."""

    message_id: str
    target_language: str
    translated_text: str
    original_text: str
    created_at: datetime
