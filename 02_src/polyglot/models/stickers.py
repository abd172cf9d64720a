"""Sticker catalog data model."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Sticker:
    """A catalog sticker. The image itself lives elsewhere, referenced by image_ref."""

    id: str
    name: str
    category: str
    image_ref: str
    created_at: datetime
    tags: list[str] = field(default_factory=list)
    uploaded_by: str | None = None
