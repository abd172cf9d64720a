"""Sticker catalog."""

import uuid
from datetime import datetime, timezone

from ..errors import InvalidStickerError
from ..logging_config import get_logger
from ..models import Sticker
from ..storage import IStorage
from ..tracker import ITracker

logger = get_logger(__name__)

ACTOR = "sticker_catalog"


class StickerCatalog:
    """Registers sticker metadata and lists the catalog by category."""

    def __init__(self, storage: IStorage, tracker: ITracker):
        self._storage = storage
        self._tracker = tracker

    async def register_sticker(
        self,
        user_id: str,
        name: str,
        category: str,
        image_ref: str,
        tags: list[str] | tuple[str, ...] = (),
    ) -> Sticker:
        """
        Add a sticker whose image has already been uploaded.

        Raises:
            InvalidStickerError: Name, category or image reference is blank.
        """
        name = name.strip()
        category = category.strip()
        image_ref = image_ref.strip()
        if not name or not category or not image_ref:
            raise InvalidStickerError(
                "Stickers need a name, a category and an image reference"
            )

        sticker = Sticker(
            id=str(uuid.uuid4()),
            name=name,
            category=category,
            image_ref=image_ref,
            tags=[tag.strip() for tag in tags if tag.strip()],
            uploaded_by=user_id,
            created_at=datetime.now(timezone.utc),
        )
        await self._storage.save_sticker(sticker)

        logger.info("Sticker %s registered in %s", sticker.id, category)
        await self._tracker.track(
            "sticker_registered",
            ACTOR,
            {"sticker_id": sticker.id, "category": category, "user_id": user_id},
        )
        return sticker

    async def list_stickers(self, category: str | None = None) -> list[Sticker]:
        return await self._storage.list_stickers(category or None)

    async def list_categories(self) -> list[str]:
        return await self._storage.list_sticker_categories()
