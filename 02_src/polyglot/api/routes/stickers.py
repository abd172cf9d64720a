"""Sticker catalog API routes."""

from datetime import datetime

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from ...app import Application
from ...errors import PolyglotError
from ...models import Sticker
from ..errors import to_http_error


class StickerRequest(BaseModel):
    """Request model for registering an uploaded sticker."""

    user_id: str
    name: str
    category: str
    image_ref: str
    tags: list[str] = Field(default_factory=list)


class StickerResponse(BaseModel):
    """Response model for a catalog sticker."""

    id: str
    name: str
    category: str
    image_ref: str
    tags: list[str]
    uploaded_by: str | None = None
    created_at: datetime


def sticker_to_response(sticker: Sticker) -> dict:
    return {
        "id": sticker.id,
        "name": sticker.name,
        "category": sticker.category,
        "image_ref": sticker.image_ref,
        "tags": sticker.tags,
        "uploaded_by": sticker.uploaded_by,
        "created_at": sticker.created_at,
    }


def create_stickers_router(app: Application) -> APIRouter:
    """Create stickers router."""
    router = APIRouter(prefix="/api", tags=["stickers"])

    @router.get("/stickers", response_model=list[StickerResponse])
    async def list_stickers(
        category: str | None = Query(None, description="Only this category"),
    ) -> list[dict]:
        """Catalog stickers by name."""
        stickers = await app.stickers.list_stickers(category)
        return [sticker_to_response(s) for s in stickers]

    @router.get("/stickers/categories", response_model=list[str])
    async def list_categories() -> list[str]:
        """Categories that have at least one sticker."""
        return await app.stickers.list_categories()

    @router.post("/stickers", response_model=StickerResponse)
    async def register_sticker(request: StickerRequest) -> dict:
        """Register metadata for an already-uploaded sticker image."""
        try:
            sticker = await app.stickers.register_sticker(
                request.user_id,
                request.name,
                request.category,
                request.image_ref,
                request.tags,
            )
        except PolyglotError as e:
            raise to_http_error(e)
        return sticker_to_response(sticker)

    return router
