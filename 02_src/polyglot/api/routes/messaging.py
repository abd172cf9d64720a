"""Messaging API routes."""

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Query
from pydantic import BaseModel

from ...app import Application
from ...errors import SendRejectedError
from ...models import Message, MessageView
from ..errors import to_http_error
from .stickers import StickerResponse, sticker_to_response


class SendMessageRequest(BaseModel):
    """Request model for sending a message."""

    sender_id: str
    content: str = ""
    kind: Literal["text", "image", "sticker"] = "text"
    reply_to: str | None = None
    image_ref: str | None = None
    sticker_ref: str | None = None


class MessageResponse(BaseModel):
    """Response model for a stored message."""

    id: str
    chat_id: str
    sender_id: str
    kind: str
    content: str
    created_at: datetime
    reply_to: str | None = None
    image_ref: str | None = None
    sticker_ref: str | None = None
    from_assistant: bool = False


class TranslationResponse(BaseModel):
    """Response model for a translation."""

    target_language: str
    translated_text: str


class ReplyPreviewResponse(BaseModel):
    """Response model for the message being replied to."""

    message_id: str
    sender_name: str | None
    content: str
    kind: str


class MessageViewResponse(MessageResponse):
    """A message as seen by one viewer."""

    sender_name: str | None = None
    translation: TranslationResponse | None = None
    reply_preview: ReplyPreviewResponse | None = None
    sticker: StickerResponse | None = None


def message_to_response(message: Message) -> dict:
    return {
        "id": message.id,
        "chat_id": message.chat_id,
        "sender_id": message.sender_id,
        "kind": message.kind,
        "content": message.content,
        "created_at": message.created_at,
        "reply_to": message.reply_to,
        "image_ref": message.image_ref,
        "sticker_ref": message.sticker_ref,
        "from_assistant": message.from_assistant,
    }


def view_to_response(view: MessageView) -> dict:
    data = message_to_response(view.message)
    data["sender_name"] = view.sender_name
    if view.translation:
        data["translation"] = {
            "target_language": view.translation.target_language,
            "translated_text": view.translation.translated_text,
        }
    if view.reply_preview:
        data["reply_preview"] = {
            "message_id": view.reply_preview.message_id,
            "sender_name": view.reply_preview.sender_name,
            "content": view.reply_preview.content,
            "kind": view.reply_preview.kind,
        }
    if view.sticker:
        data["sticker"] = sticker_to_response(view.sticker)
    return data


def create_messaging_router(app: Application) -> APIRouter:
    """Create messaging router."""
    router = APIRouter(prefix="/api", tags=["messaging"])

    @router.post("/chats/{chat_id}/messages", response_model=MessageResponse)
    async def send_message(chat_id: str, request: SendMessageRequest) -> dict:
        """Send a message; translations arrive later."""
        try:
            message = await app.chat_service.send_message(
                chat_id=chat_id,
                sender_id=request.sender_id,
                content=request.content,
                kind=request.kind,
                reply_to=request.reply_to,
                image_ref=request.image_ref,
                sticker_ref=request.sticker_ref,
            )
        except SendRejectedError as e:
            raise to_http_error(e)
        return message_to_response(message)

    @router.get("/chats/{chat_id}/messages", response_model=list[MessageViewResponse])
    async def get_messages(
        chat_id: str,
        viewer_id: str = Query(..., description="User reading the chat"),
        limit: int = Query(50, ge=1, le=200),
    ) -> list[dict]:
        """Recent messages with translations for the viewer's language."""
        views = await app.chat_service.get_messages(chat_id, viewer_id, limit)
        return [view_to_response(v) for v in views]

    return router
