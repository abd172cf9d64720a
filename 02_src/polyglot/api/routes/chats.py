"""Chat API routes."""

from datetime import datetime

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from ...app import Application
from ...errors import PolyglotError
from ...models import Chat, ChatDetails, ChatSummary
from ..errors import to_http_error
from .messaging import MessageResponse, message_to_response
from .profiles import ProfileResponse, profile_to_response


class DirectChatRequest(BaseModel):
    """Request model for opening a direct chat."""

    user_id: str
    participant_id: str


class GroupChatRequest(BaseModel):
    """Request model for creating a group chat."""

    user_id: str
    name: str
    participant_ids: list[str] = Field(default_factory=list)


class ChatResponse(BaseModel):
    """Response model for a chat."""

    id: str
    type: str
    name: str | None
    display_name: str
    participants: list[str]
    created_by: str
    last_activity_at: datetime


class ChatSummaryResponse(ChatResponse):
    """A chat as listed for one user."""

    last_message: MessageResponse | None = None
    other_participants: list[ProfileResponse] = Field(default_factory=list)


class ChatDetailsResponse(ChatResponse):
    """A chat with its participants' profiles."""

    participant_profiles: list[ProfileResponse] = Field(default_factory=list)


def chat_to_response(chat: Chat) -> dict:
    return {
        "id": chat.id,
        "type": chat.type,
        "name": chat.name,
        "display_name": chat.display_name,
        "participants": chat.participants,
        "created_by": chat.created_by,
        "last_activity_at": chat.last_activity_at,
    }


def summary_to_response(summary: ChatSummary) -> dict:
    data = chat_to_response(summary.chat)
    if summary.last_message:
        data["last_message"] = message_to_response(summary.last_message)
    data["other_participants"] = [
        profile_to_response(p) for p in summary.other_participants
    ]
    return data


def details_to_response(details: ChatDetails) -> dict:
    data = chat_to_response(details.chat)
    data["participant_profiles"] = [
        profile_to_response(p) for p in details.participants
    ]
    return data


def create_chats_router(app: Application) -> APIRouter:
    """Create chats router."""
    router = APIRouter(prefix="/api", tags=["chats"])

    @router.post("/chats/direct", response_model=ChatResponse)
    async def create_direct_chat(request: DirectChatRequest) -> dict:
        """Open (or reuse) the direct chat between two users."""
        try:
            chat = await app.chat_service.create_direct_chat(
                request.user_id, request.participant_id
            )
        except PolyglotError as e:
            raise to_http_error(e)
        return chat_to_response(chat)

    @router.post("/chats/group", response_model=ChatResponse)
    async def create_group_chat(request: GroupChatRequest) -> dict:
        """Create a group chat."""
        try:
            chat = await app.chat_service.create_group_chat(
                request.user_id, request.name, request.participant_ids
            )
        except PolyglotError as e:
            raise to_http_error(e)
        return chat_to_response(chat)

    @router.get("/users/{user_id}/chats", response_model=list[ChatSummaryResponse])
    async def list_chats(user_id: str) -> list[dict]:
        """Chats of a user, most recently active first."""
        summaries = await app.chat_service.list_chats(user_id)
        return [summary_to_response(s) for s in summaries]

    @router.get("/chats/{chat_id}", response_model=ChatDetailsResponse)
    async def get_chat_details(
        chat_id: str,
        viewer_id: str = Query(..., description="Participant viewing the chat"),
    ) -> dict:
        """A chat with its participants' profiles."""
        details = await app.chat_service.get_chat_details(chat_id, viewer_id)
        if details is None:
            raise HTTPException(status_code=404, detail="Chat not found")
        return details_to_response(details)

    @router.delete("/chats/{chat_id}", status_code=204)
    async def delete_chat(
        chat_id: str,
        user_id: str = Query(..., description="Participant deleting the chat"),
    ) -> None:
        """Delete a chat with its messages."""
        try:
            await app.chat_service.delete_chat(chat_id, user_id)
        except PolyglotError as e:
            raise to_http_error(e)

    return router
