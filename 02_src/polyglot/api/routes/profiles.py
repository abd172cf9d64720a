"""Profile API routes."""

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Query
from pydantic import BaseModel

from ...app import Application
from ...languages import load_language_names
from ...models import Profile
from ..errors import to_http_error


class ProfileRequest(BaseModel):
    """Request model for creating or updating a profile."""

    name: str
    preferred_language: str


class StatusRequest(BaseModel):
    """Request model for presence updates."""

    status: Literal["online", "away", "offline"]


class ProfileResponse(BaseModel):
    """Response model for a profile."""

    user_id: str
    name: str
    preferred_language: str
    status: str
    last_seen: datetime | None = None


def profile_to_response(profile: Profile) -> dict:
    return {
        "user_id": profile.user_id,
        "name": profile.name,
        "preferred_language": profile.preferred_language,
        "status": profile.status,
        "last_seen": profile.last_seen,
    }


def create_profiles_router(app: Application) -> APIRouter:
    """Create profiles router."""
    router = APIRouter(prefix="/api", tags=["profiles"])

    @router.put("/users/{user_id}/profile", response_model=ProfileResponse)
    async def update_profile(user_id: str, request: ProfileRequest) -> dict:
        """Create or update a user's profile."""
        try:
            profile = await app.chat_service.update_profile(
                user_id, request.name, request.preferred_language
            )
        except ValueError as e:
            raise to_http_error(e)
        return profile_to_response(profile)

    @router.put("/users/{user_id}/status", status_code=204)
    async def update_status(user_id: str, request: StatusRequest) -> None:
        """Update a user's presence status."""
        await app.chat_service.set_status(user_id, request.status)

    @router.get("/users/search", response_model=list[ProfileResponse])
    async def search_users(
        q: str = Query(..., min_length=1, description="Part of a user name"),
        exclude: str | None = Query(None, description="User ID to leave out"),
    ) -> list[dict]:
        """Find users by name."""
        profiles = await app.chat_service.search_users(q, exclude_user_id=exclude)
        return [profile_to_response(p) for p in profiles]

    @router.get("/languages", response_model=dict[str, str])
    async def list_languages() -> dict[str, str]:
        """Supported language codes and their names."""
        return load_language_names()

    return router
