"""Messaging API routes."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from ...app import Application
from ...config import HISTORY_LIMIT
from ...models import ChatMessage, UserProfile, utc_now
from .deps import make_current_profile


class MessageRequest(BaseModel):
    """Request model for submitting a message."""

    id: str | None = Field(None, description="Client-generated id (UUID)")
    content: str = Field(min_length=1, max_length=4000)
    timestamp: datetime | None = None


class MessageResponse(BaseModel):
    """Response model for a message (camelCase, as on the realtime channel)."""

    id: str
    userId: str
    userName: str
    userAvatar: str | None
    content: str
    timestamp: datetime


class ParticipantResponse(BaseModel):
    userId: str
    userName: str
    userAvatar: str | None


def create_messaging_router(app: Application) -> APIRouter:
    """Create messaging router."""
    router = APIRouter(prefix="/api", tags=["messaging"])
    current_profile = make_current_profile(app)

    @router.get("/messages", response_model=list[MessageResponse])
    async def get_messages(
        limit: int = Query(HISTORY_LIMIT, ge=1, le=HISTORY_LIMIT),
        profile: UserProfile = Depends(current_profile),
    ) -> list[dict]:
        """Recent history, oldest first."""
        messages = await app.pipeline.load_history(limit)
        return [m.to_wire() for m in messages]

    @router.post(
        "/messages",
        response_model=MessageResponse,
        status_code=status.HTTP_201_CREATED,
    )
    async def submit_message(
        request: MessageRequest,
        profile: UserProfile = Depends(current_profile),
    ) -> dict:
        """Persist a message. Realtime delivery is the client's separate emit."""
        content = request.content.strip()
        if not content:
            raise HTTPException(status_code=400, detail="Message is empty")

        participant = profile.to_participant()
        message = ChatMessage(
            id=request.id or "",
            user_id=participant.id,
            user_name=participant.name,
            user_avatar=participant.avatar,
            content=content,
            created_at=request.timestamp or utc_now(),
        )

        if not await app.pipeline.submit(message):
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Message could not be saved. Please try again.",
            )
        return message.to_wire()

    @router.get("/presence", response_model=list[ParticipantResponse])
    async def get_presence(
        profile: UserProfile = Depends(current_profile),
    ) -> list[dict]:
        """Who is connected right now."""
        return [p.to_wire() for p in app.relay.online()]

    return router
