"""Authentication and profile API routes."""

from datetime import datetime

from fastapi import APIRouter, Depends, Header, status
from pydantic import BaseModel, Field

from ...app import Application
from ...models import UserProfile
from .deps import bearer_token, make_current_profile


class SignUpRequest(BaseModel):
    email: str
    password: str
    name: str = ""


class SignInRequest(BaseModel):
    email: str
    password: str


class ProfileUpdateRequest(BaseModel):
    name: str | None = Field(None, max_length=100)
    avatar: str | None = Field(None, description="Avatar URL; empty string clears it")


class ProfileResponse(BaseModel):
    id: str
    email: str
    name: str
    profile_picture_url: str | None
    created_at: datetime


class SessionResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: ProfileResponse


class StatusResponse(BaseModel):
    status: str


def _profile_out(profile: UserProfile) -> dict:
    return {
        "id": profile.id,
        "email": profile.email,
        "name": profile.name,
        "profile_picture_url": profile.profile_picture_url,
        "created_at": profile.created_at,
    }


def create_auth_router(app: Application) -> APIRouter:
    """Create auth router."""
    router = APIRouter(prefix="/api/auth", tags=["auth"])
    current_profile = make_current_profile(app)

    @router.post(
        "/signup",
        response_model=ProfileResponse,
        status_code=status.HTTP_201_CREATED,
    )
    async def sign_up(request: SignUpRequest) -> dict:
        """Create an account for an approved email."""
        profile = await app.identity.sign_up(request.email, request.password, request.name)
        return _profile_out(profile)

    @router.post("/signin", response_model=SessionResponse)
    async def sign_in(request: SignInRequest) -> dict:
        """Exchange credentials for a session token."""
        token, profile = await app.identity.sign_in(request.email, request.password)
        return {"access_token": token, "user": _profile_out(profile)}

    @router.post("/signout", response_model=StatusResponse)
    async def sign_out(authorization: str | None = Header(None)) -> dict:
        """Revoke the current session token."""
        token = bearer_token(authorization)
        if token:
            await app.identity.sign_out(token)
        return {"status": "ok"}

    @router.get("/me", response_model=ProfileResponse)
    async def me(profile: UserProfile = Depends(current_profile)) -> dict:
        return _profile_out(profile)

    @router.patch("/me", response_model=ProfileResponse)
    async def update_me(
        request: ProfileUpdateRequest,
        profile: UserProfile = Depends(current_profile),
    ) -> dict:
        """Update display name / avatar. Connected sessions see it on next join."""
        updated = await app.identity.update_profile(
            profile.id, name=request.name, avatar=request.avatar
        )
        return _profile_out(updated)

    return router
