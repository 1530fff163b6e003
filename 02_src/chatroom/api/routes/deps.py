"""Shared route dependencies."""

from typing import Awaitable, Callable

from fastapi import Header

from ...app import Application
from ...models import UserProfile


def bearer_token(authorization: str | None = Header(None)) -> str | None:
    """Extract the token from an `Authorization: Bearer <token>` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def make_current_profile(app: Application) -> Callable[..., Awaitable[UserProfile]]:
    """Build a dependency that resolves the signed-in profile or raises 401/403."""

    async def current_profile(authorization: str | None = Header(None)) -> UserProfile:
        return await app.identity.authenticate(bearer_token(authorization))

    return current_profile
