"""Identity gate: approved emails, accounts and session tokens."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from jose import JWTError, jwt
from passlib.context import CryptContext

from ..errors import AuthenticationError, ConflictError, NotApprovedError, NotFoundError
from ..logging_config import get_logger
from ..models import Participant, UserProfile
from ..storage import IStorage
from ..tracker import ITracker

logger = get_logger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

JWT_ALGORITHM = "HS256"


class IIdentityGate(Protocol):
    """Who may use the chat, and who the current session belongs to."""

    async def validate_approved(self, email: str) -> bool:
        """True if the email is on the approval list."""
        ...

    async def current_participant(self, token: str | None) -> Participant | None:
        """Participant for a session token, or None."""
        ...


class IdentityGate:
    """Local identity provider backed by Storage."""

    def __init__(
        self,
        storage: IStorage,
        tracker: ITracker,
        secret: str,
        session_ttl: timedelta = timedelta(days=7),
    ):
        self._storage = storage
        self._tracker = tracker
        self._secret = secret
        self._session_ttl = session_ttl
        self._approved_cache: dict[str, bool] = {}

    # Approval list
    async def validate_approved(self, email: str) -> bool:
        """True if the email is on the approval list (case-insensitive)."""
        normalized = (email or "").strip().lower()
        if not normalized:
            return False

        if normalized in self._approved_cache:
            return self._approved_cache[normalized]

        ok = await self._storage.is_email_approved(normalized)
        self._approved_cache[normalized] = ok
        return ok

    async def approve_email(self, email: str) -> None:
        normalized = email.strip().lower()
        await self._storage.add_approved_email(normalized)
        self._approved_cache[normalized] = True

    async def revoke_email(self, email: str) -> bool:
        normalized = email.strip().lower()
        self._approved_cache.pop(normalized, None)
        return await self._storage.remove_approved_email(normalized)

    async def _require_approved(self, email: str) -> str:
        normalized = (email or "").strip().lower()
        if not normalized:
            raise NotApprovedError("Email is required.")
        if not await self.validate_approved(normalized):
            raise NotApprovedError("Email not approved. Contact admin to add your email.")
        return normalized

    # Accounts
    async def sign_up(self, email: str, password: str, name: str = "") -> UserProfile:
        """Create an account for an approved email."""
        normalized = await self._require_approved(email)
        if not password:
            raise AuthenticationError("Please enter a password.")

        if await self._storage.get_credentials(normalized):
            raise ConflictError("An account with this email already exists. Please sign in.")

        profile = UserProfile(
            id=str(uuid.uuid4()),
            email=normalized,
            name=name.strip() or normalized.split("@")[0] or "User",
            created_at=datetime.now(timezone.utc),
        )
        await self._storage.save_user(profile, pwd_context.hash(password))

        logger.info("Account created for %s", normalized)
        await self._tracker.track(
            event_type="user_signed_up",
            actor="identity_gate",
            data={"user_id": profile.id},
        )
        return profile

    async def sign_in(self, email: str, password: str) -> tuple[str, UserProfile]:
        """Check credentials and issue a session token."""
        if not email or not password:
            raise AuthenticationError("Please enter both email and password.")

        normalized = await self._require_approved(email)

        credentials = await self._storage.get_credentials(normalized)
        if credentials is None:
            raise AuthenticationError("No account found with this email. Please sign up first.")

        profile, password_hash = credentials
        if not pwd_context.verify(password, password_hash):
            raise AuthenticationError("Incorrect email or password. Please check and try again.")

        token = self._issue_token(profile.id)
        await self._tracker.track(
            event_type="user_signed_in",
            actor="identity_gate",
            data={"user_id": profile.id},
        )
        return token, profile

    async def sign_out(self, token: str) -> None:
        """Revoke a session token. Invalid tokens are ignored."""
        try:
            claims = self._decode(token)
        except AuthenticationError:
            return
        expires_at = datetime.fromtimestamp(claims["exp"], tz=timezone.utc)
        await self._storage.revoke_token(claims["jti"], expires_at)

    async def authenticate(self, token: str | None) -> UserProfile:
        """Resolve a token to its profile or raise AuthenticationError."""
        if not token:
            raise AuthenticationError("Not signed in.")

        claims = self._decode(token)
        if await self._storage.is_token_revoked(claims["jti"]):
            raise AuthenticationError("Session has been signed out.")

        profile = await self._storage.get_user(claims["sub"])
        if profile is None:
            raise AuthenticationError("Account no longer exists.")

        # Removing an email from the list ends its restored sessions too
        if not await self.validate_approved(profile.email):
            raise NotApprovedError("Email not approved. Contact admin to add your email.")
        return profile

    async def current_participant(self, token: str | None) -> Participant | None:
        """Participant for a session token, or None."""
        try:
            profile = await self.authenticate(token)
        except (AuthenticationError, NotApprovedError):
            return None
        return profile.to_participant()

    async def update_profile(
        self,
        user_id: str,
        name: str | None = None,
        avatar: str | None = None,
    ) -> UserProfile:
        """Change display name and/or avatar reference. Takes effect on next join."""
        profile = await self._storage.get_user(user_id)
        if profile is None:
            raise NotFoundError("User not found.")

        if name is not None and name.strip():
            profile.name = name.strip()
        if avatar is not None:
            profile.profile_picture_url = avatar or None

        await self._storage.update_user(profile)
        return profile

    # Tokens
    def _issue_token(self, user_id: str) -> str:
        expire = datetime.now(timezone.utc) + self._session_ttl
        payload = {"sub": user_id, "jti": uuid.uuid4().hex, "exp": expire}
        return jwt.encode(payload, self._secret, algorithm=JWT_ALGORITHM)

    def _decode(self, token: str) -> dict[str, Any]:
        try:
            claims = jwt.decode(token, self._secret, algorithms=[JWT_ALGORITHM])
        except JWTError as e:
            raise AuthenticationError("Invalid or expired session.") from e
        if "sub" not in claims or "jti" not in claims:
            raise AuthenticationError("Invalid or expired session.")
        return claims
