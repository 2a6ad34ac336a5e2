"""Identity adapter: maps an external (Clerk) session onto a local user record."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import jwt
import structlog

from saasify.auth.clerk import ClerkClaims, fetch_clerk_user, verify_clerk_token
from saasify.types import PlatformRole

if TYPE_CHECKING:
    from saasify.models.database import User
    from saasify.storage.repositories.users import UserRepository

logger = structlog.get_logger(__name__)

TokenVerifier = Callable[[str], Awaitable[ClerkClaims]]
ProfileFetcher = Callable[[str], Awaitable["dict[str, str] | None"]]


@dataclass(frozen=True, slots=True)
class ExternalIdentity:
    """Identity as asserted by the external provider."""

    external_id: str
    email: str
    first_name: str = ""
    last_name: str = ""
    image_url: str = ""

    @property
    def display_name(self) -> str:
        return " ".join(p for p in (self.first_name.strip(), self.last_name.strip()) if p)


@dataclass(frozen=True, slots=True)
class AuthenticatedUser:
    """A verified external identity joined with its local user row."""

    identity: ExternalIdentity
    user: User

    @property
    def id(self) -> str:
        return self.user.id

    @property
    def external_id(self) -> str:
        return self.identity.external_id

    @property
    def email(self) -> str:
        return self.user.email

    @property
    def is_platform_admin(self) -> bool:
        return self.user.platform_role == PlatformRole.PLATFORM_ADMIN


class IdentityProvider:
    """Reads the caller's identity from a session token and keeps the local user in sync.

    The token verifier and profile fetcher are injectable so tests and other
    providers can stand in for Clerk.
    """

    def __init__(
        self,
        users: UserRepository,
        verify_token: TokenVerifier = verify_clerk_token,
        fetch_profile: ProfileFetcher | None = fetch_clerk_user,
    ) -> None:
        self._users = users
        self._verify_token = verify_token
        self._fetch_profile = fetch_profile

    @property
    def users(self) -> UserRepository:
        return self._users

    async def get_current_identity_or_null(
        self, session_token: str | None
    ) -> ExternalIdentity | None:
        """Return the verified identity, or None when there is no usable session."""
        if not session_token:
            return None
        try:
            claims = await self._verify_token(session_token)
        except jwt.PyJWTError as exc:
            logger.info("session_token_rejected", error=str(exc))
            return None

        email = claims.email.strip()
        first_name, last_name, image_url = claims.first_name, claims.last_name, claims.image_url
        if not email and self._fetch_profile is not None:
            profile = await self._fetch_profile(claims.sub)
            if profile:
                email = profile.get("email", "").strip()
                first_name = first_name or profile.get("first_name", "")
                last_name = last_name or profile.get("last_name", "")
                image_url = image_url or profile.get("image_url", "")

        if not email:
            # A user without an email cannot be mapped to a local account.
            logger.warning("identity_missing_email", external_id=claims.sub)
            return None

        return ExternalIdentity(
            external_id=claims.sub,
            email=email,
            first_name=first_name,
            last_name=last_name,
            image_url=image_url,
        )

    async def ensure_local_user(self, identity: ExternalIdentity) -> User:
        """Create or refresh the local user. Safe to call concurrently."""
        return await self._users.upsert_by_external_id(
            external_id=identity.external_id,
            email=identity.email,
            name=identity.display_name,
            image_url=identity.image_url,
        )

    async def current_user(self, session_token: str | None) -> AuthenticatedUser | None:
        identity = await self.get_current_identity_or_null(session_token)
        if identity is None:
            return None
        user = await self.ensure_local_user(identity)
        return AuthenticatedUser(identity=identity, user=user)
