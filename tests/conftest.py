"""Shared test fixtures."""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING

import jwt
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel import SQLModel

import saasify.models.database  # noqa: F401  (registers the tables)
from saasify.auth.clerk import ClerkClaims
from saasify.config.settings import Settings
from saasify.storage.repositories.invites import InviteRepository
from saasify.storage.repositories.memberships import MembershipRepository
from saasify.storage.repositories.project_members import ProjectMemberRepository
from saasify.storage.repositories.projects import ProjectRepository
from saasify.storage.repositories.saved_views import SavedViewRepository
from saasify.storage.repositories.tenants import TenantRepository
from saasify.storage.repositories.users import UserRepository
from saasify.types import PlatformRole
from saasify.web.app import create_app

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine

    from saasify.models.database import User

WEBHOOK_SECRET = "whsec_" + base64.b64encode(b"saasify-test-webhook-secret").decode()


class FakeClerk:
    """Stands in for Clerk: a session token is ``session-<external_id>``."""

    def __init__(self) -> None:
        self.claims: dict[str, ClerkClaims] = {}
        self.profiles: dict[str, dict[str, str]] = {}

    def add(
        self,
        external_id: str,
        email: str,
        first_name: str = "",
        last_name: str = "",
    ) -> str:
        self.claims[f"session-{external_id}"] = ClerkClaims(
            sub=external_id,
            session_id=f"sess_{external_id}",
            email=email,
            first_name=first_name,
            last_name=last_name,
            image_url="",
        )
        return f"session-{external_id}"

    async def verify(self, token: str) -> ClerkClaims:
        claims = self.claims.get(token)
        if claims is None:
            msg = "Signature verification failed"
            raise jwt.InvalidSignatureError(msg)
        return claims

    async def fetch_profile(self, external_id: str) -> dict[str, str] | None:
        return self.profiles.get(external_id)


@pytest.fixture()
async def async_engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """File-backed SQLite engine with all tables created.

    A file database (not ``:memory:``) so concurrent sessions get their own
    connections, as they would against PostgreSQL.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'saasify.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def user_repo(async_engine: AsyncEngine) -> UserRepository:
    return UserRepository(async_engine)


@pytest.fixture()
def tenant_repo(async_engine: AsyncEngine) -> TenantRepository:
    return TenantRepository(async_engine)


@pytest.fixture()
def membership_repo(async_engine: AsyncEngine) -> MembershipRepository:
    return MembershipRepository(async_engine)


@pytest.fixture()
def project_repo(async_engine: AsyncEngine) -> ProjectRepository:
    return ProjectRepository(async_engine)


@pytest.fixture()
def project_member_repo(async_engine: AsyncEngine) -> ProjectMemberRepository:
    return ProjectMemberRepository(async_engine)


@pytest.fixture()
def saved_view_repo(async_engine: AsyncEngine) -> SavedViewRepository:
    return SavedViewRepository(async_engine)


@pytest.fixture()
def invite_repo(async_engine: AsyncEngine) -> InviteRepository:
    return InviteRepository(async_engine)


@pytest.fixture()
def make_user(user_repo: UserRepository):
    async def _make(
        external_id: str,
        email: str | None = None,
        platform_role: PlatformRole | None = None,
    ) -> User:
        return await user_repo.upsert_by_external_id(
            external_id=external_id,
            email=email or f"{external_id}@example.com",
            name=external_id.title(),
            platform_role=platform_role,
        )

    return _make


@pytest.fixture()
def fake_clerk() -> FakeClerk:
    return FakeClerk()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        environment="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'saasify.db'}",
        clerk_webhook_secret=WEBHOOK_SECRET,
    )


@pytest.fixture()
def app(async_engine: AsyncEngine, settings: Settings, fake_clerk: FakeClerk):
    return create_app(
        async_engine,
        settings=settings,
        token_verifier=fake_clerk.verify,
        profile_fetcher=fake_clerk.fetch_profile,
    )


@pytest.fixture()
async def client(app) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
