"""Shared service container wired once per application and stored on ``app.state``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from fastapi import Request

from saasify.audit.logger import AuditLogger
from saasify.auth.clerk import fetch_clerk_user, verify_clerk_token
from saasify.auth.identity import IdentityProvider, ProfileFetcher, TokenVerifier
from saasify.services.analytics import AnalyticsService
from saasify.services.directory import MembershipDirectory
from saasify.storage.repositories.invites import InviteRepository
from saasify.storage.repositories.memberships import MembershipRepository
from saasify.storage.repositories.project_members import ProjectMemberRepository
from saasify.storage.repositories.projects import ProjectRepository
from saasify.storage.repositories.saved_views import SavedViewRepository
from saasify.storage.repositories.tenants import TenantRepository
from saasify.storage.repositories.users import UserRepository
from saasify.tenancy.guards import AccessGuard
from saasify.tenancy.resolver import TenantContextResolver

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from saasify.config.settings import Settings


@dataclass
class Services:
    settings: Settings
    users: UserRepository
    tenants: TenantRepository
    memberships: MembershipRepository
    projects: ProjectRepository
    project_members: ProjectMemberRepository
    saved_views: SavedViewRepository
    invites: InviteRepository
    audit: AuditLogger
    identity: IdentityProvider
    resolver: TenantContextResolver
    guard: AccessGuard
    directory: MembershipDirectory
    analytics: AnalyticsService


def build_services(
    engine: AsyncEngine,
    settings: Settings,
    *,
    token_verifier: TokenVerifier | None = None,
    profile_fetcher: ProfileFetcher | None = None,
) -> Services:
    """Create the repositories and the guard stack over one engine."""
    users = UserRepository(engine)
    tenants = TenantRepository(engine)
    memberships = MembershipRepository(engine)
    projects = ProjectRepository(engine)
    identity = IdentityProvider(
        users,
        verify_token=token_verifier or verify_clerk_token,
        fetch_profile=profile_fetcher or fetch_clerk_user,
    )
    resolver = TenantContextResolver(tenants, memberships, settings.select_tenant_path)
    return Services(
        settings=settings,
        users=users,
        tenants=tenants,
        memberships=memberships,
        projects=projects,
        project_members=ProjectMemberRepository(engine),
        saved_views=SavedViewRepository(engine),
        invites=InviteRepository(engine),
        audit=AuditLogger(engine),
        identity=identity,
        resolver=resolver,
        guard=AccessGuard(identity, resolver),
        directory=MembershipDirectory(memberships, tenants, users),
        analytics=AnalyticsService(tenants, memberships, projects),
    )


def get_services(request: Request) -> Services:
    services: Services = request.app.state.services
    return services
