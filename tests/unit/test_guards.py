"""Unit tests for the composable access guards."""

from __future__ import annotations

import pytest

from saasify.auth.identity import IdentityProvider
from saasify.exceptions import (
    ForbiddenError,
    TenantContextError,
    TenantMismatchError,
    UnauthenticatedError,
    ValidationFailedError,
)
from saasify.tenancy.guards import AccessGuard, AccessRequest, ensure_tenant_id_matches_param
from saasify.tenancy.resolver import TenantContextResolver
from saasify.types import PlatformRole, TenantContextStatus, TenantRole, TenantStatus


class _CountingResolver(TenantContextResolver):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.calls = 0

    async def resolve(self, selection_token, user_id=None):
        self.calls += 1
        return await super().resolve(selection_token, user_id)


@pytest.fixture()
def resolver(tenant_repo, membership_repo) -> _CountingResolver:
    return _CountingResolver(tenant_repo, membership_repo)


@pytest.fixture()
def guard(user_repo, fake_clerk, resolver) -> AccessGuard:
    identity = IdentityProvider(
        user_repo, verify_token=fake_clerk.verify, fetch_profile=fake_clerk.fetch_profile
    )
    return AccessGuard(identity, resolver)


@pytest.fixture()
async def workspace(fake_clerk, make_user, tenant_repo, membership_repo):
    """Tenant with an admin and a plain user, each with a session token."""
    admin_token = fake_clerk.add("user_admin", "admin@example.com")
    member_token = fake_clerk.add("user_member", "member@example.com")
    admin = await make_user("user_admin", "admin@example.com")
    member = await make_user("user_member", "member@example.com")
    tenant, _ = await tenant_repo.provision(name="Acme", slug="acme", created_by_user_id=admin.id)
    await membership_repo.create(
        tenant_id=tenant.id, user_id=member.id, role=TenantRole.TENANT_USER
    )
    return {
        "tenant": tenant,
        "admin": AccessRequest(session_token=admin_token, selection_token=tenant.id),
        "member": AccessRequest(session_token=member_token, selection_token=tenant.id),
    }


@pytest.mark.unit
class TestRequireAuth:
    async def test_no_session(self, guard: AccessGuard) -> None:
        with pytest.raises(UnauthenticatedError):
            await guard.require_auth(AccessRequest())

    async def test_invalid_token(self, guard: AccessGuard) -> None:
        with pytest.raises(UnauthenticatedError):
            await guard.require_auth(AccessRequest(session_token="forged"))

    async def test_valid_session_syncs_local_user(self, guard, fake_clerk, user_repo) -> None:
        token = fake_clerk.add("user_new", "new@example.com", "Ada", "Lovelace")
        user = await guard.require_auth(AccessRequest(session_token=token))
        assert user.external_id == "user_new"
        stored = await user_repo.get_by_external_id("user_new")
        assert stored is not None
        assert stored.name == "Ada Lovelace"
        assert stored.platform_role == PlatformRole.USER


@pytest.mark.unit
class TestRequirePlatformAdmin:
    async def test_plain_user_rejected(self, guard, fake_clerk) -> None:
        token = fake_clerk.add("user_plain", "plain@example.com")
        with pytest.raises(ForbiddenError) as exc_info:
            await guard.require_platform_admin(AccessRequest(session_token=token))
        assert exc_info.value.reason == "FORBIDDEN_PLATFORM_ADMIN_ONLY"

    async def test_platform_admin_allowed(self, guard, fake_clerk, make_user) -> None:
        token = fake_clerk.add("user_root", "root@example.com")
        await make_user("user_root", "root@example.com", PlatformRole.PLATFORM_ADMIN)
        user = await guard.require_platform_admin(AccessRequest(session_token=token))
        assert user.is_platform_admin

    async def test_unauthenticated_before_role_check(self, guard) -> None:
        with pytest.raises(UnauthenticatedError):
            await guard.require_platform_admin(AccessRequest(session_token=None))


@pytest.mark.unit
class TestRequireTenantMembership:
    async def test_member(self, guard, workspace) -> None:
        membership = await guard.require_tenant_membership(workspace["member"])
        assert membership.tenant_id == workspace["tenant"].id
        assert membership.role == TenantRole.TENANT_USER
        assert membership.ctx.ok

    async def test_auth_checked_before_resolution(self, guard, resolver, workspace) -> None:
        request = AccessRequest(session_token=None, selection_token=workspace["tenant"].id)
        with pytest.raises(UnauthenticatedError):
            await guard.require_tenant_membership(request)
        assert resolver.calls == 0

    async def test_no_membership_never_returns_role(self, guard, fake_clerk, workspace) -> None:
        token = fake_clerk.add("user_outsider", "outsider@example.com")
        request = AccessRequest(session_token=token, selection_token=workspace["tenant"].id)
        with pytest.raises(TenantContextError) as exc_info:
            await guard.require_tenant_membership(request)
        assert exc_info.value.reason == "FORBIDDEN_TENANT_CONTEXT_not_a_member"
        assert exc_info.value.context.role is None

    async def test_missing_selection_carries_redirect(self, guard, workspace) -> None:
        request = AccessRequest(session_token=workspace["member"].session_token)
        with pytest.raises(TenantContextError) as exc_info:
            await guard.require_tenant_membership(request)
        assert exc_info.value.reason == "FORBIDDEN_TENANT_CONTEXT_missing_tenant"
        assert exc_info.value.redirect_to == "/tenant/select-tenant"

    async def test_suspended_tenant(self, guard, workspace, tenant_repo) -> None:
        await tenant_repo.set_status(workspace["tenant"].id, TenantStatus.SUSPENDED)
        with pytest.raises(TenantContextError) as exc_info:
            await guard.require_tenant_membership(workspace["admin"])
        assert exc_info.value.context.status == TenantContextStatus.TENANT_SUSPENDED

    async def test_removed_member(self, guard, workspace, membership_repo) -> None:
        member = await guard.require_tenant_membership(workspace["member"])
        await membership_repo.remove(workspace["tenant"].id, member.user.id)
        with pytest.raises(TenantContextError) as exc_info:
            await guard.require_tenant_membership(workspace["member"])
        assert exc_info.value.context.status == TenantContextStatus.NOT_A_MEMBER

    async def test_role_less_context_is_rejected(self, guard, resolver, workspace) -> None:
        async def anonymous_resolve(selection_token, user_id=None):
            return await TenantContextResolver.resolve(resolver, selection_token, None)

        resolver.resolve = anonymous_resolve
        with pytest.raises(ForbiddenError) as exc_info:
            await guard.require_tenant_membership(workspace["member"])
        assert exc_info.value.reason == "FORBIDDEN_TENANT_MEMBERSHIP_REQUIRED"


@pytest.mark.unit
class TestRequireTenantRole:
    async def test_admin_passes_user_minimum(self, guard, workspace) -> None:
        membership = await guard.require_tenant_role(workspace["admin"], TenantRole.TENANT_USER)
        assert membership.role == TenantRole.TENANT_ADMIN

    async def test_admin_passes_admin_minimum(self, guard, workspace) -> None:
        membership = await guard.require_tenant_admin(workspace["admin"])
        assert membership.is_admin

    async def test_user_passes_user_minimum(self, guard, workspace) -> None:
        membership = await guard.require_tenant_role(workspace["member"], TenantRole.TENANT_USER)
        assert membership.role == TenantRole.TENANT_USER

    async def test_user_fails_admin_minimum(self, guard, workspace) -> None:
        with pytest.raises(ForbiddenError) as exc_info:
            await guard.require_tenant_admin(workspace["member"])
        assert exc_info.value.reason == "FORBIDDEN_TENANT_ROLE_INSUFFICIENT"

    async def test_context_failure_not_masked_as_role_failure(
        self, guard, workspace, tenant_repo
    ) -> None:
        await tenant_repo.set_status(workspace["tenant"].id, TenantStatus.SUSPENDED)
        with pytest.raises(TenantContextError):
            await guard.require_tenant_admin(workspace["member"])


@pytest.mark.unit
class TestEnsureTenantIdMatchesParam:
    TENANT_A = "0b5d1c7e-6a0f-4f43-8f6c-1d2e3f4a5b6c"
    TENANT_B = "9a8b7c6d-5e4f-4a3b-8c2d-1e0f9a8b7c6d"

    def test_match_returns_canonical_id(self) -> None:
        assert ensure_tenant_id_matches_param(self.TENANT_A.upper(), self.TENANT_A) == self.TENANT_A

    def test_mismatch(self) -> None:
        with pytest.raises(TenantMismatchError) as exc_info:
            ensure_tenant_id_matches_param(self.TENANT_B, self.TENANT_A)
        assert exc_info.value.reason == "TENANT_MISMATCH"
        assert exc_info.value.path_tenant_id == self.TENANT_B

    @pytest.mark.parametrize("path_id", [None, "", "acme", "123"])
    def test_malformed_path_id(self, path_id) -> None:
        with pytest.raises(ValidationFailedError):
            ensure_tenant_id_matches_param(path_id, self.TENANT_A)

    async def test_admin_of_other_tenant_still_mismatches(
        self, guard, workspace, tenant_repo
    ) -> None:
        admin = await guard.require_auth(workspace["admin"])
        other, _ = await tenant_repo.provision(
            name="Beta", slug="beta", created_by_user_id=admin.id
        )
        membership = await guard.require_tenant_admin(workspace["admin"])
        with pytest.raises(TenantMismatchError):
            ensure_tenant_id_matches_param(other.id, membership.tenant_id)
