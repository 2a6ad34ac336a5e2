"""Unit tests for per-project access grants and saved views."""

from __future__ import annotations

import asyncio

import pytest

from saasify.types import ProjectAccessRole, ProjectMemberStatus


@pytest.fixture()
async def admin(make_user):
    return await make_user("user_admin")


@pytest.fixture()
async def tenant(tenant_repo, admin):
    tenant, _ = await tenant_repo.provision(name="Acme", slug="acme", created_by_user_id=admin.id)
    return tenant


@pytest.fixture()
async def project(project_repo, tenant, admin):
    return await project_repo.create(
        tenant_id=tenant.id, title="Roadmap", created_by_user_id=admin.id
    )


def _grant(repo, tenant, project, user, role):
    return repo.upsert(tenant_id=tenant.id, project_id=project.id, user_id=user.id, role=role)


@pytest.mark.unit
class TestProjectMemberRepository:
    async def test_upsert_changes_role_in_place(
        self, project_member_repo, tenant, project, make_user
    ) -> None:
        user = await make_user("user_viewer")
        first = await _grant(project_member_repo, tenant, project, user, ProjectAccessRole.VIEWER)
        second = await _grant(project_member_repo, tenant, project, user, ProjectAccessRole.EDITOR)
        assert second.id == first.id
        assert second.role == ProjectAccessRole.EDITOR
        assert second.created_at == first.created_at
        rows = await project_member_repo.list_active(tenant.id, project.id)
        assert [(m.user_id, m.role) for m in rows] == [(user.id, ProjectAccessRole.EDITOR)]

    async def test_concurrent_upserts_leave_one_row(
        self, project_member_repo, tenant, project, make_user
    ) -> None:
        user = await make_user("user_contended")
        await asyncio.gather(
            *(
                project_member_repo.upsert(
                    tenant_id=tenant.id, project_id=project.id, user_id=user.id, role=role
                )
                for role in (ProjectAccessRole.VIEWER, ProjectAccessRole.EDITOR) * 3
            )
        )
        rows = await project_member_repo.list_active(tenant.id, project.id)
        assert len(rows) == 1

    async def test_remove_then_reassign(
        self, project_member_repo, tenant, project, make_user
    ) -> None:
        user = await make_user("user_leaving")
        granted = await _grant(project_member_repo, tenant, project, user, ProjectAccessRole.EDITOR)
        removed = await project_member_repo.remove(tenant.id, project.id, user.id)
        assert removed is not None
        assert removed.status == ProjectMemberStatus.REMOVED
        assert await project_member_repo.list_active(tenant.id, project.id) == []
        # A second removal finds no active grant
        assert await project_member_repo.remove(tenant.id, project.id, user.id) is None

        again = await _grant(project_member_repo, tenant, project, user, ProjectAccessRole.VIEWER)
        assert again.id == granted.id
        assert again.status == ProjectMemberStatus.ACTIVE
        assert again.role == ProjectAccessRole.VIEWER

    async def test_scoped_to_tenant(
        self, project_member_repo, tenant_repo, tenant, project, admin, make_user
    ) -> None:
        other, _ = await tenant_repo.provision(
            name="Other", slug="other", created_by_user_id=admin.id
        )
        user = await make_user("user_scoped")
        await _grant(project_member_repo, tenant, project, user, ProjectAccessRole.VIEWER)
        assert await project_member_repo.list_active(other.id, project.id) == []
        assert await project_member_repo.remove(other.id, project.id, user.id) is None


@pytest.mark.unit
class TestSavedViewRepository:
    async def test_pinned_first(self, saved_view_repo, tenant, admin) -> None:
        older = await saved_view_repo.create(
            tenant_id=tenant.id, user_id=admin.id, name="Archived", filters={"status": "archived"}
        )
        newer = await saved_view_repo.create(
            tenant_id=tenant.id, user_id=admin.id, name="Search", filters={"search": "q3"}
        )
        views = await saved_view_repo.list_for_user(tenant.id, admin.id)
        assert [v.id for v in views] == [newer.id, older.id]

        pinned = await saved_view_repo.set_pinned(tenant.id, admin.id, older.id, is_pinned=True)
        assert pinned is not None
        assert pinned.is_pinned
        views = await saved_view_repo.list_for_user(tenant.id, admin.id)
        assert [v.id for v in views] == [older.id, newer.id]
        assert views[0].filters == {"status": "archived"}

    async def test_other_users_views_are_invisible(
        self, saved_view_repo, tenant, admin, make_user
    ) -> None:
        view = await saved_view_repo.create(
            tenant_id=tenant.id, user_id=admin.id, name="Mine", filters={}
        )
        other = await make_user("user_other")

        assert await saved_view_repo.list_for_user(tenant.id, other.id) == []
        pinned = await saved_view_repo.set_pinned(tenant.id, other.id, view.id, is_pinned=True)
        assert pinned is None
        assert not await saved_view_repo.delete(tenant.id, other.id, view.id)
        assert [v.id for v in await saved_view_repo.list_for_user(tenant.id, admin.id)] == [view.id]

    async def test_delete(self, saved_view_repo, tenant, admin) -> None:
        view = await saved_view_repo.create(
            tenant_id=tenant.id, user_id=admin.id, name="Temp", filters={}
        )
        assert await saved_view_repo.delete(tenant.id, admin.id, view.id)
        assert not await saved_view_repo.delete(tenant.id, admin.id, view.id)
        assert await saved_view_repo.list_for_user(tenant.id, admin.id) == []
