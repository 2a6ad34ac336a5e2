"""Unit tests for the audit logger."""

from __future__ import annotations

import json

import pytest
import structlog
from sqlalchemy import text

from saasify.audit.logger import AuditLogger, _sanitize_details


@pytest.mark.unit
class TestSanitizeDetails:
    def test_strips_sensitive_fields(self) -> None:
        raw = {"title": "Alpha", "token": "abc", "Authorization": "Bearer x", "raw_token": "y"}
        assert json.loads(_sanitize_details(raw)) == {"title": "Alpha"}

    def test_size_cap(self) -> None:
        assert len(_sanitize_details({"blob": "x" * 20_000})) == 10_240


@pytest.mark.unit
class TestAuditLogger:
    async def test_log_and_list_scoped(self, async_engine, make_user) -> None:
        actor = await make_user("user_actor")
        audit = AuditLogger(async_engine)
        structlog.contextvars.bind_contextvars(request_id="req-123")
        try:
            await audit.log(
                tenant_id="tenant-a",
                actor=actor,
                action="project.created",
                resource_type="project",
                resource_id="p1",
                details={"title": "Alpha", "secret": "hidden"},
            )
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        await audit.log(tenant_id="tenant-a", actor=None, action="project.deleted")
        await audit.log(tenant_id="tenant-b", actor=actor, action="project.created")

        entries = await audit.list_scoped("tenant-a")
        assert {e.action for e in entries} == {"project.created", "project.deleted"}
        created = next(e for e in entries if e.action == "project.created")
        assert created.user_id == actor.id
        assert created.request_id == "req-123"
        assert json.loads(created.details_json) == {"title": "Alpha"}

        filtered = await audit.list_scoped("tenant-a", action="project.deleted")
        assert [e.action for e in filtered] == ["project.deleted"]

    async def test_write_failure_is_swallowed(self, async_engine) -> None:
        audit = AuditLogger(async_engine)
        async with async_engine.begin() as conn:
            await conn.execute(text("DROP TABLE audit_logs"))
        # Must not raise
        await audit.log(tenant_id="tenant-a", actor=None, action="project.created")
