"""Unit tests for engine helpers and one-time schema initialization."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest
from sqlalchemy import DateTime, inspect
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel import SQLModel

from saasify.exceptions import StorageError
from saasify.models.database import User
from saasify.storage import database
from saasify.web.health import check_health


@pytest.fixture()
def fresh_engine(tmp_path):
    return create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'init.db'}")


@pytest.mark.unit
class TestInitDb:
    async def test_concurrent_callers_share_one_attempt(
        self, fresh_engine, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        calls = 0
        real_create_all = database._create_all

        async def counting_create_all(engine) -> None:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            await real_create_all(engine)

        monkeypatch.setattr(database, "_create_all", counting_create_all)
        try:
            await asyncio.gather(*(database.init_db(fresh_engine) for _ in range(5)))
            await database.init_db(fresh_engine)
            assert calls == 1

            async with fresh_engine.connect() as conn:
                tables = await conn.run_sync(lambda c: inspect(c).get_table_names())
            assert {"users", "tenants", "memberships", "projects", "invites"} <= set(tables)
        finally:
            database._init_tasks.pop(fresh_engine, None)
            await fresh_engine.dispose()

    async def test_failed_attempt_is_retried(
        self, fresh_engine, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        attempts = 0

        async def flaky_create_all(engine) -> None:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                msg = "connection refused"
                raise OSError(msg)

        monkeypatch.setattr(database, "_create_all", flaky_create_all)
        try:
            with pytest.raises(OSError):
                await database.init_db(fresh_engine)
            await database.init_db(fresh_engine)
            assert attempts == 2
        finally:
            database._init_tasks.pop(fresh_engine, None)
            await fresh_engine.dispose()


@pytest.mark.unit
class TestDialectInsert:
    def test_sqlite(self, fresh_engine) -> None:
        stmt = database.dialect_insert(fresh_engine, User)
        assert hasattr(stmt, "on_conflict_do_update")

    def test_unsupported_backend(self) -> None:
        engine = SimpleNamespace(dialect=SimpleNamespace(name="mysql"))
        with pytest.raises(StorageError):
            database.dialect_insert(engine, User)  # type: ignore[arg-type]


@pytest.mark.unit
class TestHealth:
    async def test_missing_schema_is_degraded(self, fresh_engine) -> None:
        try:
            result = await check_health(fresh_engine, "test")
        finally:
            await fresh_engine.dispose()
        assert result["status"] == "degraded"
        assert result["database"] == "unavailable"

    async def test_healthy(self, async_engine) -> None:
        result = await check_health(async_engine, "test")
        assert result["status"] == "healthy"
        assert result["environment"] == "test"


@pytest.mark.unit
class TestTimestampColumns:
    def test_timestamps_are_plain_datetime_columns(self) -> None:
        stamped = [
            (table.name, column)
            for table in SQLModel.metadata.tables.values()
            for column in table.columns
            if column.name.endswith("_at")
        ]
        assert stamped
        for table_name, column in stamped:
            assert type(column.type) is DateTime, f"{table_name}.{column.name}"
            assert column.type.timezone is False

    async def test_naive_utc_values_round_trip(self, user_repo, tenant_repo) -> None:
        user = await user_repo.upsert_by_external_id(external_id="user_ts", email="ts@example.com")
        tenant, _ = await tenant_repo.provision(
            name="Clock", slug="clock", created_by_user_id=user.id
        )
        stored = await tenant_repo.get(tenant.id)
        assert stored is not None
        assert stored.created_at.tzinfo is None
        assert user.last_signed_in_at is not None
        assert user.last_signed_in_at.tzinfo is None
