"""User repository with an atomic upsert keyed by the external identity id."""

from __future__ import annotations

import structlog
from sqlalchemy import update
from sqlmodel import col, select

from saasify.models.database import User, _new_uuid, _utc_now
from saasify.storage.database import dialect_insert
from saasify.storage.repositories.base import DatabaseRepository
from saasify.types import PlatformRole

logger = structlog.get_logger(__name__)


class UserRepository(DatabaseRepository):
    """PostgreSQL-backed user store."""

    async def upsert_by_external_id(
        self,
        *,
        external_id: str,
        email: str,
        name: str = "",
        image_url: str = "",
        platform_role: PlatformRole | None = None,
    ) -> User:
        """Create or refresh the user for ``external_id`` in one statement.

        Uses INSERT ... ON CONFLICT (external_id) DO UPDATE ... RETURNING so two
        concurrent first sign-ins converge on a single row. The platform role is
        only written on insert unless ``platform_role`` is given explicitly.
        """
        now = _utc_now()
        refreshed: dict[str, object] = {
            "email": email,
            "name": name,
            "image_url": image_url,
            "last_signed_in_at": now,
            "updated_at": now,
        }
        if platform_role is not None:
            refreshed["platform_role"] = str(platform_role)

        inserted = {
            "platform_role": str(PlatformRole.USER),
            **refreshed,
            "id": _new_uuid(),
            "external_id": external_id,
            "created_at": now,
        }

        stmt = (
            dialect_insert(self._engine, User)
            .values(**inserted)
            .on_conflict_do_update(index_elements=["external_id"], set_=refreshed)
            .returning(User)
        )

        async with self._session() as session:
            result = await session.execute(stmt, execution_options={"populate_existing": True})
            user = result.scalars().one()
            await session.commit()

        logger.debug("user_upserted", user_id=user.id, external_id=external_id)
        return user

    async def get_by_external_id(self, external_id: str) -> User | None:
        async with self._session() as session:
            stmt = select(User).where(col(User.external_id) == external_id)
            result = await session.execute(stmt)
            return result.scalars().first()

    async def get_by_id(self, user_id: str) -> User | None:
        async with self._session() as session:
            return await session.get(User, user_id)

    async def get_many(self, user_ids: list[str]) -> dict[str, User]:
        """Batch-fetch users by id, keyed by id."""
        if not user_ids:
            return {}
        async with self._session() as session:
            stmt = select(User).where(col(User.id).in_(set(user_ids)))
            result = await session.execute(stmt)
            return {u.id: u for u in result.scalars().all()}

    async def set_platform_role(self, external_id: str, role: PlatformRole) -> User | None:
        """Grant or revoke platform administration (operator tooling only)."""
        stmt = (
            update(User)
            .where(col(User.external_id) == external_id)
            .values(platform_role=str(role), updated_at=_utc_now())
            .returning(User)
        )
        async with self._session() as session:
            result = await session.execute(stmt, execution_options={"populate_existing": True})
            user = result.scalars().first()
            await session.commit()
        if user:
            logger.info("platform_role_changed", user_id=user.id, role=str(role))
        return user
