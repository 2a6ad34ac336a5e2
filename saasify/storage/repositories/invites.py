"""Tenant invite repository: issue, list, revoke and accept one-time invites."""

from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta

import structlog
from sqlalchemy import update
from sqlmodel import col, select

from saasify.exceptions import ConflictError, ForbiddenError, NotFoundError
from saasify.models.database import Invite, Membership, Tenant, _new_uuid, _utc_now
from saasify.storage.database import dialect_insert
from saasify.storage.repositories.base import DatabaseRepository, clamp_page
from saasify.types import InviteStatus, MembershipStatus, TenantRole, TenantStatus

logger = structlog.get_logger(__name__)

INVITE_TTL = timedelta(days=7)


def hash_invite_token(raw_token: str) -> str:
    """Deterministic SHA-256 so the token can be looked up by its hash."""
    return hashlib.sha256(raw_token.encode()).hexdigest()


def generate_invite_token() -> str:
    return secrets.token_urlsafe(32)


class InviteRepository(DatabaseRepository):
    """PostgreSQL-backed invite store. Only token hashes are persisted."""

    async def create(
        self,
        *,
        tenant_id: str,
        email: str,
        role: TenantRole,
        invited_by_user_id: str,
    ) -> tuple[Invite, str]:
        """Create a pending invite and return it with the raw one-time token."""
        raw_token = generate_invite_token()
        async with self._session() as session:
            invite = Invite(
                tenant_id=tenant_id,
                email=email.strip().lower(),
                role=str(role),
                token_hash=hash_invite_token(raw_token),
                invited_by_user_id=invited_by_user_id,
                expires_at=_utc_now() + INVITE_TTL,
            )
            session.add(invite)
            await session.commit()
        logger.info("invite_created", invite_id=invite.id, tenant_id=tenant_id, role=str(role))
        return invite, raw_token

    async def list_scoped(
        self,
        tenant_id: str,
        *,
        status: InviteStatus | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Invite]:
        safe_limit, safe_offset = clamp_page(limit, offset, default_limit=20)
        stmt = select(Invite).where(col(Invite.tenant_id) == tenant_id)
        if status is not None:
            stmt = stmt.where(col(Invite.status) == str(status))
        stmt = stmt.order_by(col(Invite.created_at).desc()).offset(safe_offset).limit(safe_limit)
        async with self._session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def revoke_scoped(self, tenant_id: str, invite_id: str) -> Invite | None:
        """Revoke a pending invite; None if it is absent, foreign or no longer pending."""
        stmt = (
            update(Invite)
            .where(
                col(Invite.id) == invite_id,
                col(Invite.tenant_id) == tenant_id,
                col(Invite.status) == str(InviteStatus.PENDING),
            )
            .values(status=str(InviteStatus.REVOKED), updated_at=_utc_now())
            .returning(Invite)
        )
        async with self._session() as session:
            result = await session.execute(stmt, execution_options={"populate_existing": True})
            invite = result.scalars().first()
            await session.commit()
        if invite:
            logger.info("invite_revoked", invite_id=invite_id, tenant_id=tenant_id)
        return invite

    async def accept(
        self, *, raw_token: str, user_id: str, email: str
    ) -> tuple[Invite, Membership]:
        """Claim the invite and activate the caller's membership in one transaction.

        All checks run before the first write. A removed or invited membership
        is reactivated with the invite's role; an already active one is a conflict
        and rolls the claim back.
        """
        now = _utc_now()
        async with self._session() as session:
            stmt = select(Invite).where(col(Invite.token_hash) == hash_invite_token(raw_token))
            invite = (await session.execute(stmt)).scalars().first()
            if invite is None or invite.status != InviteStatus.PENDING:
                raise NotFoundError("Invite")
            if invite.expires_at <= now:
                msg = "Invite has expired"
                raise ConflictError(msg)
            if invite.email != email.strip().lower():
                raise ForbiddenError("FORBIDDEN_INVITE_EMAIL_MISMATCH")

            tenant = await session.get(Tenant, invite.tenant_id)
            if tenant is None or tenant.status != TenantStatus.ACTIVE:
                raise ForbiddenError("FORBIDDEN_INVITE_TENANT_UNAVAILABLE")

            claim = (
                update(Invite)
                .where(col(Invite.id) == invite.id, col(Invite.status) == str(InviteStatus.PENDING))
                .values(
                    status=str(InviteStatus.ACCEPTED),
                    accepted_by_user_id=user_id,
                    updated_at=now,
                )
                .returning(Invite)
            )
            claimed = (
                (await session.execute(claim, execution_options={"populate_existing": True}))
                .scalars()
                .first()
            )
            if claimed is None:
                await session.rollback()
                raise NotFoundError("Invite")

            activated = {
                "role": invite.role,
                "status": str(MembershipStatus.ACTIVE),
                "updated_at": now,
            }
            upsert = (
                dialect_insert(self._engine, Membership)
                .values(
                    id=_new_uuid(),
                    tenant_id=invite.tenant_id,
                    user_id=user_id,
                    created_at=now,
                    **activated,
                )
                .on_conflict_do_update(
                    index_elements=["tenant_id", "user_id"],
                    set_=activated,
                    where=col(Membership.status) != str(MembershipStatus.ACTIVE),
                )
                .returning(Membership)
            )
            membership = (
                (await session.execute(upsert, execution_options={"populate_existing": True}))
                .scalars()
                .first()
            )
            if membership is None:
                await session.rollback()
                msg = "User is already a member of this tenant"
                raise ConflictError(msg)

            await session.commit()

        logger.info(
            "invite_accepted",
            invite_id=claimed.id,
            tenant_id=claimed.tenant_id,
            user_id=user_id,
        )
        return claimed, membership
