"""Audit logger: insert-only audit trail of tenant mutations.

Uses its own DB session so an audit write never shares a transaction with
the change it records. Details JSON is sanitized (sensitive fields stripped,
10KB max).
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import structlog
from sqlmodel import col, select

from saasify.models.database import AuditLog
from saasify.storage.repositories.base import DatabaseRepository, clamp_page

if TYPE_CHECKING:
    from saasify.models.database import User

logger = structlog.get_logger(__name__)

_SENSITIVE_FIELDS = frozenset(
    {
        "password",
        "secret",
        "token",
        "raw_token",
        "token_hash",
        "api_key",
        "authorization",
        "cookie",
        "session",
    }
)

_MAX_DETAILS_BYTES = 10_240  # 10KB


def _sanitize_details(details: dict[str, Any]) -> str:
    """Strip sensitive fields and enforce the size limit."""
    sanitized = {k: v for k, v in details.items() if k.lower() not in _SENSITIVE_FIELDS}
    encoded = json.dumps(sanitized, default=str)
    if len(encoded) > _MAX_DETAILS_BYTES:
        encoded = encoded[:_MAX_DETAILS_BYTES]
    return encoded


class AuditLogger(DatabaseRepository):
    """Insert-only audit store plus the tenant-scoped read side."""

    async def log(
        self,
        *,
        tenant_id: str,
        actor: User | None,
        action: str,
        resource_type: str = "",
        resource_id: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        """Write an audit log entry. Failures are logged, never raised."""
        ctx = structlog.contextvars.get_contextvars()
        entry = AuditLog(
            tenant_id=tenant_id,
            user_id=actor.id if actor else "",
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details_json=_sanitize_details(details or {}),
            request_id=str(ctx.get("request_id", "")),
        )
        try:
            async with self._session() as session:
                session.add(entry)
                await session.commit()
        except Exception:
            # A failed audit write never fails the request
            logger.exception("audit_log_failed", action=action, tenant_id=tenant_id)

    async def list_scoped(
        self,
        tenant_id: str,
        *,
        action: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[AuditLog]:
        safe_limit, safe_offset = clamp_page(limit, offset, default_limit=20)
        stmt = select(AuditLog).where(col(AuditLog.tenant_id) == tenant_id)
        if action:
            stmt = stmt.where(col(AuditLog.action) == action)
        stmt = stmt.order_by(col(AuditLog.created_at).desc()).offset(safe_offset).limit(safe_limit)
        async with self._session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())
