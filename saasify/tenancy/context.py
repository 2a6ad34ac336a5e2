"""Tenant context: the per-request outcome of selecting and verifying a tenant."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from saasify.types import TenantContextStatus, TenantRole

if TYPE_CHECKING:
    from saasify.models.database import Tenant


@dataclass(frozen=True, slots=True)
class TenantContext:
    """Immutable result of one resolution attempt. Never cached across requests."""

    ok: bool
    status: TenantContextStatus
    tenant_id: str | None = None
    tenant: Tenant | None = None
    role: TenantRole | None = None
    redirect_to: str | None = None  # where the UI boundary should send the caller
    message: str | None = None  # safe diagnostic text

    @classmethod
    def failure(
        cls,
        status: TenantContextStatus,
        message: str,
        redirect_to: str,
        *,
        tenant_id: str | None = None,
        tenant: Tenant | None = None,
    ) -> TenantContext:
        return cls(
            ok=False,
            status=status,
            tenant_id=tenant_id,
            tenant=tenant,
            role=None,
            redirect_to=redirect_to,
            message=message,
        )
