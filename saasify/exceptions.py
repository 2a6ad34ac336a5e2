"""Exception hierarchy for Saasify.

Every failure that can leave the service carries a public ``code`` from the
API error contract. Authorization failures additionally carry a ``reason``
that is only ever logged, never returned to the caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from saasify.tenancy.context import TenantContext


class SaasifyError(Exception):
    """Base exception for all Saasify errors."""

    code = "INTERNAL_ERROR"
    public_message = "Something went wrong"


class UnauthenticatedError(SaasifyError):
    """Raised when no verified identity is attached to the request."""

    code = "UNAUTHENTICATED"
    public_message = "Sign in required"

    def __init__(self, reason: str = "UNAUTHENTICATED") -> None:
        super().__init__(reason)
        self.reason = reason


class ForbiddenError(SaasifyError):
    """Raised by guards when an authenticated caller may not proceed."""

    code = "FORBIDDEN"
    public_message = "Access denied"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class TenantContextError(ForbiddenError):
    """Tenant resolution failed; the caller may recover by picking another tenant."""

    def __init__(self, context: TenantContext) -> None:
        super().__init__(f"FORBIDDEN_TENANT_CONTEXT_{context.status.value}")
        self.context = context

    @property
    def redirect_to(self) -> str | None:
        return self.context.redirect_to


class TenantMismatchError(ForbiddenError):
    """The tenant named in the request path is not the selected tenant."""

    def __init__(self, path_tenant_id: str, scoped_tenant_id: str) -> None:
        super().__init__("TENANT_MISMATCH")
        self.path_tenant_id = path_tenant_id
        self.scoped_tenant_id = scoped_tenant_id


class ValidationFailedError(SaasifyError):
    """Raised for malformed identifiers or payloads, before any write."""

    code = "VALIDATION_ERROR"
    public_message = "Invalid input"

    def __init__(self, message: str = "Invalid input", field_errors: dict[str, str] | None = None):
        super().__init__(message)
        self.public_message = message
        self.field_errors = field_errors


class NotFoundError(SaasifyError):
    """Entity is absent or outside the caller's tenant scope."""

    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource") -> None:
        super().__init__(f"{resource} not found")
        self.public_message = f"{resource} not found"


class ConflictError(SaasifyError):
    """A uniqueness or state precondition was violated."""

    code = "CONFLICT"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.public_message = message


class StorageError(SaasifyError):
    """Raised when storage operations fail."""


class ConfigError(SaasifyError):
    """Raised when configuration is invalid."""
