"""Boundary layer: maps typed failures to API envelopes or page redirects.

API paths (``/api/...``) always get ``{ok: false, error: {code, message}}``.
Every authorization reason is flattened to ``FORBIDDEN`` on the wire; the
distinct internal reason is only logged. Page paths redirect instead: to
sign-in when unauthenticated, or to the tenant-selection flow when the
tenant context could not be resolved.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response

from saasify.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    SaasifyError,
    TenantContextError,
    TenantMismatchError,
    UnauthenticatedError,
    ValidationFailedError,
)

logger = structlog.get_logger(__name__)

_STATUS_BY_CODE = {
    UnauthenticatedError.code: 401,
    ForbiddenError.code: 403,
    ValidationFailedError.code: 400,
    NotFoundError.code: 404,
    ConflictError.code: 409,
    SaasifyError.code: 500,
}


def is_api_request(request: Request) -> bool:
    return request.url.path.startswith("/api/")


def error_response(
    code: str, message: str, field_errors: dict[str, str] | None = None
) -> JSONResponse:
    error: dict[str, Any] = {"code": code, "message": message}
    if field_errors:
        error["fieldErrors"] = field_errors
    return JSONResponse(
        status_code=_STATUS_BY_CODE.get(code, 500),
        content={"ok": False, "error": error},
    )


def _sign_in_redirect(request: Request) -> RedirectResponse:
    sign_in_path = request.app.state.services.settings.sign_in_path
    target = request.url.path
    if request.url.query:
        target = f"{target}?{request.url.query}"
    next_url = quote(target, safe="/")
    return RedirectResponse(url=f"{sign_in_path}?next={next_url}", status_code=303)


async def _handle_saasify_error(request: Request, exc: SaasifyError) -> Response:
    path = request.url.path

    if isinstance(exc, UnauthenticatedError):
        logger.info("request_unauthenticated", path=path)
        if not is_api_request(request):
            return _sign_in_redirect(request)

    elif isinstance(exc, ForbiddenError):
        extra: dict[str, Any] = {}
        if isinstance(exc, TenantMismatchError):
            extra = {
                "path_tenant_id": exc.path_tenant_id,
                "scoped_tenant_id": exc.scoped_tenant_id,
            }
        logger.warning("access_denied", reason=exc.reason, path=path, **extra)
        if not is_api_request(request):
            if isinstance(exc, TenantContextError) and exc.redirect_to:
                return RedirectResponse(url=exc.redirect_to, status_code=303)
            return HTMLResponse(content=exc.public_message, status_code=403)

    elif exc.code == SaasifyError.code:
        logger.error("request_failed", path=path, error=str(exc), error_type=type(exc).__name__)

    field_errors = exc.field_errors if isinstance(exc, ValidationFailedError) else None
    return error_response(exc.code, exc.public_message, field_errors)


def _field_path(loc: tuple[Any, ...]) -> str:
    parts = [str(p) for p in loc]
    if parts and parts[0] in {"body", "query", "path", "header", "cookie"}:
        parts = parts[1:]
    return ".".join(parts) or "request"


async def _handle_request_validation(request: Request, exc: RequestValidationError) -> Response:
    field_errors: dict[str, str] = {}
    for error in exc.errors():
        field_errors.setdefault(_field_path(tuple(error.get("loc", ()))), str(error.get("msg", "")))
    logger.info("request_invalid", path=request.url.path, fields=sorted(field_errors))
    return error_response(ValidationFailedError.code, "Invalid input", field_errors)


async def _handle_unexpected(request: Request, exc: Exception) -> Response:
    logger.exception("unhandled_error", path=request.url.path, error_type=type(exc).__name__)
    return error_response(SaasifyError.code, SaasifyError.public_message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SaasifyError, _handle_saasify_error)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError, _handle_request_validation  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, _handle_unexpected)
