"""Clerk webhook receiver for user sync."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import time
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request

from saasify.auth.clerk import primary_email_address
from saasify.auth.identity import ExternalIdentity, IdentityProvider
from saasify.exceptions import ConfigError, UnauthenticatedError, ValidationFailedError
from saasify.models.api import envelope
from saasify.web.dependencies import Services, get_services

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])

# Svix signature tolerance in seconds (5 minutes)
_SVIX_TOLERANCE = 300


def _verify_svix_signature(
    payload: bytes, headers: dict[str, str], secret: str, *, now: float | None = None
) -> bool:
    """Verify Clerk/Svix webhook signature.

    Clerk uses Svix for webhook delivery. The signature format is:
    svix-id, svix-timestamp, svix-signature headers.
    """
    msg_id = headers.get("svix-id", "")
    timestamp = headers.get("svix-timestamp", "")
    signatures = headers.get("svix-signature", "")

    if not msg_id or not timestamp or not signatures:
        return False

    try:
        ts = int(timestamp)
    except ValueError:
        return False
    current = time.time() if now is None else now
    if abs(current - ts) > _SVIX_TOLERANCE:
        logger.warning("webhook_timestamp_expired", delta=abs(current - ts))
        return False

    # Svix secret starts with "whsec_"; the rest is base64
    if secret.startswith("whsec_"):
        secret = secret[6:]
    try:
        secret_bytes = base64.b64decode(secret)
    except (binascii.Error, ValueError):
        logger.error("webhook_secret_malformed")
        return False

    to_sign = f"{msg_id}.{timestamp}.".encode() + payload
    expected = hmac.new(secret_bytes, to_sign, hashlib.sha256).digest()
    expected_b64 = base64.b64encode(expected).decode()

    # Space-separated list, each entry prefixed with its version ("v1,")
    for sig in signatures.split(" "):
        parts = sig.split(",", 1)
        if len(parts) == 2 and parts[0] == "v1" and hmac.compare_digest(parts[1], expected_b64):
            return True
    return False


@router.post("/clerk")
async def clerk_webhook(
    request: Request, services: Services = Depends(get_services)
) -> dict[str, Any]:
    """Handle Clerk webhook events for user sync.

    Failures are raised as typed errors so the response uses the same
    envelope as every other API route.
    """
    webhook_secret = services.settings.clerk_webhook_secret

    if not webhook_secret or len(webhook_secret.strip()) < 10:
        logger.error("webhook_secret_missing_or_short")
        msg = "Webhook secret not configured"
        raise ConfigError(msg)

    headers = {
        "svix-id": request.headers.get("svix-id", ""),
        "svix-timestamp": request.headers.get("svix-timestamp", ""),
        "svix-signature": request.headers.get("svix-signature", ""),
    }
    if not all(headers.values()):
        logger.warning("webhook_headers_missing")
        raise ValidationFailedError("Missing Svix headers")

    payload = await request.body()
    if not _verify_svix_signature(payload, headers, webhook_secret.strip()):
        logger.warning("webhook_signature_invalid")
        raise UnauthenticatedError("WEBHOOK_SIGNATURE_INVALID")

    try:
        event = json.loads(payload)
    except ValueError as exc:
        raise ValidationFailedError("Invalid JSON payload") from exc
    if not isinstance(event, dict):
        raise ValidationFailedError("Webhook payload must be a JSON object")

    event_type = str(event.get("type") or "")
    data = event.get("data") or {}
    if not isinstance(data, dict):
        raise ValidationFailedError("Webhook data must be a JSON object")
    logger.info("webhook_received", event_type=event_type, svix_id=headers["svix-id"])

    handler = _HANDLERS.get(event_type)
    if handler:
        await handler(services.identity, data)
    else:
        logger.debug("webhook_unhandled_event", event_type=event_type)

    return envelope({"received": True})


# --- Event handlers ---


async def _handle_user_upsert(identity: IdentityProvider, data: dict[str, Any]) -> None:
    """Create or refresh the local user from user.created / user.updated."""
    clerk_user_id = str(data.get("id") or "")
    email = primary_email_address(data).strip()
    if not clerk_user_id or not email:
        logger.warning("webhook_user_missing_fields", clerk_user_id=clerk_user_id)
        raise ValidationFailedError("User payload has no id or email")

    user = await identity.ensure_local_user(
        ExternalIdentity(
            external_id=clerk_user_id,
            email=email,
            first_name=str(data.get("first_name") or ""),
            last_name=str(data.get("last_name") or ""),
            image_url=str(data.get("image_url") or ""),
        )
    )
    logger.info("user_synced", clerk_user_id=clerk_user_id, user_id=user.id)


async def _handle_user_deleted(_identity: IdentityProvider, data: dict[str, Any]) -> None:
    """Users are kept for audit history; the deletion is only recorded."""
    logger.info("user_deleted_upstream", clerk_user_id=data.get("id", ""))


_HANDLERS: dict[str, Callable[[IdentityProvider, dict[str, Any]], Awaitable[None]]] = {
    "user.created": _handle_user_upsert,
    "user.updated": _handle_user_upsert,
    "user.deleted": _handle_user_deleted,
}
