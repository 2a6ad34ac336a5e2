"""Clerk session token validation, JWKS key management and profile lookup."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

import httpx
import jwt
import structlog

from saasify.config.settings import get_settings

logger = structlog.get_logger(__name__)

# JWKS cache TTL in seconds (1 hour)
_JWKS_CACHE_TTL = 3600


@dataclass
class _JWKSCache:
    """In-memory cache for Clerk JWKS keys."""

    keys: list[dict[str, Any]] = field(default_factory=list)
    fetched_at: float = 0.0

    @property
    def is_stale(self) -> bool:
        return time.monotonic() - self.fetched_at > _JWKS_CACHE_TTL


_cache = _JWKSCache()


async def _fetch_jwks(jwks_url: str) -> list[dict[str, Any]]:
    """Fetch JWKS from Clerk and update cache."""
    global _cache  # noqa: PLW0603
    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            resp = await client.get(jwks_url)
            resp.raise_for_status()
            keys: list[dict[str, Any]] = resp.json().get("keys", [])
            _cache = _JWKSCache(keys=keys, fetched_at=time.monotonic())
            logger.debug("jwks_fetched", key_count=len(keys))
            return keys
    except (httpx.HTTPError, KeyError, ValueError) as exc:
        logger.warning("jwks_fetch_failed", error=str(exc))
        if _cache.keys:
            logger.info("jwks_using_stale_cache")
            return _cache.keys
        raise


async def _get_signing_keys() -> list[dict[str, Any]]:
    """Get JWKS keys, using cache when fresh."""
    jwks_url = get_settings().clerk_jwks_url
    if not jwks_url:
        msg = "CLERK_JWKS_URL is not configured"
        raise ValueError(msg)

    if not _cache.is_stale and _cache.keys:
        return _cache.keys

    return await _fetch_jwks(jwks_url)


@dataclass(frozen=True, slots=True)
class ClerkClaims:
    """Parsed and validated claims from a Clerk session token.

    Profile claims are only present when the Clerk session token template
    includes them; otherwise they are empty and the profile is fetched.
    """

    sub: str  # Clerk user ID
    session_id: str | None
    email: str
    first_name: str
    last_name: str
    image_url: str


def _claims_from_payload(payload: dict[str, Any]) -> ClerkClaims:
    return ClerkClaims(
        sub=payload["sub"],
        session_id=payload.get("sid"),
        email=str(payload.get("email") or ""),
        first_name=str(payload.get("first_name") or ""),
        last_name=str(payload.get("last_name") or ""),
        image_url=str(payload.get("image_url") or ""),
    )


async def verify_clerk_token(token: str) -> ClerkClaims:
    """Verify a Clerk session JWT and return parsed claims.

    Raises jwt.PyJWTError on invalid/expired tokens.
    """
    settings = get_settings()
    keys = await _get_signing_keys()
    signing_keys = jwt.PyJWKSet.from_dict({"keys": keys})

    decode_options: dict[str, Any] = {
        "algorithms": ["RS256"],
        "options": {"verify_aud": False, "require": ["sub", "exp"]},
    }
    if settings.clerk_issuer:
        decode_options["issuer"] = settings.clerk_issuer

    kid = jwt.get_unverified_header(token).get("kid")
    candidates = [k for k in signing_keys.keys if kid and k.key_id == kid] or signing_keys.keys

    # Try each key until one works
    last_error: Exception | None = None
    for jwk in candidates:
        try:
            payload: dict[str, Any] = jwt.decode(token, jwk.key, **decode_options)
            return _claims_from_payload(payload)
        except jwt.PyJWTError as exc:
            last_error = exc
            continue

    if last_error:
        raise last_error
    msg = "No valid signing key found"
    raise jwt.InvalidTokenError(msg)


def primary_email_address(data: dict[str, Any]) -> str:
    """Primary email of a Clerk user object, falling back to the first address."""
    addresses: list[dict[str, Any]] = data.get("email_addresses") or []
    primary_id = data.get("primary_email_address_id")
    for address in addresses:
        if address.get("id") == primary_id:
            return str(address.get("email_address") or "")
    return str(addresses[0].get("email_address") or "") if addresses else ""


async def fetch_clerk_user(user_id: str) -> dict[str, str] | None:
    """Fetch the profile of a Clerk user from the Backend API.

    Returns None when no secret key is configured or the user does not exist.
    """
    settings = get_settings()
    if not settings.clerk_secret_key:
        return None

    url = f"{settings.clerk_api_url.rstrip('/')}/users/{user_id}"
    async with httpx.AsyncClient(timeout=10.0) as client:
        resp = await client.get(
            url, headers={"Authorization": f"Bearer {settings.clerk_secret_key}"}
        )
    if resp.status_code == 404:
        logger.warning("clerk_user_not_found", clerk_user_id=user_id)
        return None
    resp.raise_for_status()

    data: dict[str, Any] = resp.json()
    return {
        "email": primary_email_address(data),
        "first_name": str(data.get("first_name") or ""),
        "last_name": str(data.get("last_name") or ""),
        "image_url": str(data.get("image_url") or ""),
    }
