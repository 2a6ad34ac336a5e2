"""Saasify entrypoints: the web server and operator commands."""

from __future__ import annotations

import argparse
import asyncio
import sys

import structlog
import uvicorn

from saasify.config.logging import setup_logging
from saasify.config.settings import get_settings
from saasify.storage.database import dispose_engine, get_engine, init_db
from saasify.storage.repositories.users import UserRepository
from saasify.types import PlatformRole

logger = structlog.get_logger(__name__)


def cli() -> None:
    """Run the web server."""
    settings = get_settings()
    uvicorn.run(
        "saasify.web.app:create_app",
        factory=True,
        reload=settings.environment == "development",
    )


async def _set_platform_role(external_id: str, role: PlatformRole) -> bool:
    try:
        if get_settings().environment != "production":
            # Production schemas are managed by Alembic migrations
            await init_db()
        user = await UserRepository(get_engine()).set_platform_role(external_id, role)
    finally:
        await dispose_engine()
    return user is not None


def admin() -> None:
    """Operator commands. Platform admins can only be granted here."""
    parser = argparse.ArgumentParser(prog="saasify-admin")
    sub = parser.add_subparsers(dest="command", required=True)
    grant = sub.add_parser("grant-platform-admin", help="Make a user a platform admin")
    grant.add_argument("external_id", help="Identity provider user id")
    revoke = sub.add_parser("revoke-platform-admin", help="Demote a platform admin")
    revoke.add_argument("external_id", help="Identity provider user id")
    args = parser.parse_args()

    setup_logging(log_level="INFO", json_output=True)
    role = (
        PlatformRole.PLATFORM_ADMIN if args.command == "grant-platform-admin" else PlatformRole.USER
    )
    if not asyncio.run(_set_platform_role(args.external_id, role)):
        logger.error("platform_role_user_not_found", external_id=args.external_id)
        sys.exit(1)


if __name__ == "__main__":
    cli()
