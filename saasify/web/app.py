"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from saasify.config.logging import setup_logging
from saasify.config.settings import Settings, get_settings
from saasify.storage.database import dispose_engine, get_engine, init_db
from saasify.web.auth.webhook import router as webhook_router
from saasify.web.dependencies import build_services
from saasify.web.errors import register_exception_handlers
from saasify.web.health import SERVICE_VERSION, check_health
from saasify.web.middleware import RequestIDMiddleware
from saasify.web.routes.audit import router as audit_router
from saasify.web.routes.invites import accept_router as invite_accept_router
from saasify.web.routes.invites import router as invites_router
from saasify.web.routes.me import router as me_router
from saasify.web.routes.members import router as members_router
from saasify.web.routes.pages import router as pages_router
from saasify.web.routes.platform import router as platform_router
from saasify.web.routes.project_members import router as project_members_router
from saasify.web.routes.projects import router as projects_router
from saasify.web.routes.saved_views import router as saved_views_router
from saasify.web.routes.stats import router as stats_router

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from saasify.auth.identity import ProfileFetcher, TokenVerifier

logger = structlog.get_logger(__name__)


def create_app(
    engine: AsyncEngine | None = None,
    *,
    settings: Settings | None = None,
    token_verifier: TokenVerifier | None = None,
    profile_fetcher: ProfileFetcher | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``engine`` and ``token_verifier`` default to the process-wide engine and
    Clerk verification; tests pass their own.
    """
    settings = settings or get_settings()
    setup_logging(log_level=settings.log_level, json_output=settings.environment == "production")
    owns_engine = engine is None
    db_engine = engine or get_engine()

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if settings.environment != "production":
            # Production schemas are managed by Alembic migrations
            await init_db(db_engine)
        yield
        if owns_engine:
            await dispose_engine()

    app = FastAPI(
        title="Saasify",
        description="Multi-tenant workspace service",
        version=SERVICE_VERSION,
        lifespan=lifespan,
    )
    app.state.services = build_services(
        db_engine,
        settings,
        token_verifier=token_verifier,
        profile_fetcher=profile_fetcher,
    )

    register_exception_handlers(app)

    # Middleware (order matters: last added runs first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )
    app.add_middleware(RequestIDMiddleware)

    # Public routes
    app.include_router(webhook_router)

    @app.get("/api/health")
    async def health_check() -> dict[str, object]:
        return await check_health(db_engine, settings.environment)

    # Guarded routes; each route declares the guard it needs
    for router in (
        me_router,
        platform_router,
        projects_router,
        project_members_router,
        saved_views_router,
        members_router,
        invites_router,
        invite_accept_router,
        audit_router,
        stats_router,
        pages_router,
    ):
        app.include_router(router)

    logger.info("app_created", environment=settings.environment)
    return app
