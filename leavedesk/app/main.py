"""FastAPI application and startup wiring.

Clients (engine, store, session provider, access policy, rate limiter) are
built once in ``create_app`` and shared by reference through ``app.state``.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncEngine

from leavedesk.app.api.auth import BearerSessionProvider, SessionProvider
from leavedesk.app.api.routes.health import router as health_router
from leavedesk.app.api.routes.metrics import router as metrics_router
from leavedesk.app.api.routes.resources import router as resources_router
from leavedesk.app.authz import AccessPolicy, RoleAccessPolicy
from leavedesk.app.config import Settings, get_settings
from leavedesk.app.db.engine import create_async_engine_from_settings, create_session_factory
from leavedesk.app.db.inmemory import InMemoryRecordStore
from leavedesk.app.db.repositories import RateLimiter, RecordStore
from leavedesk.app.db.sql_repositories import SqlRecordStore
from leavedesk.app.handlers.resource import ResourceRequestHandler
from leavedesk.app.ratelimit import create_rate_limiter
from leavedesk.app.resources import ResourceRegistry, default_registry
from leavedesk.app.utils.logging import configure_logging


def create_app(
    settings: Settings | None = None,
    *,
    registry: ResourceRegistry | None = None,
    store: RecordStore | None = None,
    engine: AsyncEngine | None = None,
    sessions: SessionProvider | None = None,
    policy: AccessPolicy | None = None,
    limiter: RateLimiter | None = None,
) -> FastAPI:
    """Build the application with its collaborators.

    Any collaborator not passed in is constructed from ``settings``. The
    SQL store is used unless ``store_backend`` is ``memory``.

    Args:
        settings: Application settings (defaults to environment settings)
        registry: Resource descriptors served under /api
        store: Record store; overrides ``store_backend``
        engine: Async engine for the SQL store and health checks
        sessions: Session provider resolving the acting identity
        policy: Access policy (defaults to role grants over ``store``)
        limiter: Rate limiter (defaults from ``redis_url``)

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    registry = registry or default_registry()

    if store is None:
        if settings.store_backend == "memory":
            store = InMemoryRecordStore(registry)
        else:
            engine = engine or create_async_engine_from_settings(settings)
            store = SqlRecordStore(create_session_factory(engine), registry)

    handler = ResourceRequestHandler(
        registry=registry,
        sessions=sessions or BearerSessionProvider(settings.default_roles),
        policy=policy or RoleAccessPolicy(store),
        store=store,
        limiter=limiter or create_rate_limiter(settings),
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        if app.state.engine is not None:
            await app.state.engine.dispose()

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.store = store
    app.state.resource_handler = handler

    # Register routes
    app.include_router(health_router, tags=["health"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(resources_router, tags=["resources"])

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {"message": settings.app_name, "version": settings.app_version}

    return app
