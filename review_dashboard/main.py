from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from review_dashboard.api.router import router as api_router
from review_dashboard.api.routes.public import router as public_router
from review_dashboard.core.config import Settings, get_settings
from review_dashboard.core.handlers import register_exception_handlers
from review_dashboard.core.logging import get_logger
from review_dashboard.core.middleware import ScopedCORSMiddleware, register_middlewares
from review_dashboard.core.registry import ServiceRegistry
from review_dashboard.models import Base

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[ServiceRegistry] = None
) -> FastAPI:
    """
    Application factory for the FastAPI app.

    - Builds (or accepts) the service registry and stores it on app.state.
    - Registers CORS, core middleware, and exception handlers.
    - Includes the API router under API_PREFIX.
    """
    settings = settings or (registry.settings if registry else get_settings())
    registry = registry or ServiceRegistry.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.CREATE_TABLES_ON_STARTUP:
            # For dev/demo only; production schemas are managed out of band
            await registry.database.create_tables(Base.metadata)
        logger.info("Application started", extra={'environment': settings.ENVIRONMENT})
        yield
        await registry.close()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description=settings.DESCRIPTION,
        debug=settings.DEBUG,
        version=settings.VERSION,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
        openapi_url=None if settings.is_production else "/openapi.json",
        lifespan=lifespan,
    )
    app.state.registry = registry

    origins = settings.security.CORS_ORIGINS
    # The public widget endpoints handle CORS themselves
    public_prefixes = [settings.API_PREFIX + public_router.prefix]
    if origins and origins != ["*"]:
        app.add_middleware(
            ScopedCORSMiddleware,
            exempt_prefixes=public_prefixes,
            allow_origins=origins,
            allow_credentials=settings.security.CORS_ALLOW_CREDENTIALS,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        # Permissive for development; tighten in production
        app.add_middleware(
            ScopedCORSMiddleware,
            exempt_prefixes=public_prefixes,
            allow_origins=["*"],
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_middlewares(app)
    register_exception_handlers(app)

    app.include_router(api_router, prefix=settings.API_PREFIX)

    return app


app = create_app()
