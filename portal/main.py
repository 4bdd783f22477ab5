"""
MDVA Administrative Portal
FastAPI application factory and entry point.
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated, AsyncGenerator

import uvicorn
from fastapi import Depends, FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.admin.router import router as admin_router
from portal.audit.router import lookups_router as audit_lookups_router
from portal.audit.router import router as audit_router
from portal.auth.rate_limit import limiter
from portal.auth.router import router as auth_router
from portal.config import settings
from portal.core.errors import register_exception_handlers
from portal.database import close_db, get_async_session
from portal.integrations.identity import router as identity_router

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format=LOG_FORMAT,
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

# Mounted in this order; paths do not overlap
ROUTERS = (
    auth_router,
    admin_router,
    identity_router,
    audit_lookups_router,
    audit_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    logger.info(f"Starting {settings.app_name} v{settings.app_version} ({settings.environment})")
    if not settings.identity_api_token:
        logger.warning("IDENTITY_API_TOKEN is not set; DNI/RUC lookups will be rejected upstream")
    if not settings.smtp_host:
        logger.warning("SMTP_HOST is not set; account notifications are disabled")

    yield

    await close_db()
    logger.info(f"{settings.app_name} stopped")


async def health_check(
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> JSONResponse:
    """Liveness plus a round trip to the database."""
    try:
        await session.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.error(f"Health check could not reach the database: {e}")
        database = "unavailable"

    healthy = database == "ok"
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if healthy else "degraded",
            "database": database,
            "version": settings.app_version,
        },
    )


def create_application() -> FastAPI:
    """
    Application factory.

    Error handlers are registered before the routers so that every route
    answers failures as ``{"error": ...}``.
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Municipal staff portal: accounts, DNI/RUC lookups and security audit trail",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_api_route("/health", health_check, methods=["GET"], tags=["Health"])
    for router in ROUTERS:
        app.include_router(router)

    return app


app = create_application()


if __name__ == "__main__":
    uvicorn.run(
        "portal.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
