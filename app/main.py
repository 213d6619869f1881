"""
FastAPI application entry point.

Configures logging, middleware, routes, and exception handlers.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.database import configure_from_settings, database
from app.core.dependencies import enforce_rate_limit

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    configure_from_settings()
    logger.info("Starting TalentGate API in %s mode", settings.ENVIRONMENT)
    yield
    await database.dispose()
    logger.info("Shutting down TalentGate API")


app = FastAPI(
    title="TalentGate API",
    description="Multi-tenant recruiting platform: membership and authorization core",
    version="1.0.0",
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
    openapi_url="/api/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    if settings.DEBUG:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": {
                    "code": "INTERNAL_SERVER_ERROR",
                    "message": str(exc),
                    "type": type(exc).__name__,
                }
            },
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": {
                "code": "INTERNAL_SERVER_ERROR",
                "message": "An unexpected error occurred",
            }
        },
    )


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    return {
        "status": "ok",
        "environment": settings.ENVIRONMENT,
        "version": "1.0.0",
    }


from app.routers import invite_links, join_requests, organizations, pipeline  # noqa: E402

rate_limited = [Depends(enforce_rate_limit)]

app.include_router(
    invite_links.router, prefix="/api/v1/invite-links", tags=["Invite Links"],
    dependencies=rate_limited,
)
app.include_router(
    join_requests.router, prefix="/api/v1/join-requests", tags=["Join Requests"],
    dependencies=rate_limited,
)
app.include_router(
    organizations.router, prefix="/api/v1", tags=["Organizations"],
    dependencies=rate_limited,
)
app.include_router(
    pipeline.router, prefix="/api/v1", tags=["Pipeline"],
    dependencies=rate_limited,
)
