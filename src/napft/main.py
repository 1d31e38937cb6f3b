"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from napft.collections.router import router as collections_router
from napft.config import get_settings
from napft.contact.router import router as contact_router
from napft.database import close_db, init_db
from napft.health.router import router as health_router
from napft.middleware import setup_middleware
from napft.nfts.router import router as nfts_router
from napft.redis_client import close_redis, init_redis
from napft.transactions.router import router as transactions_router
from napft.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    logger.info("app_started", environment=settings.environment, version=settings.app_version)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="NapFT Marketplace API",
        description="Backend API for the NapFT NFT marketplace",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(nfts_router)
    app.include_router(transactions_router)
    app.include_router(users_router)
    app.include_router(collections_router)
    app.include_router(contact_router)

    return app


app = create_app()
