"""
Aptivo API Application

Usage:
    uvicorn aptivo.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from aptivo import __version__
from aptivo.config import settings
from aptivo.db.redis import close_redis_pool, get_redis
from aptivo.dependencies import AppServices, build_services
from aptivo.middleware.error_handling import setup_error_handling
from aptivo.routers import analytics, auth, health, navigation, practice

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(services: Optional[AppServices] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        services: Prebuilt services (tests). When omitted they are built
            at startup from settings.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = services is None
        sql_backed = owned and settings.remote_backend_enabled
        app_services = services
        if app_services is None:
            app_services = build_services(settings, await get_redis())
        if sql_backed:
            from aptivo.db.base import init_db

            await init_db()
        await app_services.start()
        app.state.services = app_services
        logger.info(f"{settings.APP_NAME} API started")

        yield

        await app_services.close()
        if owned:
            await close_redis_pool()
        if sql_backed:
            from aptivo.db.base import dispose_engine

            await dispose_engine()
        logger.info(f"{settings.APP_NAME} API stopped")

    app = FastAPI(title=f"{settings.APP_NAME} API", version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_error_handling(app, debug=settings.DEBUG)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(practice.router)
    app.include_router(analytics.router)
    app.include_router(navigation.router)

    return app


setup_logging(settings.DEBUG)
app = create_app()
