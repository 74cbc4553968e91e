"""
Application factory

Run with:
    uvicorn podadmin.main:create_app --factory
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorDatabase

from podadmin.analytics.router import router as analytics_router
from podadmin.auth.identity import IdentityProvider, build_identity_provider
from podadmin.config import Settings, load_settings
from podadmin.content.admin_router import router as content_admin_router
from podadmin.content.content_store import ContentFileStore
from podadmin.content.router import router as content_router
from podadmin.database import DatabaseManager, create_indexes
from podadmin.progress.router import router as progress_router
from podadmin.system.health_router import router as health_router
from podadmin.users.router import router as users_router

logger = logging.getLogger(__name__)


def configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[AsyncIOMotorDatabase] = None,
    identity_provider: Optional[IdentityProvider] = None,
    content_store: Optional[ContentFileStore] = None,
) -> FastAPI:
    """
    Build the API

    Anything not injected is built from settings: the Mongo client, the
    identity provider and the content store.
    """
    settings = settings or load_settings()
    configure_logging(settings.LOG_LEVEL)

    db_manager = DatabaseManager(settings)
    if database is None:
        db_manager.connect()
        database = db_manager.get_database()

    owns_provider = identity_provider is None
    if owns_provider:
        identity_provider = build_identity_provider(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.CREATE_INDEXES:
            await create_indexes(app.state.db)
        logger.info("API started (auth provider: %s)", settings.AUTH_PROVIDER)
        yield
        if owns_provider:
            await app.state.identity_provider.aclose()
        db_manager.disconnect()

    app = FastAPI(title="Pod Admin API", lifespan=lifespan)

    app.state.settings = settings
    app.state.db = database
    app.state.identity_provider = identity_provider
    app.state.content_store = content_store or ContentFileStore(settings.CONTENT_ROOT)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    # ==================== ROUTER REGISTRATION ====================
    app.include_router(health_router)
    app.include_router(progress_router, prefix="/api")
    app.include_router(content_router, prefix="/api")
    app.include_router(content_admin_router, prefix="/api")
    app.include_router(users_router, prefix="/api")
    app.include_router(analytics_router, prefix="/api")

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
