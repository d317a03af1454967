import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.responses import FileResponse

from channel_landing.api.api import api_router
from channel_landing.core import database
from channel_landing.core.config import settings
from channel_landing.core.errors import NotFound
from channel_landing.core.exception_handlers import register_exception_handlers
from channel_landing.core.logging_config import setup_logging
from channel_landing.middleware.security_middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from channel_landing.services.channel_cache import ChannelCache
from channel_landing.services.conversion_service import ConversionService
from channel_landing.services.session_service import session_service
from channel_landing.services.user_service import user_service

logger = logging.getLogger(__name__)


async def _bootstrap_admin() -> None:
    if not (settings.FIRST_ADMIN_USERNAME and settings.FIRST_ADMIN_PASSWORD):
        return
    async with database.SessionLocal() as db:
        user = await user_service.ensure_admin(db, settings.FIRST_ADMIN_USERNAME, settings.FIRST_ADMIN_PASSWORD)
        if user:
            logger.info(f"Bootstrap admin account ready: {user.username}")


def create_app(conversion_transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    """
    Build the application.

    ``conversion_transport`` replaces the network transport of the
    Conversions API client (tests pass an ``httpx.MockTransport``).
    """
    setup_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        database.ensure_sqlite_dir(settings.DATABASE_URL)
        os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
        await database.init_models()
        await _bootstrap_admin()
        async with database.SessionLocal() as db:
            await session_service.purge_expired(db)

        app.state.channel_cache = ChannelCache(settings.CHANNEL_CACHE_TTL_SECONDS)
        app.state.conversion_service = ConversionService(transport=conversion_transport)
        logger.info(f"{settings.PROJECT_NAME} {settings.VERSION} started")

        yield

        # Shutdown
        await app.state.conversion_service.close()
        app.state.channel_cache.clear()
        await database.dispose_engine()
        logger.info(f"{settings.PROJECT_NAME} stopped")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        openapi_url=f"{settings.API_STR}/openapi.json",
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware, prefix=settings.API_STR)
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # --- Routes ---

    app.include_router(api_router, prefix=settings.API_STR)

    @app.get("/health", include_in_schema=False)
    async def health():
        return {"status": "ok"}

    # Uploaded logos
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    app.mount(settings.UPLOAD_URL_PREFIX, StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

    # Built client (SPA), must come last
    static_dir = "static" if os.path.exists("static") else "dist"
    if os.path.exists(static_dir):
        assets_dir = os.path.join(static_dir, "assets")
        if os.path.isdir(assets_dir):
            app.mount("/assets", StaticFiles(directory=assets_dir), name="static_assets")

        @app.get("/{full_path:path}", include_in_schema=False)
        async def serve_spa(full_path: str):
            if full_path.startswith(settings.API_STR.strip("/") + "/"):
                raise NotFound("Not found")
            root = os.path.realpath(static_dir)
            candidate = os.path.realpath(os.path.join(root, full_path))
            if full_path and candidate.startswith(root + os.sep) and os.path.isfile(candidate):
                return FileResponse(candidate)
            return FileResponse(os.path.join(static_dir, "index.html"))

    return app


app = create_app()

# only used for `python -m channel_landing.main`; the uvicorn CLI skips it
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
