from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from campus_portal.api.admin_routes import router as admin_router
from campus_portal.api.routes import router as api_router
from campus_portal.config import get_settings
from campus_portal.db.init import ensure_data_directories, init_database
from campus_portal.errors import PortalError

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    ensure_data_directories()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        init_database()
        yield

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_api_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        if request.url.path.startswith("/api"):
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(
                "%s %s %s in %.0fms",
                request.method,
                request.url.path,
                response.status_code,
                elapsed_ms,
            )
        return response

    @app.exception_handler(PortalError)
    async def handle_portal_error(request: Request, exc: PortalError) -> JSONResponse:
        return JSONResponse(exc.to_payload(), status_code=exc.status_code)

    @app.exception_handler(SQLAlchemyError)
    async def handle_storage_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception("Storage failure on %s %s", request.method, request.url.path)
        return JSONResponse({"error": "Storage failure", "code": "storage_error"}, status_code=500)

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(api_router)
    app.include_router(admin_router)

    if settings.resume_public_base_url.startswith("/"):
        app.mount(
            settings.resume_public_base_url.rstrip("/"),
            StaticFiles(directory=str(settings.resume_dir)),
            name="resumes",
        )
    return app
