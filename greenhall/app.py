"""
FastAPI application entry point for the Greenhall backend.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from greenhall.config import Settings, get_settings
from greenhall.db import DocumentStore
from greenhall.dependencies import build_asset_store, build_document_store
from greenhall.errors import ApiError
from greenhall.routes import router
from greenhall.storage import AssetStore

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Render every failure as ``{"error": ..., "details"?: ...}``."""

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            logger.error(
                "%s %s failed: %s (%s)",
                request.method,
                request.url.path,
                exc.message,
                exc.details,
            )
        return JSONResponse(status_code=exc.status_code, content=exc.as_dict())

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        # A known path with an unmapped verb is just another unmatched route.
        if exc.status_code in (404, 405):
            return JSONResponse(status_code=404, content={"error": "Route not found"})
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "details": str(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500, content={"error": str(exc) or "Something went wrong!"}
        )


def create_app(
    settings: Optional[Settings] = None,
    *,
    document_store: Optional[DocumentStore] = None,
    asset_store: Optional[AssetStore] = None,
) -> FastAPI:
    settings = settings or get_settings()
    store = document_store if document_store is not None else build_document_store(settings)
    assets = asset_store if asset_store is not None else build_asset_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("%s starting", settings.project_name)
        logger.info("Team members: POST/GET/PUT/DELETE /team")
        logger.info("News: POST/GET/PUT/DELETE /news (image optional)")
        logger.info("Portfolio: POST/GET/PUT/DELETE /portfolio")
        await run_in_threadpool(store.connect)
        yield
        logger.info("Shutting down")
        await run_in_threadpool(store.close)

    app = FastAPI(title=settings.project_name, version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.document_store = store
    app.state.asset_store = assets

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        allow_credentials=True,
    )
    register_error_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
