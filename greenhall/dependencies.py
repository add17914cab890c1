"""
Dependency wiring for the FastAPI app.

Stores are built once per application by ``create_app`` and kept on
``app.state``; request handlers reach them only through the getters below.
"""

from __future__ import annotations

from fastapi import Depends, Request

from greenhall.config import Settings
from greenhall.db import DocumentStore, InMemoryDocumentStore, SqlDocumentStore
from greenhall.errors import StoreUnavailableError
from greenhall.services import NewsService, PortfolioService, TeamMemberService
from greenhall.storage import AssetStore, InMemoryAssetStore, S3AssetStore


def build_document_store(settings: Settings) -> DocumentStore:
    if settings.use_in_memory_backends or not settings.database_url:
        return InMemoryDocumentStore()
    return SqlDocumentStore(settings.database_url)


def build_asset_store(settings: Settings) -> AssetStore:
    formats = tuple(settings.allowed_image_formats)
    if settings.use_in_memory_backends or not settings.asset_bucket:
        return InMemoryAssetStore(
            folder=settings.asset_folder,
            allowed_formats=formats,
            max_bytes=settings.max_upload_bytes,
        )
    return S3AssetStore(
        bucket=settings.asset_bucket,
        region=settings.asset_region or "",
        endpoint=settings.asset_endpoint or "",
        access_key_id=settings.aws_access_key_id or "",
        secret_access_key=settings.aws_secret_access_key or "",
        public_base_url=settings.asset_public_base_url or "",
        folder=settings.asset_folder,
        allowed_formats=formats,
        max_bytes=settings.max_upload_bytes,
    )


def get_document_store(request: Request) -> DocumentStore:
    return request.app.state.document_store


def get_asset_store(request: Request) -> AssetStore:
    return request.app.state.asset_store


def get_settings_for_request(request: Request) -> Settings:
    return request.app.state.settings


def require_document_store(
    store: DocumentStore = Depends(get_document_store),
) -> DocumentStore:
    """Gate a route on a live document store connection (503 otherwise)."""
    if not store.is_connected():
        raise StoreUnavailableError()
    return store


def get_team_service(
    store: DocumentStore = Depends(require_document_store),
    assets: AssetStore = Depends(get_asset_store),
) -> TeamMemberService:
    return TeamMemberService(store, assets)


def get_news_service(
    store: DocumentStore = Depends(require_document_store),
    assets: AssetStore = Depends(get_asset_store),
) -> NewsService:
    return NewsService(store, assets)


def get_portfolio_service(
    store: DocumentStore = Depends(require_document_store),
    assets: AssetStore = Depends(get_asset_store),
) -> PortfolioService:
    return PortfolioService(store, assets)
