"""
HTTP routes for the Greenhall API.

Handlers that accept a body are async so they can read multipart forms;
service calls are blocking and run on the thread pool.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from greenhall.config import Settings
from greenhall.db import DocumentStore, utcnow
from greenhall.dependencies import (
    get_document_store,
    get_news_service,
    get_portfolio_service,
    get_settings_for_request,
    get_team_service,
)
from greenhall.errors import UploadRejectedError, ValidationError
from greenhall.schemas import (
    HealthResponse,
    MessageResponse,
    NewsListResponse,
    NewsResponse,
    NewsSavedResponse,
    PortfolioListResponse,
    PortfolioResponse,
    PortfolioSavedResponse,
    TeamMemberListResponse,
    TeamMemberResponse,
    TeamMemberSavedResponse,
)
from greenhall.services import NewsService, PortfolioService, TeamMemberService
from greenhall.storage import ImageUpload

logger = logging.getLogger(__name__)

router = APIRouter()


async def read_payload(
    request: Request, file_field: str, max_bytes: int
) -> tuple[dict[str, str], Optional[ImageUpload]]:
    """
    Extract text fields and the optional image from a request body.

    Multipart, urlencoded and JSON bodies are accepted. Only the file part
    named ``file_field`` is kept; a part with an empty filename counts as
    no file, which is what browsers send for an untouched file input.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError("Request body is not valid JSON") from None
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")
        fields = {
            key: value if isinstance(value, str) else str(value)
            for key, value in body.items()
            if value is not None
        }
        return fields, None

    if not content_type.startswith(
        ("multipart/form-data", "application/x-www-form-urlencoded")
    ):
        return {}, None

    fields: dict[str, str] = {}
    image = None
    async with request.form() as form:
        for key, value in form.multi_items():
            if not isinstance(value, UploadFile):
                fields[key] = value
                continue
            if key != file_field or not value.filename or image is not None:
                continue
            if value.size is not None and value.size > max_bytes:
                raise UploadRejectedError(
                    "File too large", details=f"Maximum size is {max_bytes} bytes"
                )
            data = await value.read()
            image = ImageUpload(
                data=data,
                content_type=value.content_type or "",
                filename=value.filename,
            )
    return fields, image


@router.get("/", response_model=HealthResponse)
def health(
    store: DocumentStore = Depends(get_document_store),
    settings: Settings = Depends(get_settings_for_request),
):
    """Liveness check; reports the document store status but never fails on it."""
    return HealthResponse(
        message=settings.project_name,
        timestamp=utcnow(),
        database="connected" if store.is_connected() else "disconnected",
    )


# ========== Team members ==========


@router.post("/team/upload", response_model=TeamMemberSavedResponse, status_code=201)
async def create_team_member(
    request: Request,
    service: TeamMemberService = Depends(get_team_service),
    settings: Settings = Depends(get_settings_for_request),
):
    logger.info("Team member upload request")
    fields, image = await read_payload(request, "image", settings.max_upload_bytes)
    record = await run_in_threadpool(service.create, fields, image)
    return TeamMemberSavedResponse(
        message="Team member created successfully!", teamMember=record.as_dict()
    )


@router.get("/team", response_model=TeamMemberListResponse)
def list_team_members(service: TeamMemberService = Depends(get_team_service)):
    return TeamMemberListResponse(
        teamMembers=[record.as_dict() for record in service.list_all()]
    )


@router.get("/team/{record_id}", response_model=TeamMemberResponse)
def get_team_member(
    record_id: str, service: TeamMemberService = Depends(get_team_service)
):
    return TeamMemberResponse(teamMember=service.get(record_id).as_dict())


@router.put("/team/{record_id}", response_model=TeamMemberSavedResponse)
async def update_team_member(
    record_id: str,
    request: Request,
    service: TeamMemberService = Depends(get_team_service),
    settings: Settings = Depends(get_settings_for_request),
):
    fields, image = await read_payload(request, "image", settings.max_upload_bytes)
    record = await run_in_threadpool(service.update, record_id, fields, image)
    return TeamMemberSavedResponse(
        message="Team member updated successfully", teamMember=record.as_dict()
    )


@router.delete("/team/{record_id}", response_model=MessageResponse)
def delete_team_member(
    record_id: str, service: TeamMemberService = Depends(get_team_service)
):
    service.delete(record_id)
    return MessageResponse(message="Team member deleted successfully")


# ========== News ==========


@router.post("/news/upload", response_model=NewsSavedResponse, status_code=201)
async def create_news(
    request: Request,
    service: NewsService = Depends(get_news_service),
    settings: Settings = Depends(get_settings_for_request),
):
    logger.info("News upload request")
    fields, image = await read_payload(request, "image", settings.max_upload_bytes)
    record = await run_in_threadpool(service.create, fields, image)
    return NewsSavedResponse(message="News created successfully!", news=record.as_dict())


@router.get("/news", response_model=NewsListResponse)
def list_news(service: NewsService = Depends(get_news_service)):
    return NewsListResponse(news=[record.as_dict() for record in service.list_all()])


@router.get("/news/{record_id}", response_model=NewsResponse)
def get_news(record_id: str, service: NewsService = Depends(get_news_service)):
    return NewsResponse(news=service.get(record_id).as_dict())


@router.put("/news/{record_id}", response_model=NewsSavedResponse)
async def update_news(
    record_id: str,
    request: Request,
    service: NewsService = Depends(get_news_service),
    settings: Settings = Depends(get_settings_for_request),
):
    fields, image = await read_payload(request, "image", settings.max_upload_bytes)
    record = await run_in_threadpool(service.update, record_id, fields, image)
    return NewsSavedResponse(message="News updated successfully", news=record.as_dict())


@router.delete("/news/{record_id}", response_model=MessageResponse)
def delete_news(record_id: str, service: NewsService = Depends(get_news_service)):
    service.delete(record_id)
    return MessageResponse(message="News deleted successfully")


# ========== Portfolio ==========


@router.post("/portfolio", response_model=PortfolioSavedResponse, status_code=201)
async def create_portfolio_company(
    request: Request,
    service: PortfolioService = Depends(get_portfolio_service),
    settings: Settings = Depends(get_settings_for_request),
):
    logger.info("Portfolio company create request")
    fields, image = await read_payload(request, "logo", settings.max_upload_bytes)
    record = await run_in_threadpool(service.create, fields, image)
    return PortfolioSavedResponse(
        message="Portfolio company created successfully!", portfolio=record.as_dict()
    )


@router.get("/portfolio", response_model=PortfolioListResponse)
def list_portfolio(service: PortfolioService = Depends(get_portfolio_service)):
    return PortfolioListResponse(
        portfolio=[record.as_dict() for record in service.list_all()]
    )


@router.get("/portfolio/{record_id}", response_model=PortfolioResponse)
def get_portfolio_company(
    record_id: str, service: PortfolioService = Depends(get_portfolio_service)
):
    return PortfolioResponse(portfolio=service.get(record_id).as_dict())


@router.put("/portfolio/{record_id}", response_model=PortfolioSavedResponse)
async def update_portfolio_company(
    record_id: str,
    request: Request,
    service: PortfolioService = Depends(get_portfolio_service),
    settings: Settings = Depends(get_settings_for_request),
):
    fields, image = await read_payload(request, "logo", settings.max_upload_bytes)
    record = await run_in_threadpool(service.update, record_id, fields, image)
    return PortfolioSavedResponse(
        message="Portfolio company updated successfully", portfolio=record.as_dict()
    )


@router.delete("/portfolio/{record_id}", response_model=MessageResponse)
def delete_portfolio_company(
    record_id: str, service: PortfolioService = Depends(get_portfolio_service)
):
    service.delete(record_id)
    return MessageResponse(message="Portfolio company deleted successfully")
