"""
Pydantic schemas for the Greenhall API responses.

Field names are camelCase to match what the site frontend consumes; the
record id is exposed as ``_id``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class RecordModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    uploadDate: datetime
    createdAt: datetime
    updatedAt: datetime


class TeamMember(RecordModel):
    name: str
    imageUrl: str
    imagePublicId: str
    role: str = ""
    position: str = ""
    team: str = ""
    information: str = ""
    email: str = ""
    phone: str = ""


class News(RecordModel):
    title: str
    newsDate: datetime
    content: str
    imageUrl: Optional[str] = None
    imagePublicId: Optional[str] = None


class PortfolioCompany(RecordModel):
    companyName: str
    description: str
    industry: str
    initialInvestment: datetime
    headquarters: str
    acquisitions: int
    status: str
    fund: str
    logoUrl: Optional[str] = None
    logoPublicId: Optional[str] = None


class HealthResponse(BaseModel):
    message: str
    timestamp: datetime
    database: Literal["connected", "disconnected"]


class MessageResponse(BaseModel):
    message: str


class TeamMemberResponse(BaseModel):
    teamMember: TeamMember


class TeamMemberSavedResponse(MessageResponse):
    teamMember: TeamMember


class TeamMemberListResponse(BaseModel):
    teamMembers: list[TeamMember]


class NewsResponse(BaseModel):
    news: News


class NewsSavedResponse(MessageResponse):
    news: News


class NewsListResponse(BaseModel):
    news: list[News]


class PortfolioResponse(BaseModel):
    portfolio: PortfolioCompany


class PortfolioSavedResponse(MessageResponse):
    portfolio: PortfolioCompany


class PortfolioListResponse(BaseModel):
    portfolio: list[PortfolioCompany]
