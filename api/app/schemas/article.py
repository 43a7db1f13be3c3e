"""Pydantic schemas for articles and versions."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import PaginationResponse


class ArticleCreate(BaseModel):
    """Request schema for a new article or a new version of one."""

    title: str = Field(min_length=1, max_length=500)
    content: str = Field(min_length=1)
    # max_length on list caps the number of tags
    tag_serials: list[str] = Field(default_factory=list, max_length=20)


class VersionStatusUpdate(BaseModel):
    status: str = Field(min_length=1, max_length=20)


class TagRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    serial: str
    name: str


class VersionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    serial: str
    article_serial: str
    version_number: int
    author_username: str
    title: str
    content: str
    status: str
    tag_relationship_score: float = 0.0
    tags: list[TagRef] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    published_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


class ArticleListResponse(BaseModel):
    versions: list[VersionResponse]
    pagination: PaginationResponse


class VersionListResponse(BaseModel):
    versions: list[VersionResponse]


class LatestDetailResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    published_version: Optional[VersionResponse] = None
    latest_version: Optional[VersionResponse] = None


class TransitionResponse(BaseModel):
    version_serial: str
    # Status the version holds after the request, not the one requested
    status: str
    # publish | unpublish | noop
    transition: str
