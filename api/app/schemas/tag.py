from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import PaginationResponse


class TagCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)


class TagResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    serial: str
    name: str
    created_at: datetime


class TagDetail(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    serial: str
    name: str
    usage_count: int = 0
    trending_score: float = 0.0


class TagListResponse(BaseModel):
    tags: list[TagDetail]
    pagination: PaginationResponse


class TrendingTagsResponse(BaseModel):
    trending: list[TagDetail]


class TrendingRefreshResponse(BaseModel):
    message: str = "tag trending score is updated"
    tags_refreshed: int
