"""Tag endpoints.

POST /api/v1/tags                 -- create a tag (admin, writer)
GET  /api/v1/tags                 -- paginated tags with usage stats
GET  /api/v1/tags/trending        -- top tags by decayed trending score
GET  /api/v1/tags/{serial}        -- single tag with usage stats
PUT  /api/v1/tags/trending-score  -- recompute all trending scores (scheduler hook)
"""

from fastapi import APIRouter

from app.dependencies import AdminOrWriterUser, TagServiceDep, TrendingRefresherDep
from app.middleware.rate_limiter import ReadRateLimit, WriteRateLimit
from app.pagination import Pagination
from app.schemas.common import PaginationResponse
from app.schemas.tag import (
    TagCreate,
    TagDetail,
    TagListResponse,
    TagResponse,
    TrendingRefreshResponse,
    TrendingTagsResponse,
)

router = APIRouter(prefix="/api/v1", tags=["tags"])


@router.post("/tags", response_model=TagResponse, status_code=201)
async def create_tag(
    body: TagCreate,
    user: AdminOrWriterUser,
    service: TagServiceDep,
    _rate: WriteRateLimit,
) -> TagResponse:
    tag = await service.create_tag(body.name)
    return TagResponse.model_validate(tag)


@router.get("/tags", response_model=TagListResponse)
async def list_tags(
    user: AdminOrWriterUser,
    service: TagServiceDep,
    _rate: ReadRateLimit,
    page: int = 1,
    page_size: int = 10,
) -> TagListResponse:
    pagination = Pagination.from_request(page, page_size)
    details = await service.get_tags(pagination)
    return TagListResponse(
        tags=[TagDetail.model_validate(d) for d in details],
        pagination=PaginationResponse.model_validate(pagination),
    )


@router.get("/tags/trending", response_model=TrendingTagsResponse)
async def list_trending_tags(
    user: AdminOrWriterUser,
    service: TagServiceDep,
    _rate: ReadRateLimit,
    limit: int = 10,
) -> TrendingTagsResponse:
    """Return the top tags ranked by time-decayed usage."""
    details = await service.get_trending_tags(limit)
    return TrendingTagsResponse(trending=[TagDetail.model_validate(d) for d in details])


@router.put("/tags/trending-score", response_model=TrendingRefreshResponse)
async def refresh_trending_scores(
    user: AdminOrWriterUser,
    refresher: TrendingRefresherDep,
) -> TrendingRefreshResponse:
    """Recompute every tag's trending score from elapsed time.

    Meant for an external scheduler; the in-process worker runs the same sweep.
    """
    refreshed = await refresher.refresh_all()
    return TrendingRefreshResponse(tags_refreshed=refreshed)


@router.get("/tags/{serial}", response_model=TagDetail)
async def get_tag(
    serial: str,
    user: AdminOrWriterUser,
    service: TagServiceDep,
    _rate: ReadRateLimit,
) -> TagDetail:
    detail = await service.get_tag_by_serial(serial)
    return TagDetail.model_validate(detail)
