"""Article and version endpoints.

POST   /api/v1/articles                                          -- create article (writer)
GET    /api/v1/articles                                          -- list versions (any user)
POST   /api/v1/articles/{serial}/versions                        -- new draft version (writer)
GET    /api/v1/articles/{serial}/versions                        -- all versions (admin, writer)
GET    /api/v1/articles/{serial}/latest                          -- published + latest (admin, writer)
PATCH  /api/v1/articles/{serial}/versions/{version_serial}/status -- transition (admin, writer)
DELETE /api/v1/articles/{serial}                                 -- soft delete (admin, writer)
GET    /api/v1/versions/{serial}                                 -- single version (admin, writer)
"""

from typing import Optional

from fastapi import APIRouter

from app.dependencies import (
    ArticleServiceDep,
    CurrentUser,
    AdminOrWriterUser,
    TransitionEngineDep,
    WriterUser,
)
from app.middleware.rate_limiter import ReadRateLimit, WriteRateLimit
from app.pagination import Pagination
from app.schemas.article import (
    ArticleCreate,
    ArticleListResponse,
    LatestDetailResponse,
    TransitionResponse,
    VersionListResponse,
    VersionResponse,
    VersionStatusUpdate,
)
from app.schemas.common import MessageResponse, PaginationResponse

router = APIRouter(prefix="/api/v1", tags=["articles"])


@router.post("/articles", response_model=VersionResponse, status_code=201)
async def create_article(
    body: ArticleCreate,
    user: WriterUser,
    service: ArticleServiceDep,
    _rate: WriteRateLimit,
) -> VersionResponse:
    version = await service.create_article(
        user.username, body.title, body.content, body.tag_serials
    )
    return VersionResponse.model_validate(version)


@router.get("/articles", response_model=ArticleListResponse)
async def list_articles(
    user: CurrentUser,
    service: ArticleServiceDep,
    _rate: ReadRateLimit,
    status: Optional[str] = None,
    author_username: Optional[str] = None,
    tag_serial: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_type: Optional[str] = None,
    page: int = 1,
    page_size: int = 10,
) -> ArticleListResponse:
    """List versions of live articles.

    Readers only ever see published versions; other roles may filter by any
    status (default published).
    """
    pagination = Pagination.from_request(page, page_size)
    versions = await service.get_articles(
        user.role,
        pagination,
        status=status,
        author_username=author_username,
        tag_serial=tag_serial,
        sort_by=sort_by,
        sort_type=sort_type,
    )
    return ArticleListResponse(
        versions=[VersionResponse.model_validate(v) for v in versions],
        pagination=PaginationResponse.model_validate(pagination),
    )


@router.post("/articles/{serial}/versions", response_model=VersionResponse, status_code=201)
async def create_article_version(
    serial: str,
    body: ArticleCreate,
    user: WriterUser,
    service: ArticleServiceDep,
    _rate: WriteRateLimit,
) -> VersionResponse:
    version = await service.create_article_version(
        user.username, serial, body.title, body.content, body.tag_serials
    )
    return VersionResponse.model_validate(version)


@router.get("/articles/{serial}/versions", response_model=VersionListResponse)
async def list_article_versions(
    serial: str,
    user: AdminOrWriterUser,
    service: ArticleServiceDep,
    _rate: ReadRateLimit,
) -> VersionListResponse:
    versions = await service.get_versions_by_article_serial(serial)
    return VersionListResponse(versions=[VersionResponse.model_validate(v) for v in versions])


@router.get("/articles/{serial}/latest", response_model=LatestDetailResponse)
async def get_article_latest_detail(
    serial: str,
    user: AdminOrWriterUser,
    service: ArticleServiceDep,
    _rate: ReadRateLimit,
) -> LatestDetailResponse:
    detail = await service.get_article_latest_detail(serial)
    return LatestDetailResponse.model_validate(detail)


@router.patch(
    "/articles/{serial}/versions/{version_serial}/status",
    response_model=TransitionResponse,
)
async def update_version_status(
    serial: str,
    version_serial: str,
    body: VersionStatusUpdate,
    user: AdminOrWriterUser,
    engine: TransitionEngineDep,
    _rate: WriteRateLimit,
) -> TransitionResponse:
    """Change a version's status, keeping tag statistics consistent.

    Requests that do not cross the published boundary (e.g. draft -> archived)
    are accepted but leave the version untouched; ``transition`` is "noop" and
    ``status`` is the status the version still has.
    """
    result = await engine.transition_version_status(serial, version_serial, body.status)
    return TransitionResponse(
        version_serial=version_serial,
        status=result.status,
        transition=result.kind.value,
    )


@router.delete("/articles/{serial}", response_model=MessageResponse)
async def delete_article(
    serial: str,
    user: AdminOrWriterUser,
    service: ArticleServiceDep,
    _rate: WriteRateLimit,
) -> MessageResponse:
    await service.delete_article(serial)
    return MessageResponse(message=f"success delete article '{serial}'")


@router.get("/versions/{serial}", response_model=VersionResponse)
async def get_version(
    serial: str,
    user: AdminOrWriterUser,
    service: ArticleServiceDep,
    _rate: ReadRateLimit,
) -> VersionResponse:
    version = await service.get_version_by_serial(serial)
    return VersionResponse.model_validate(version)
