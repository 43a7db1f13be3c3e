"""FastAPI dependencies: database session, authenticated user, services.

Services are built per request from the shared session factory and the
settings values they need; nothing in the service layer reads settings.
"""

from typing import Annotated, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import async_session_factory, get_db
from app.exceptions import PermissionDeniedError
from app.models.user import User, UserRole
from app.services.articles import ArticleService
from app.services.tags import TagService
from app.services.transitions import VersionStatusTransitionEngine
from app.services.trending import TrendingRefresher
from app.services.users import authenticate
from app.stores import SqlTagStatStore, SqlVersionStore

DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_current_user(
    db: DbSession,
    x_api_key: Annotated[Optional[str], Header()] = None,
) -> User:
    return await authenticate(db, x_api_key)


CurrentUser = Annotated[User, Depends(get_current_user)]


def require_roles(*roles: UserRole):
    allowed = {role.value for role in roles}

    async def _check(user: CurrentUser) -> User:
        if user.role not in allowed:
            raise PermissionDeniedError(
                f"role '{user.role}' may not perform this action"
            )
        return user

    return _check


WriterUser = Annotated[User, Depends(require_roles(UserRole.writer))]
AdminOrWriterUser = Annotated[
    User, Depends(require_roles(UserRole.admin, UserRole.writer))
]


def get_article_service() -> ArticleService:
    return ArticleService(
        async_session_factory,
        SqlVersionStore(),
        SqlTagStatStore(),
        half_life_days=settings.trending_score_half_life_days,
    )


def get_transition_engine() -> VersionStatusTransitionEngine:
    return VersionStatusTransitionEngine(
        async_session_factory,
        SqlVersionStore(),
        SqlTagStatStore(),
        half_life_days=settings.trending_score_half_life_days,
    )


def get_tag_service() -> TagService:
    return TagService(async_session_factory, SqlTagStatStore())


def get_trending_refresher() -> TrendingRefresher:
    return TrendingRefresher(
        async_session_factory,
        SqlTagStatStore(),
        half_life_days=settings.trending_score_half_life_days,
        page_size=settings.trending_refresh_page_size,
    )


ArticleServiceDep = Annotated[ArticleService, Depends(get_article_service)]
TransitionEngineDep = Annotated[VersionStatusTransitionEngine, Depends(get_transition_engine)]
TagServiceDep = Annotated[TagService, Depends(get_tag_service)]
TrendingRefresherDep = Annotated[TrendingRefresher, Depends(get_trending_refresher)]
