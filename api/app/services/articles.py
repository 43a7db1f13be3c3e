"""Article lifecycle and read operations.

Creating articles and versions never touches tag statistics because new
versions always start as drafts. Deleting an article soft-deletes it and all
of its versions; if one of them was published, its tags' usage counts are
decremented and their trending scores recomputed in the same transaction.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Sequence

import structlog
from sqlalchemy.exc import IntegrityError

from app.database import transaction
from app.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.article import VersionStatus
from app.models.user import UserRole
from app.pagination import Pagination
from app.services.serial import ARTICLE_SERIAL_PREFIX, VERSION_SERIAL_PREFIX, generate_serial
from app.services.transitions import capture_usage_anchors, dedupe_serials
from app.services.trending import DEFAULT_HALF_LIFE_DAYS, apply_trending_scores, utc_now
from app.stores.protocols import SORT_FIELDS, SORT_TYPES, VersionFilter

log = structlog.get_logger(__name__)


@dataclass
class LatestDetail:
    published_version: Optional[Any]
    latest_version: Optional[Any]


class ArticleService:
    def __init__(
        self,
        session_factory,
        version_store,
        tag_store,
        half_life_days: float = DEFAULT_HALF_LIFE_DAYS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._session_factory = session_factory
        self._versions = version_store
        self._tags = tag_store
        self._half_life_days = half_life_days
        self._clock = clock

    async def create_article(
        self,
        author_username: str,
        title: str,
        content: str,
        tag_serials: Sequence[str] = (),
    ):
        """Create an article with its first draft version. Returns the version."""
        _require_content(author_username, title, content)
        tag_serials = dedupe_serials(tag_serials)

        article_serial = generate_serial(ARTICLE_SERIAL_PREFIX)
        async with transaction(self._session_factory) as session:
            tags = await self._load_tags(session, tag_serials)
            await self._versions.insert_article(session, article_serial)
            version = await self._versions.insert_version(
                session,
                serial=generate_serial(VERSION_SERIAL_PREFIX),
                article_serial=article_serial,
                version_number=1,
                author_username=author_username,
                title=title,
                content=content,
                tags=tags,
            )

        log.info(
            "article_created",
            article_serial=article_serial,
            version_serial=version.serial,
            author=author_username,
            tag_count=len(tag_serials),
        )
        return version

    async def create_article_version(
        self,
        author_username: str,
        article_serial: str,
        title: str,
        content: str,
        tag_serials: Sequence[str] = (),
    ):
        """Append a draft version numbered one past the article's latest."""
        if not article_serial:
            raise ValidationError("article serial is mandatory")
        _require_content(author_username, title, content)
        tag_serials = dedupe_serials(tag_serials)

        async with transaction(self._session_factory) as session:
            article = await self._versions.get_article(session, article_serial)
            if article is None or article.is_deleted:
                raise NotFoundError(f"article '{article_serial}' not found")

            tags = await self._load_tags(session, tag_serials)
            latest = await self._versions.get_latest_version_number(session, article_serial)
            try:
                version = await self._versions.insert_version(
                    session,
                    serial=generate_serial(VERSION_SERIAL_PREFIX),
                    article_serial=article_serial,
                    version_number=latest + 1,
                    author_username=author_username,
                    title=title,
                    content=content,
                    tags=tags,
                )
            except IntegrityError as exc:
                raise ConflictError(
                    f"version {latest + 1} of article '{article_serial}' was created concurrently"
                ) from exc

        log.info(
            "article_version_created",
            article_serial=article_serial,
            version_serial=version.serial,
            version_number=version.version_number,
            author=author_username,
        )
        return version

    async def delete_article(self, article_serial: str) -> None:
        if not article_serial:
            raise ValidationError("article serial is mandatory")

        async with transaction(self._session_factory) as session:
            article = await self._versions.get_article(session, article_serial, for_update=True)
            if article is None or article.is_deleted:
                raise NotFoundError(f"article '{article_serial}' not found")

            published = await self._versions.get_versions_by_status_and_article(
                session, article_serial, VersionStatus.published.value
            )
            tag_serials = dedupe_serials(published[0].tag_serials) if published else []
            anchors = await capture_usage_anchors(self._tags, session, tag_serials)

            await self._versions.soft_delete_article(session, article_serial)
            await self._versions.soft_delete_versions(session, article_serial)

            if tag_serials:
                await self._tags.decrement_usage_count(session, tag_serials)
                tag_stats = await self._tags.get_tag_stats_by_serials(session, tag_serials)
                await apply_trending_scores(
                    self._tags,
                    session,
                    tag_stats,
                    self._half_life_days,
                    anchors=anchors,
                    now=self._clock(),
                )

        log.info(
            "article_deleted",
            article_serial=article_serial,
            had_published_version=bool(published),
            tags_decremented=len(tag_serials),
        )

    async def get_articles(
        self,
        role: str,
        page: Pagination,
        status: Optional[str] = None,
        author_username: Optional[str] = None,
        tag_serial: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_type: Optional[str] = None,
    ) -> list:
        sort_by = sort_by or "created_at"
        sort_type = (sort_type or "desc").lower()
        if sort_by not in SORT_FIELDS:
            raise ValidationError(f"sort by value '{sort_by}' is unknown")
        if sort_type not in SORT_TYPES:
            raise ValidationError(f"sort type value '{sort_type}' is unknown")

        if status is None or role == UserRole.reader.value:
            status = VersionStatus.published.value
        elif VersionStatus.parse(status) is None:
            raise ValidationError(f"version status '{status}' is unknown")

        version_filter = VersionFilter(
            status=status,
            author_username=author_username,
            tag_serial=tag_serial,
            sort_by=sort_by,
            sort_type=sort_type,
        )
        async with transaction(self._session_factory) as session:
            return await self._versions.search_versions(session, version_filter, page)

    async def get_article_latest_detail(self, article_serial: str) -> LatestDetail:
        """The published version (if any) and the highest-numbered version."""
        versions = await self.get_versions_by_article_serial(article_serial)
        published = [v for v in versions if v.status == VersionStatus.published.value]
        return LatestDetail(
            published_version=published[-1] if published else None,
            latest_version=versions[-1] if versions else None,
        )

    async def get_versions_by_article_serial(self, article_serial: str) -> list:
        if not article_serial:
            raise ValidationError("article serial is mandatory")
        async with transaction(self._session_factory) as session:
            article = await self._versions.get_article(session, article_serial)
            if article is None:
                raise NotFoundError(f"article '{article_serial}' not found")
            return await self._versions.get_versions_by_article(session, article_serial)

    async def get_version_by_serial(self, serial: str):
        if not serial:
            raise ValidationError("version serial is mandatory")
        async with transaction(self._session_factory) as session:
            version = await self._versions.get_version_by_serial(session, serial)
        if version is None:
            raise NotFoundError(f"version '{serial}' not found")
        return version

    async def _load_tags(self, session, tag_serials: Sequence[str]) -> list:
        tags = await self._tags.get_tags_by_serials(session, tag_serials)
        found = {tag.serial for tag in tags}
        missing = [serial for serial in tag_serials if serial not in found]
        if missing:
            raise NotFoundError(f"tags not found: {', '.join(missing)}")
        by_serial = {tag.serial: tag for tag in tags}
        return [by_serial[serial] for serial in tag_serials]


def _require_content(author_username: str, title: str, content: str) -> None:
    if not author_username:
        raise ValidationError("author username is mandatory")
    if not title:
        raise ValidationError("title is mandatory")
    if not content:
        raise ValidationError("content is mandatory")
