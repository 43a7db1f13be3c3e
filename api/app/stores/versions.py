"""SQLAlchemy implementation of the article/version store."""

from typing import Optional, Sequence

from sqlalchemy import distinct, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.article import Article, Version, VersionStatus, version_tags
from app.models.tag import Tag
from app.pagination import Pagination
from app.stores.protocols import VersionFilter

_SORT_COLUMNS = {
    "created_at": Version.created_at,
    "updated_at": Version.updated_at,
    "published_at": Version.published_at,
    "tag_relationship_score": Version.tag_relationship_score,
}


def _versions_with_tags():
    return (
        select(Version)
        .options(selectinload(Version.tags))
        .execution_options(populate_existing=True)
    )


class SqlVersionStore:
    async def insert_article(self, session: AsyncSession, serial: str) -> Article:
        article = Article(serial=serial, deleted_at=None)
        session.add(article)
        await session.flush()
        return article

    async def get_article(
        self, session: AsyncSession, serial: str, for_update: bool = False
    ) -> Optional[Article]:
        stmt = select(Article).where(Article.serial == serial)
        if for_update:
            # Serializes concurrent transitions and deletes on the same article
            stmt = stmt.with_for_update()
        result = await session.execute(stmt.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def insert_version(
        self,
        session: AsyncSession,
        *,
        serial: str,
        article_serial: str,
        version_number: int,
        author_username: str,
        title: str,
        content: str,
        tags: Sequence[Tag],
    ) -> Version:
        version = Version(
            serial=serial,
            article_serial=article_serial,
            version_number=version_number,
            author_username=author_username,
            title=title,
            content=content,
            status=VersionStatus.draft.value,
            tag_relationship_score=0.0,
            published_at=None,
            deleted_at=None,
            tags=list(tags),
        )
        session.add(version)
        await session.flush()
        await session.refresh(version, attribute_names=["created_at", "updated_at"])
        return version

    async def get_latest_version_number(self, session: AsyncSession, article_serial: str) -> int:
        result = await session.execute(
            select(func.max(Version.version_number)).where(
                Version.article_serial == article_serial
            )
        )
        return result.scalar_one_or_none() or 0

    async def get_version_by_serial(self, session: AsyncSession, serial: str) -> Optional[Version]:
        result = await session.execute(_versions_with_tags().where(Version.serial == serial))
        return result.scalar_one_or_none()

    async def get_versions_by_status_and_article(
        self, session: AsyncSession, article_serial: str, status: str
    ) -> list[Version]:
        result = await session.execute(
            _versions_with_tags()
            .where(Version.article_serial == article_serial, Version.status == status)
            .order_by(Version.version_number)
        )
        return list(result.scalars().all())

    async def get_versions_by_article(
        self, session: AsyncSession, article_serial: str
    ) -> list[Version]:
        result = await session.execute(
            _versions_with_tags()
            .where(Version.article_serial == article_serial)
            .order_by(Version.version_number)
        )
        return list(result.scalars().all())

    async def search_versions(
        self, session: AsyncSession, version_filter: VersionFilter, page: Pagination
    ) -> list[Version]:
        conditions = [Article.deleted_at.is_(None), Version.status == version_filter.status]
        if version_filter.author_username:
            conditions.append(Version.author_username == version_filter.author_username)
        if version_filter.tag_serial:
            conditions.append(
                Version.serial.in_(
                    select(version_tags.c.version_serial).where(
                        version_tags.c.tag_serial == version_filter.tag_serial
                    )
                )
            )

        total = await session.execute(
            select(func.count(Version.serial))
            .join(Article, Article.serial == Version.article_serial)
            .where(*conditions)
        )
        page.total = total.scalar_one()
        if page.total == 0:
            return []

        sort_column = _SORT_COLUMNS[version_filter.sort_by]
        order = sort_column.asc() if version_filter.sort_type == "asc" else sort_column.desc()
        result = await session.execute(
            _versions_with_tags()
            .join(Article, Article.serial == Version.article_serial)
            .where(*conditions)
            .order_by(order.nulls_last(), Version.serial)
            .limit(page.page_size)
            .offset(page.offset)
        )
        return list(result.scalars().all())

    async def update_version_status(
        self, session: AsyncSession, article_serial: str, version_serial: str, new_status: str
    ) -> None:
        # published_at tracks the current publication only
        published_at = func.now() if new_status == VersionStatus.published.value else None
        await session.execute(
            update(Version)
            .where(Version.serial == version_serial, Version.article_serial == article_serial)
            .values(status=new_status, published_at=published_at, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )

    async def update_tag_relationship_score(
        self, session: AsyncSession, version_serial: str, score: float
    ) -> None:
        await session.execute(
            update(Version)
            .where(Version.serial == version_serial)
            .values(tag_relationship_score=score, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )

    async def get_total_published_article_count(self, session: AsyncSession) -> int:
        result = await session.execute(
            select(func.count(distinct(Version.article_serial))).where(
                Version.status == VersionStatus.published.value
            )
        )
        return result.scalar_one()

    async def soft_delete_article(self, session: AsyncSession, serial: str) -> None:
        await session.execute(
            update(Article)
            .where(Article.serial == serial)
            .values(deleted_at=func.now(), updated_at=func.now())
            .execution_options(synchronize_session=False)
        )

    async def soft_delete_versions(self, session: AsyncSession, article_serial: str) -> None:
        await session.execute(
            update(Version)
            .where(Version.article_serial == article_serial)
            .values(
                status=VersionStatus.deleted.value,
                deleted_at=func.now(),
                published_at=None,
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
