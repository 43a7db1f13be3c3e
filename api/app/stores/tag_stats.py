"""SQLAlchemy implementation of the tag statistics store."""

from typing import Sequence

from sqlalchemy import case, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.tag import Tag, TagPairStat, TagStat
from app.pagination import Pagination


def _tag_detail_query():
    return select(
        Tag.serial,
        Tag.name,
        func.coalesce(TagStat.usage_count, 0).label("usage_count"),
        func.coalesce(TagStat.trending_score, 0.0).label("trending_score"),
    ).outerjoin(TagStat, TagStat.tag_serial == Tag.serial)


class SqlTagStatStore:
    async def insert_tag(self, session: AsyncSession, serial: str, name: str) -> Tag:
        """Insert the tag and its zeroed stat row. Raises IntegrityError on duplicate name."""
        tag = Tag(serial=serial, name=name)
        session.add(tag)
        await session.flush()
        session.add(TagStat(tag_serial=serial, usage_count=0, trending_score=0.0))
        await session.flush()
        await session.refresh(tag, attribute_names=["created_at"])
        return tag

    async def get_tags_by_serials(self, session: AsyncSession, serials: Sequence[str]) -> list[Tag]:
        if not serials:
            return []
        result = await session.execute(select(Tag).where(Tag.serial.in_(serials)))
        return list(result.scalars().all())

    async def get_tag_detail(self, session: AsyncSession, serial: str):
        result = await session.execute(_tag_detail_query().where(Tag.serial == serial))
        return result.one_or_none()

    async def get_tag_details(self, session: AsyncSession, page: Pagination) -> list:
        total = await session.execute(select(func.count(Tag.serial)))
        page.total = total.scalar_one()
        if page.total == 0:
            return []
        result = await session.execute(
            _tag_detail_query()
            .order_by(Tag.created_at.desc(), Tag.serial)
            .limit(page.page_size)
            .offset(page.offset)
        )
        return list(result.all())

    async def get_trending_tag_details(self, session: AsyncSession, limit: int) -> list:
        result = await session.execute(
            _tag_detail_query()
            .where(TagStat.trending_score > 0)
            .order_by(TagStat.trending_score.desc(), Tag.serial)
            .limit(limit)
        )
        return list(result.all())

    async def increment_usage_count(self, session: AsyncSession, serials: Sequence[str]) -> None:
        if not serials:
            return
        # Column expression keeps this atomic; no read-modify-write
        await session.execute(
            update(TagStat)
            .where(TagStat.tag_serial.in_(serials))
            .values(
                usage_count=TagStat.usage_count + 1,
                usage_count_updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )

    async def decrement_usage_count(self, session: AsyncSession, serials: Sequence[str]) -> None:
        if not serials:
            return
        await session.execute(
            update(TagStat)
            .where(TagStat.tag_serial.in_(serials))
            .values(
                usage_count=case(
                    (TagStat.usage_count > 0, TagStat.usage_count - 1),
                    else_=0,
                ),
                usage_count_updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )

    async def get_tag_stats_by_serials(
        self, session: AsyncSession, serials: Sequence[str]
    ) -> list[TagStat]:
        if not serials:
            return []
        result = await session.execute(
            select(TagStat)
            .where(TagStat.tag_serial.in_(serials))
            .order_by(TagStat.tag_serial)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def update_tag_stat(
        self, session: AsyncSession, tag_serial: str, trending_score: float
    ) -> None:
        await session.execute(
            update(TagStat)
            .where(TagStat.tag_serial == tag_serial)
            .values(trending_score=trending_score, trending_score_updated_at=func.now())
            .execution_options(synchronize_session=False)
        )

    async def increment_tag_pair_stat(
        self, session: AsyncSession, tag1_serial: str, tag2_serial: str
    ) -> None:
        tag1_serial, tag2_serial = sorted((tag1_serial, tag2_serial))
        stmt = pg_insert(TagPairStat).values(
            tag1_serial=tag1_serial, tag2_serial=tag2_serial, usage_count=1
        )
        await session.execute(
            stmt.on_conflict_do_update(
                index_elements=[TagPairStat.tag1_serial, TagPairStat.tag2_serial],
                set_={
                    "usage_count": TagPairStat.usage_count + 1,
                    "updated_at": func.now(),
                },
            )
        )

    async def get_tag_pair_stats_by_serials(
        self, session: AsyncSession, serials: Sequence[str]
    ) -> list[TagPairStat]:
        if len(serials) < 2:
            return []
        result = await session.execute(
            select(TagPairStat)
            .where(
                TagPairStat.tag1_serial.in_(serials),
                TagPairStat.tag2_serial.in_(serials),
            )
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_tag_stats_page(self, session: AsyncSession, page: Pagination) -> list[TagStat]:
        total = await session.execute(select(func.count(TagStat.tag_serial)))
        page.total = total.scalar_one()
        if page.total == 0:
            return []
        result = await session.execute(
            select(TagStat)
            .order_by(TagStat.tag_serial)
            .limit(page.page_size)
            .offset(page.offset)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
