"""Article and version models.

An article is only a stable identity; every piece of content lives on a
version. Versions are numbered per article starting at 1, and at most one
version of an article is ever in the published status.
"""

import enum
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .tag import Tag


class VersionStatus(str, enum.Enum):
    draft = "draft"
    published = "published"
    archived = "archived"
    deleted = "deleted"

    @property
    def is_published(self) -> bool:
        return self is VersionStatus.published

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["VersionStatus"]:
        """Return the matching status, or None for unrecognized values."""
        try:
            return cls(value)
        except ValueError:
            return None


version_tags = Table(
    "version_tags",
    Base.metadata,
    Column("version_serial", String(40), ForeignKey("versions.serial"), primary_key=True),
    Column("tag_serial", String(40), ForeignKey("tags.serial"), primary_key=True),
)


class Article(Base):
    __tablename__ = "articles"

    serial: Mapped[str] = mapped_column(String(40), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    # Soft deletion marker; articles are never physically removed
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    versions: Mapped[list["Version"]] = relationship(
        "Version", back_populates="article", order_by="Version.version_number"
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class Version(Base):
    __tablename__ = "versions"
    __table_args__ = (
        UniqueConstraint(
            "article_serial", "version_number",
            name="uq_versions_article_serial_version_number",
        ),
        Index(
            "uq_versions_one_published_per_article",
            "article_serial",
            unique=True,
            postgresql_where=text("status = 'published'"),
        ),
    )

    serial: Mapped[str] = mapped_column(String(40), primary_key=True)
    article_serial: Mapped[str] = mapped_column(
        String(40), ForeignKey("articles.serial"), nullable=False, index=True
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    author_username: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=VersionStatus.draft, nullable=False, index=True
    )
    # Mean PPMI over the version's tag pairs, recomputed on publish/unpublish
    tag_relationship_score: Mapped[float] = mapped_column(
        Float, nullable=False, server_default="0.0", default=0.0
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    published_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    article: Mapped["Article"] = relationship("Article", back_populates="versions")
    tags: Mapped[list["Tag"]] = relationship(
        "Tag", secondary="version_tags", back_populates="versions"
    )

    @property
    def tag_serials(self) -> list[str]:
        return [tag.serial for tag in self.tags]
