"""Tag models and their derived statistics.

TagStat holds one row per tag: how many currently published versions use
the tag, and the time-decayed trending score derived from that count.
TagPairStat counts co-occurrence for an unordered tag pair, always stored
with tag1_serial < tag2_serial so lookups are symmetric.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .article import Version


class Tag(Base):
    __tablename__ = "tags"

    serial: Mapped[str] = mapped_column(String(40), primary_key=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    versions: Mapped[list["Version"]] = relationship(
        "Version", secondary="version_tags", back_populates="tags"
    )


class TagStat(Base):
    __tablename__ = "tag_stats"
    __table_args__ = (
        CheckConstraint("usage_count >= 0", name="ck_tag_stats_usage_count_non_negative"),
    )

    tag_serial: Mapped[str] = mapped_column(
        String(40), ForeignKey("tags.serial"), primary_key=True
    )
    usage_count: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default="0", default=0
    )
    trending_score: Mapped[float] = mapped_column(
        Float, nullable=False, server_default="0.0", default=0.0
    )
    usage_count_updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    trending_score_updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class TagPairStat(Base):
    __tablename__ = "tag_pair_stats"
    __table_args__ = (
        CheckConstraint("tag1_serial < tag2_serial", name="ck_tag_pair_stats_canonical_order"),
    )

    tag1_serial: Mapped[str] = mapped_column(
        String(40), ForeignKey("tags.serial"), primary_key=True
    )
    tag2_serial: Mapped[str] = mapped_column(
        String(40), ForeignKey("tags.serial"), primary_key=True
    )
    usage_count: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default="0", default=0
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
