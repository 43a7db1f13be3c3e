"""Initial schema: users, articles, versions, tags and tag statistics

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19 09:00:00.000000

Tag statistics live beside the tags: tag_stats holds per-tag usage and the
decayed trending score, tag_pair_stats the co-occurrence count of each
canonical (tag1_serial < tag2_serial) pair.
"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

revision: str = "a1b2c3d4e5f6"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("username", sa.String(50), primary_key=True),
        sa.Column("password_hash", sa.String(100), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("api_key_hash", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_api_key_hash", "users", ["api_key_hash"], unique=True)

    op.create_table(
        "articles",
        sa.Column("serial", sa.String(40), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "versions",
        sa.Column("serial", sa.String(40), primary_key=True),
        sa.Column("article_serial", sa.String(40), sa.ForeignKey("articles.serial"), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("author_username", sa.String(50), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("tag_relationship_score", sa.Float(), nullable=False, server_default="0.0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "article_serial", "version_number",
            name="uq_versions_article_serial_version_number",
        ),
    )
    op.create_index("ix_versions_article_serial", "versions", ["article_serial"])
    op.create_index("ix_versions_status", "versions", ["status"])
    # Enforces at most one published version per article at the storage level
    op.create_index(
        "uq_versions_one_published_per_article",
        "versions",
        ["article_serial"],
        unique=True,
        postgresql_where=sa.text("status = 'published'"),
    )

    op.create_table(
        "tags",
        sa.Column("serial", sa.String(40), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "version_tags",
        sa.Column("version_serial", sa.String(40), sa.ForeignKey("versions.serial"), primary_key=True),
        sa.Column("tag_serial", sa.String(40), sa.ForeignKey("tags.serial"), primary_key=True),
    )
    op.create_index("ix_version_tags_tag_serial", "version_tags", ["tag_serial"])

    op.create_table(
        "tag_stats",
        sa.Column("tag_serial", sa.String(40), sa.ForeignKey("tags.serial"), primary_key=True),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("trending_score", sa.Float(), nullable=False, server_default="0.0"),
        sa.Column("usage_count_updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("trending_score_updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("usage_count >= 0", name="ck_tag_stats_usage_count_non_negative"),
    )
    op.create_index("ix_tag_stats_trending_score", "tag_stats", ["trending_score"])

    op.create_table(
        "tag_pair_stats",
        sa.Column("tag1_serial", sa.String(40), sa.ForeignKey("tags.serial"), primary_key=True),
        sa.Column("tag2_serial", sa.String(40), sa.ForeignKey("tags.serial"), primary_key=True),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("tag1_serial < tag2_serial", name="ck_tag_pair_stats_canonical_order"),
    )


def downgrade() -> None:
    op.drop_table("tag_pair_stats")
    op.drop_index("ix_tag_stats_trending_score", table_name="tag_stats")
    op.drop_table("tag_stats")
    op.drop_index("ix_version_tags_tag_serial", table_name="version_tags")
    op.drop_table("version_tags")
    op.drop_table("tags")
    op.drop_index("uq_versions_one_published_per_article", table_name="versions")
    op.drop_index("ix_versions_status", table_name="versions")
    op.drop_index("ix_versions_article_serial", table_name="versions")
    op.drop_table("versions")
    op.drop_table("articles")
    op.drop_index("ix_users_api_key_hash", table_name="users")
    op.drop_table("users")
