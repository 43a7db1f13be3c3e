from .base import Base
from .article import Article, Version, VersionStatus, version_tags
from .tag import Tag, TagPairStat, TagStat
from .user import User, UserRole

__all__ = [
    "Base",
    "Article",
    "Version",
    "VersionStatus",
    "version_tags",
    "Tag",
    "TagStat",
    "TagPairStat",
    "User",
    "UserRole",
]
