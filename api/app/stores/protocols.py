"""Storage contracts consumed by the article and tag services.

Every method takes the session of the transaction opened by the calling
operation; stores never open, commit or roll back transactions themselves.
Counter mutations are single UPDATE statements so concurrent writers on the
same tag row serialize on the row lock instead of losing updates.
"""

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence

from app.pagination import Pagination

SORT_FIELDS = ("created_at", "updated_at", "published_at", "tag_relationship_score")
SORT_TYPES = ("asc", "desc")


@dataclass
class VersionFilter:
    status: str
    author_username: Optional[str] = None
    tag_serial: Optional[str] = None
    sort_by: str = "created_at"
    sort_type: str = "desc"


class TagStatStore(Protocol):
    async def insert_tag(self, session: Any, serial: str, name: str) -> Any: ...

    async def get_tags_by_serials(self, session: Any, serials: Sequence[str]) -> list[Any]: ...

    async def get_tag_detail(self, session: Any, serial: str) -> Optional[Any]: ...

    async def get_tag_details(self, session: Any, page: Pagination) -> list[Any]: ...

    async def get_trending_tag_details(self, session: Any, limit: int) -> list[Any]: ...

    async def increment_usage_count(self, session: Any, serials: Sequence[str]) -> None: ...

    async def decrement_usage_count(self, session: Any, serials: Sequence[str]) -> None: ...

    async def get_tag_stats_by_serials(self, session: Any, serials: Sequence[str]) -> list[Any]: ...

    async def update_tag_stat(self, session: Any, tag_serial: str, trending_score: float) -> None: ...

    async def increment_tag_pair_stat(self, session: Any, tag1_serial: str, tag2_serial: str) -> None: ...

    async def get_tag_pair_stats_by_serials(self, session: Any, serials: Sequence[str]) -> list[Any]: ...

    async def get_tag_stats_page(self, session: Any, page: Pagination) -> list[Any]: ...


class VersionStore(Protocol):
    async def insert_article(self, session: Any, serial: str) -> Any: ...

    async def get_article(self, session: Any, serial: str, for_update: bool = False) -> Optional[Any]: ...

    async def insert_version(
        self,
        session: Any,
        *,
        serial: str,
        article_serial: str,
        version_number: int,
        author_username: str,
        title: str,
        content: str,
        tags: Sequence[Any],
    ) -> Any: ...

    async def get_latest_version_number(self, session: Any, article_serial: str) -> int: ...

    async def get_version_by_serial(self, session: Any, serial: str) -> Optional[Any]: ...

    async def get_versions_by_status_and_article(
        self, session: Any, article_serial: str, status: str
    ) -> list[Any]: ...

    async def get_versions_by_article(self, session: Any, article_serial: str) -> list[Any]: ...

    async def search_versions(
        self, session: Any, version_filter: VersionFilter, page: Pagination
    ) -> list[Any]: ...

    async def update_version_status(
        self, session: Any, article_serial: str, version_serial: str, new_status: str
    ) -> None: ...

    async def update_tag_relationship_score(self, session: Any, version_serial: str, score: float) -> None: ...

    async def get_total_published_article_count(self, session: Any) -> int: ...

    async def soft_delete_article(self, session: Any, serial: str) -> None: ...

    async def soft_delete_versions(self, session: Any, article_serial: str) -> None: ...
