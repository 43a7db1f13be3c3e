"""Tag creation and lookup.

Each tag gets its stat row in the same transaction it is created in, so the
transition engine can always assume a stat row exists for any tag it sees.
"""

import structlog
from sqlalchemy.exc import IntegrityError

from app.database import transaction
from app.exceptions import ConflictError, NotFoundError, ValidationError
from app.pagination import Pagination
from app.services.serial import TAG_SERIAL_PREFIX, generate_serial

log = structlog.get_logger(__name__)

MAX_TAG_LENGTH = 50
MAX_TRENDING_LIMIT = 50


def normalize_tag(raw: str) -> str:
    """Strip and lowercase a tag name."""
    return raw.strip().lower()


class TagService:
    def __init__(self, session_factory, tag_store):
        self._session_factory = session_factory
        self._tags = tag_store

    async def create_tag(self, name: str):
        name = normalize_tag(name or "")
        if not name:
            raise ValidationError("tag name is mandatory")
        if len(name) > MAX_TAG_LENGTH:
            raise ValidationError(f"tag name must be at most {MAX_TAG_LENGTH} characters")

        async with transaction(self._session_factory) as session:
            try:
                tag = await self._tags.insert_tag(session, generate_serial(TAG_SERIAL_PREFIX), name)
            except IntegrityError as exc:
                raise ConflictError(f"tag '{name}' already exists") from exc

        log.info("tag_created", tag_serial=tag.serial, name=name)
        return tag

    async def get_tags(self, page: Pagination) -> list:
        async with transaction(self._session_factory) as session:
            return await self._tags.get_tag_details(session, page)

    async def get_tag_by_serial(self, serial: str):
        if not serial:
            raise ValidationError("tag serial is mandatory")
        async with transaction(self._session_factory) as session:
            detail = await self._tags.get_tag_detail(session, serial)
        if detail is None:
            raise NotFoundError(f"tag '{serial}' not found")
        return detail

    async def get_trending_tags(self, limit: int = 10) -> list:
        if limit < 1 or limit > MAX_TRENDING_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_TRENDING_LIMIT}")
        async with transaction(self._session_factory) as session:
            return await self._tags.get_trending_tag_details(session, limit)
