"""Shared fixtures.

The services are exercised against in-memory stores that follow the same
contracts as the SQLAlchemy stores. The fake session snapshots all state
when a transaction begins and restores it if the block raises, so rollback
behavior is observable in tests. Any store method can be made to fail with
``db.fail_on(name)``.
"""

import copy
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.models.article import VersionStatus
from app.services.articles import ArticleService
from app.services.relationships import pair_key
from app.services.tags import TagService
from app.services.transitions import VersionStatusTransitionEngine
from app.services.trending import TrendingRefresher

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
HALF_LIFE_DAYS = 7.0


class FakeClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@dataclass
class ArticleRecord:
    serial: str
    deleted_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


@dataclass
class TagRecord:
    serial: str
    name: str
    created_at: datetime


@dataclass
class VersionRecord:
    serial: str
    article_serial: str
    version_number: int
    author_username: str
    title: str
    content: str
    created_at: datetime
    updated_at: datetime
    status: str = VersionStatus.draft.value
    tag_serials: list = field(default_factory=list)
    tag_relationship_score: float = 0.0
    published_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


@dataclass
class TagStatRecord:
    tag_serial: str
    usage_count_updated_at: datetime
    trending_score_updated_at: datetime
    usage_count: int = 0
    trending_score: float = 0.0


@dataclass
class TagPairStatRecord:
    tag1_serial: str
    tag2_serial: str
    usage_count: int = 0


@dataclass
class TagDetailRecord:
    serial: str
    name: str
    usage_count: int
    trending_score: float


class InMemoryDatabase:
    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.articles: dict[str, ArticleRecord] = {}
        self.versions: dict[str, VersionRecord] = {}
        self.tags: dict[str, TagRecord] = {}
        self.tag_stats: dict[str, TagStatRecord] = {}
        self.pair_stats: dict[tuple[str, str], TagPairStatRecord] = {}
        self.calls: list[str] = []
        self._failures: dict[str, int] = {}

    def fail_on(self, method: str, after: int = 0) -> None:
        """Make ``method`` raise once it has been called ``after`` times."""
        self._failures[method] = after

    def record(self, method: str) -> None:
        previous = self.calls.count(method)
        self.calls.append(method)
        if method in self._failures and previous >= self._failures[method]:
            raise OperationalError(method, {}, Exception("injected failure"))

    def snapshot(self):
        return copy.deepcopy(
            (self.articles, self.versions, self.tags, self.tag_stats, self.pair_stats)
        )

    def restore(self, snapshot) -> None:
        (
            self.articles,
            self.versions,
            self.tags,
            self.tag_stats,
            self.pair_stats,
        ) = snapshot

    # Convenience accessors for assertions
    def usage(self, tag_serial: str) -> int:
        return self.tag_stats[tag_serial].usage_count

    def trending(self, tag_serial: str) -> float:
        return self.tag_stats[tag_serial].trending_score

    def pair_usage(self, tag1: str, tag2: str) -> int:
        stat = self.pair_stats.get(pair_key(tag1, tag2))
        return stat.usage_count if stat else 0

    def status(self, version_serial: str) -> str:
        return self.versions[version_serial].status

    def published_count(self, article_serial: str) -> int:
        return sum(
            1
            for v in self.versions.values()
            if v.article_serial == article_serial and v.status == VersionStatus.published.value
        )


class FakeSession:
    def __init__(self, db: InMemoryDatabase):
        self.db = db

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    @asynccontextmanager
    async def begin(self):
        snapshot = self.db.snapshot()
        try:
            yield self
        except BaseException:
            self.db.restore(snapshot)
            raise


class InMemoryTagStatStore:
    def __init__(self, db: InMemoryDatabase):
        self.db = db

    async def insert_tag(self, session, serial, name):
        self.db.record("insert_tag")
        if any(tag.name == name for tag in self.db.tags.values()):
            raise IntegrityError("insert_tag", {}, Exception("duplicate tag name"))
        now = self.db.clock()
        tag = TagRecord(serial=serial, name=name, created_at=now)
        self.db.tags[serial] = tag
        self.db.tag_stats[serial] = TagStatRecord(
            tag_serial=serial, usage_count_updated_at=now, trending_score_updated_at=now
        )
        return copy.copy(tag)

    async def get_tags_by_serials(self, session, serials):
        self.db.record("get_tags_by_serials")
        return [copy.copy(self.db.tags[s]) for s in serials if s in self.db.tags]

    def _detail(self, tag):
        stat = self.db.tag_stats.get(tag.serial)
        return TagDetailRecord(
            serial=tag.serial,
            name=tag.name,
            usage_count=stat.usage_count if stat else 0,
            trending_score=stat.trending_score if stat else 0.0,
        )

    async def get_tag_detail(self, session, serial):
        self.db.record("get_tag_detail")
        tag = self.db.tags.get(serial)
        return self._detail(tag) if tag else None

    async def get_tag_details(self, session, page):
        self.db.record("get_tag_details")
        tags = sorted(self.db.tags.values(), key=lambda t: (-t.created_at.timestamp(), t.serial))
        page.total = len(tags)
        return [self._detail(t) for t in tags[page.offset:page.offset + page.page_size]]

    async def get_trending_tag_details(self, session, limit):
        self.db.record("get_trending_tag_details")
        details = [self._detail(t) for t in self.db.tags.values()]
        details = [d for d in details if d.trending_score > 0]
        details.sort(key=lambda d: (-d.trending_score, d.serial))
        return details[:limit]

    async def increment_usage_count(self, session, serials):
        self.db.record("increment_usage_count")
        for serial in set(serials):
            if serial in self.db.tag_stats:
                stat = self.db.tag_stats[serial]
                stat.usage_count += 1
                stat.usage_count_updated_at = self.db.clock()

    async def decrement_usage_count(self, session, serials):
        self.db.record("decrement_usage_count")
        for serial in set(serials):
            if serial in self.db.tag_stats:
                stat = self.db.tag_stats[serial]
                stat.usage_count = max(0, stat.usage_count - 1)
                stat.usage_count_updated_at = self.db.clock()

    async def get_tag_stats_by_serials(self, session, serials):
        self.db.record("get_tag_stats_by_serials")
        return [
            copy.copy(self.db.tag_stats[s])
            for s in sorted(set(serials))
            if s in self.db.tag_stats
        ]

    async def update_tag_stat(self, session, tag_serial, trending_score):
        self.db.record("update_tag_stat")
        stat = self.db.tag_stats[tag_serial]
        stat.trending_score = trending_score
        stat.trending_score_updated_at = self.db.clock()

    async def increment_tag_pair_stat(self, session, tag1_serial, tag2_serial):
        self.db.record("increment_tag_pair_stat")
        key = pair_key(tag1_serial, tag2_serial)
        stat = self.db.pair_stats.setdefault(key, TagPairStatRecord(*key))
        stat.usage_count += 1

    async def get_tag_pair_stats_by_serials(self, session, serials):
        self.db.record("get_tag_pair_stats_by_serials")
        wanted = set(serials)
        return [
            copy.copy(stat)
            for (tag1, tag2), stat in self.db.pair_stats.items()
            if tag1 in wanted and tag2 in wanted
        ]

    async def get_tag_stats_page(self, session, page):
        self.db.record("get_tag_stats_page")
        stats = sorted(self.db.tag_stats.values(), key=lambda s: s.tag_serial)
        page.total = len(stats)
        return [copy.copy(s) for s in stats[page.offset:page.offset + page.page_size]]


class InMemoryVersionStore:
    def __init__(self, db: InMemoryDatabase):
        self.db = db

    async def insert_article(self, session, serial):
        self.db.record("insert_article")
        self.db.articles[serial] = ArticleRecord(serial=serial)
        return copy.copy(self.db.articles[serial])

    async def get_article(self, session, serial, for_update=False):
        self.db.record("get_article")
        article = self.db.articles.get(serial)
        return copy.copy(article) if article else None

    async def insert_version(
        self, session, *, serial, article_serial, version_number,
        author_username, title, content, tags,
    ):
        self.db.record("insert_version")
        for existing in self.db.versions.values():
            if existing.article_serial == article_serial and existing.version_number == version_number:
                raise IntegrityError("insert_version", {}, Exception("duplicate version number"))
        now = self.db.clock()
        version = VersionRecord(
            serial=serial,
            article_serial=article_serial,
            version_number=version_number,
            author_username=author_username,
            title=title,
            content=content,
            created_at=now,
            updated_at=now,
            tag_serials=[tag.serial for tag in tags],
        )
        self.db.versions[serial] = version
        return copy.deepcopy(version)

    async def get_latest_version_number(self, session, article_serial):
        self.db.record("get_latest_version_number")
        numbers = [
            v.version_number for v in self.db.versions.values() if v.article_serial == article_serial
        ]
        return max(numbers, default=0)

    async def get_version_by_serial(self, session, serial):
        self.db.record("get_version_by_serial")
        version = self.db.versions.get(serial)
        return copy.deepcopy(version) if version else None

    def _by_article(self, article_serial):
        return sorted(
            (v for v in self.db.versions.values() if v.article_serial == article_serial),
            key=lambda v: v.version_number,
        )

    async def get_versions_by_status_and_article(self, session, article_serial, status):
        self.db.record("get_versions_by_status_and_article")
        return [copy.deepcopy(v) for v in self._by_article(article_serial) if v.status == status]

    async def get_versions_by_article(self, session, article_serial):
        self.db.record("get_versions_by_article")
        return [copy.deepcopy(v) for v in self._by_article(article_serial)]

    async def search_versions(self, session, version_filter, page):
        self.db.record("search_versions")
        matches = [
            v
            for v in self.db.versions.values()
            if not self.db.articles[v.article_serial].is_deleted
            and v.status == version_filter.status
            and (not version_filter.author_username or v.author_username == version_filter.author_username)
            and (not version_filter.tag_serial or version_filter.tag_serial in v.tag_serials)
        ]
        matches.sort(
            key=lambda v: (getattr(v, version_filter.sort_by) is None, getattr(v, version_filter.sort_by)),
            reverse=version_filter.sort_type == "desc",
        )
        page.total = len(matches)
        return [copy.deepcopy(v) for v in matches[page.offset:page.offset + page.page_size]]

    async def update_version_status(self, session, article_serial, version_serial, new_status):
        self.db.record("update_version_status")
        version = self.db.versions.get(version_serial)
        if version is None or version.article_serial != article_serial:
            return
        version.status = new_status
        version.updated_at = self.db.clock()
        version.published_at = (
            self.db.clock() if new_status == VersionStatus.published.value else None
        )

    async def update_tag_relationship_score(self, session, version_serial, score):
        self.db.record("update_tag_relationship_score")
        self.db.versions[version_serial].tag_relationship_score = score

    async def get_total_published_article_count(self, session):
        self.db.record("get_total_published_article_count")
        return len(
            {
                v.article_serial
                for v in self.db.versions.values()
                if v.status == VersionStatus.published.value
            }
        )

    async def soft_delete_article(self, session, serial):
        self.db.record("soft_delete_article")
        self.db.articles[serial].deleted_at = self.db.clock()

    async def soft_delete_versions(self, session, article_serial):
        self.db.record("soft_delete_versions")
        for version in self.db.versions.values():
            if version.article_serial == article_serial:
                version.status = VersionStatus.deleted.value
                version.deleted_at = self.db.clock()
                version.published_at = None


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db(clock):
    return InMemoryDatabase(clock)


@pytest.fixture
def session_factory(db):
    return lambda: FakeSession(db)


@pytest.fixture
def tag_store(db):
    return InMemoryTagStatStore(db)


@pytest.fixture
def version_store(db):
    return InMemoryVersionStore(db)


@pytest.fixture
def engine(session_factory, version_store, tag_store, clock):
    return VersionStatusTransitionEngine(
        session_factory, version_store, tag_store, half_life_days=HALF_LIFE_DAYS, clock=clock
    )


@pytest.fixture
def article_service(session_factory, version_store, tag_store, clock):
    return ArticleService(
        session_factory, version_store, tag_store, half_life_days=HALF_LIFE_DAYS, clock=clock
    )


@pytest.fixture
def tag_service(session_factory, tag_store):
    return TagService(session_factory, tag_store)


@pytest.fixture
def refresher(session_factory, tag_store, clock):
    return TrendingRefresher(
        session_factory, tag_store, half_life_days=HALF_LIFE_DAYS, page_size=2, clock=clock
    )


@pytest.fixture
def make_tags(tag_service):
    async def _make(*names):
        return [(await tag_service.create_tag(name)).serial for name in names]

    return _make


@pytest.fixture
def make_article(article_service):
    async def _make(tag_serials=(), author="writer1"):
        return await article_service.create_article(author, "Title", "Body", list(tag_serials))

    return _make
