"""Trending score service.

A tag's trending score is its usage count decayed exponentially by the age
of its last usage change:

    score = usage_count * e^(-λ * age_days),  λ = ln(2) / half_life_days

The score is never incremented by user action. It is recomputed from the
persisted usage count whenever a transition touches the tag, and for every
tag by the periodic sweep in ``TrendingRefresher``.
"""

import math
import time
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Sequence

import structlog

from app.database import transaction
from app.metrics import trending_refresh_duration, trending_tags_refreshed
from app.pagination import Pagination

log = structlog.get_logger(__name__)

DEFAULT_HALF_LIFE_DAYS = 7.0
DEFAULT_REFRESH_PAGE_SIZE = 100


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def calculate_trending_score(
    usage_count: int,
    last_updated_at: datetime,
    half_life_days: float = DEFAULT_HALF_LIFE_DAYS,
    now: Optional[datetime] = None,
) -> float:
    """Decay ``usage_count`` by the time elapsed since ``last_updated_at``.

    Returns 0.0 for non-positive counts. Equals ``usage_count`` at age 0 and
    halves every ``half_life_days``. Negative ages (clock skew) count as 0.
    """
    if usage_count <= 0:
        return 0.0
    if half_life_days <= 0:
        raise ValueError("half_life_days must be positive")

    now = now or utc_now()
    if last_updated_at.tzinfo is None:
        last_updated_at = last_updated_at.replace(tzinfo=timezone.utc)

    age_days = max(0.0, (now - last_updated_at).total_seconds() / 86400.0)
    decay_rate = math.log(2) / half_life_days
    return usage_count * math.exp(-decay_rate * age_days)


async def apply_trending_scores(
    store,
    session,
    tag_stats: Sequence[Any],
    half_life_days: float,
    anchors: Optional[Mapping[str, datetime]] = None,
    now: Optional[datetime] = None,
) -> None:
    """Recompute and persist the trending score of each stat row.

    ``anchors`` overrides the decay start per tag serial; transitions pass
    the usage timestamps captured before their own counter updates, so the
    decay spans the age of the previous change rather than restarting at 0.
    """
    now = now or utc_now()
    for stat in tag_stats:
        anchor = stat.usage_count_updated_at
        if anchors and stat.tag_serial in anchors:
            anchor = anchors[stat.tag_serial]
        score = calculate_trending_score(stat.usage_count, anchor, half_life_days, now=now)
        await store.update_tag_stat(session, stat.tag_serial, score)


class TrendingRefresher:
    """Sweeps every tag stat row and re-applies time decay.

    Invoked by the background worker and by the scheduler hook endpoint.
    Only elapsed time changes between runs, so repeated or overlapping runs
    converge on the same values.
    """

    def __init__(
        self,
        session_factory,
        tag_store,
        half_life_days: float = DEFAULT_HALF_LIFE_DAYS,
        page_size: int = DEFAULT_REFRESH_PAGE_SIZE,
        clock: Callable[[], datetime] = utc_now,
    ):
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self._session_factory = session_factory
        self._tag_store = tag_store
        self._half_life_days = half_life_days
        self._page_size = page_size
        self._clock = clock

    async def refresh_all(self) -> int:
        """Recompute trending scores for all tags. Returns the number of rows touched.

        The whole sweep is one transaction: a failure on any page rolls back
        every page already written.
        """
        start = time.monotonic()
        now = self._clock()
        page = Pagination(page=1, page_size=self._page_size)
        refreshed = 0

        async with transaction(self._session_factory) as session:
            while True:
                tag_stats = await self._tag_store.get_tag_stats_page(session, page)
                await apply_trending_scores(
                    self._tag_store, session, tag_stats, self._half_life_days, now=now
                )
                refreshed += len(tag_stats)
                if page.is_last_page:
                    break
                page.page += 1

        elapsed = time.monotonic() - start
        trending_refresh_duration.observe(elapsed)
        trending_tags_refreshed.inc(refreshed)
        log.info(
            "trending_refresh_completed",
            tags_refreshed=refreshed,
            pages=max(page.total_pages, 1),
            duration_ms=round(elapsed * 1000, 1),
        )
        return refreshed
