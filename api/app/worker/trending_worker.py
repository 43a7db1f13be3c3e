"""Trending score worker.

Re-applies time decay to every tag's trending score on a fixed interval so
scores keep falling for tags nobody publishes with anymore. Each sweep is
one transaction; a failed sweep is logged and retried on the next tick.
"""

import asyncio

import structlog

from app.services.trending import TrendingRefresher

log = structlog.get_logger(__name__)

# Let the app finish starting before the first sweep
INITIAL_DELAY_SECONDS = 30


async def trending_worker_loop(refresher: TrendingRefresher, interval_minutes: int) -> None:
    interval = interval_minutes * 60
    log.info("trending_worker_started", interval_minutes=interval_minutes)

    await asyncio.sleep(INITIAL_DELAY_SECONDS)

    while True:
        try:
            await refresher.refresh_all()
        except Exception:
            log.error("trending_worker_error", exc_info=True)
        await asyncio.sleep(interval)
