import math
from datetime import datetime, timedelta, timezone

import pytest

from app.exceptions import StorageError
from app.services.trending import calculate_trending_score

from conftest import T0


def test_score_equals_usage_count_at_age_zero():
    assert calculate_trending_score(7, T0, 7.0, now=T0) == pytest.approx(7.0)


def test_score_halves_every_half_life():
    assert calculate_trending_score(10, T0, 7.0, now=T0 + timedelta(days=7)) == pytest.approx(5.0)
    assert calculate_trending_score(10, T0, 7.0, now=T0 + timedelta(days=14)) == pytest.approx(2.5)


def test_score_decreases_monotonically_with_age():
    scores = [
        calculate_trending_score(4, T0, 7.0, now=T0 + timedelta(hours=h))
        for h in range(0, 24 * 30, 12)
    ]
    assert all(a > b for a, b in zip(scores, scores[1:]))
    assert all(s > 0 for s in scores)


def test_score_is_zero_for_non_positive_counts():
    assert calculate_trending_score(0, T0, 7.0, now=T0) == 0.0
    assert calculate_trending_score(-3, T0, 7.0, now=T0) == 0.0


def test_future_timestamp_counts_as_age_zero():
    future = T0 + timedelta(days=2)
    assert calculate_trending_score(3, future, 7.0, now=T0) == pytest.approx(3.0)


def test_naive_timestamps_are_treated_as_utc():
    naive = datetime(2026, 1, 1, 12, 0)
    assert calculate_trending_score(
        2, naive, 7.0, now=T0 + timedelta(days=7)
    ) == pytest.approx(1.0)


def test_custom_half_life():
    score = calculate_trending_score(8, T0, 1.0, now=T0 + timedelta(days=3))
    assert score == pytest.approx(1.0)


def test_non_positive_half_life_is_rejected():
    with pytest.raises(ValueError):
        calculate_trending_score(1, T0, 0.0, now=T0)


def test_very_old_usage_decays_towards_zero():
    score = calculate_trending_score(100, T0, 7.0, now=T0 + timedelta(days=365))
    assert 0 < score < 1e-10


def test_refresher_rejects_non_positive_page_size(session_factory, tag_store):
    from app.services.trending import TrendingRefresher

    with pytest.raises(ValueError):
        TrendingRefresher(session_factory, tag_store, page_size=0)


@pytest.mark.asyncio
async def test_refresh_all_with_no_tags_returns_zero(refresher, db):
    assert await refresher.refresh_all() == 0
    assert db.calls.count("get_tag_stats_page") == 1


@pytest.mark.asyncio
async def test_refresh_all_sweeps_every_page(refresher, make_tags, db, clock):
    serials = await make_tags("python", "rust", "go", "java", "zig")
    for serial in serials:
        db.tag_stats[serial].usage_count = 4

    clock.advance(days=7)
    refreshed = await refresher.refresh_all()

    assert refreshed == 5
    # page_size=2 -> three pages
    assert db.calls.count("get_tag_stats_page") == 3
    for serial in serials:
        assert db.trending(serial) == pytest.approx(2.0)
        assert db.tag_stats[serial].trending_score_updated_at == clock.now


@pytest.mark.asyncio
async def test_refresh_all_is_idempotent_at_a_fixed_instant(refresher, make_tags, db, clock):
    serials = await make_tags("a", "b", "c")
    db.tag_stats[serials[0]].usage_count = 3
    clock.advance(days=3)

    await refresher.refresh_all()
    first = {s: db.trending(s) for s in serials}
    await refresher.refresh_all()
    second = {s: db.trending(s) for s in serials}

    assert first == second
    assert first[serials[1]] == 0.0
    assert first[serials[0]] == pytest.approx(3 * math.exp(-math.log(2) * 3 / 7))


@pytest.mark.asyncio
async def test_failure_on_later_page_rolls_back_earlier_pages(refresher, make_tags, db, clock):
    serials = await make_tags("a", "b", "c", "d")
    for serial in serials:
        db.tag_stats[serial].usage_count = 2
    clock.advance(days=7)

    db.fail_on("get_tag_stats_page", after=1)
    with pytest.raises(StorageError):
        await refresher.refresh_all()

    for serial in serials:
        assert db.trending(serial) == 0.0
