"""Version status transition engine.

Drives every change of a version's status and keeps the derived tag
statistics consistent with it. A transition only touches statistics when it
crosses the published boundary:

- publish (not published -> published): demote the article's currently
  published version to draft and decrement its tags, then increment the
  target version's tags.
- unpublish (published -> not published): decrement the target's tags.

Afterwards the trending score of every touched tag is recomputed, the pair
co-occurrence counters of the target's tags are bumped, and the target's
tag relationship score is recomputed. All of it runs in one transaction.

A change that does not cross the boundary (draft -> archived, for example)
is a complete no-op: no statistics change and the status is left as is.
"""

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Sequence

import structlog

from app.database import transaction
from app.exceptions import NotFoundError, ValidationError
from app.metrics import version_transitions
from app.models.article import VersionStatus
from app.services.relationships import calculate_tag_set_score, generate_pair_combinations
from app.services.trending import DEFAULT_HALF_LIFE_DAYS, apply_trending_scores, utc_now

log = structlog.get_logger(__name__)


class TransitionKind(str, enum.Enum):
    noop = "noop"
    publish = "publish"
    unpublish = "unpublish"


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a transition and the status the version holds afterwards."""

    kind: TransitionKind
    status: str


def dedupe_serials(serials: Sequence[str]) -> list[str]:
    """Drop repeated serials, keeping first-seen order."""
    return list(dict.fromkeys(serials))


async def capture_usage_anchors(tag_store, session, tag_serials: Sequence[str]) -> dict[str, datetime]:
    """Usage timestamps of ``tag_serials`` before the caller mutates any counter."""
    stats = await tag_store.get_tag_stats_by_serials(session, tag_serials)
    return {stat.tag_serial: stat.usage_count_updated_at for stat in stats}


class VersionStatusTransitionEngine:
    def __init__(
        self,
        session_factory,
        version_store,
        tag_store,
        half_life_days: float = DEFAULT_HALF_LIFE_DAYS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._session_factory = session_factory
        self._versions = version_store
        self._tags = tag_store
        self._half_life_days = half_life_days
        self._clock = clock

    async def transition_version_status(
        self, article_serial: str, version_serial: str, new_status: str
    ) -> TransitionResult:
        if not article_serial:
            raise ValidationError("article serial is mandatory")
        if not version_serial:
            raise ValidationError("version serial is mandatory")
        target = VersionStatus.parse(new_status)
        if target is None:
            raise ValidationError(f"version status '{new_status}' is unknown")

        async with transaction(self._session_factory) as session:
            article = await self._versions.get_article(session, article_serial, for_update=True)
            if article is None or article.is_deleted:
                raise NotFoundError(f"article '{article_serial}' not found")

            current_published = None
            if target.is_published:
                published = await self._versions.get_versions_by_status_and_article(
                    session, article_serial, VersionStatus.published.value
                )
                if published:
                    current_published = published[0]

            version = await self._versions.get_version_by_serial(session, version_serial)
            if version is None or version.article_serial != article_serial:
                raise NotFoundError(
                    f"version '{version_serial}' not found in article '{article_serial}'"
                )

            current = VersionStatus(version.status)
            if current is target or current.is_published == target.is_published:
                version_transitions.labels(kind=TransitionKind.noop.value).inc()
                log.info(
                    "version_transition_skipped",
                    version_serial=version_serial,
                    current_status=current.value,
                    requested_status=target.value,
                )
                return TransitionResult(TransitionKind.noop, current.value)

            tag_serials = dedupe_serials(version.tag_serials)
            demoted = None
            if target.is_published and current_published is not None:
                demoted = current_published

            affected = list(tag_serials)
            if demoted is not None:
                affected.extend(demoted.tag_serials)
            affected = dedupe_serials(affected)

            anchors = await capture_usage_anchors(self._tags, session, affected)

            if target.is_published:
                kind = TransitionKind.publish
                if demoted is not None:
                    await self._versions.update_version_status(
                        session, article_serial, demoted.serial, VersionStatus.draft.value
                    )
                    await self._tags.decrement_usage_count(session, demoted.tag_serials)
                    log.info(
                        "version_demoted",
                        article_serial=article_serial,
                        version_serial=demoted.serial,
                    )
                await self._tags.increment_usage_count(session, tag_serials)
            else:
                kind = TransitionKind.unpublish
                await self._tags.decrement_usage_count(session, tag_serials)

            tag_stats = await self._tags.get_tag_stats_by_serials(session, affected)
            await apply_trending_scores(
                self._tags,
                session,
                tag_stats,
                self._half_life_days,
                anchors=anchors,
                now=self._clock(),
            )

            await self._versions.update_version_status(
                session, article_serial, version_serial, target.value
            )

            score = await self._update_relationship_score(session, version_serial, tag_serials)

        version_transitions.labels(kind=kind.value).inc()
        log.info(
            "version_status_changed",
            article_serial=article_serial,
            version_serial=version_serial,
            from_status=current.value,
            to_status=target.value,
            kind=kind.value,
            tags_affected=len(affected),
            tag_relationship_score=score,
        )
        return TransitionResult(kind, target.value)

    async def _update_relationship_score(
        self, session, version_serial: str, tag_serials: Sequence[str]
    ) -> float:
        pairs = generate_pair_combinations(tag_serials)
        if not pairs:
            await self._versions.update_tag_relationship_score(session, version_serial, 0.0)
            return 0.0

        for tag1, tag2 in pairs:
            await self._tags.increment_tag_pair_stat(session, tag1, tag2)

        total_published = await self._versions.get_total_published_article_count(session)
        tag_stats = await self._tags.get_tag_stats_by_serials(session, tag_serials)
        pair_stats = await self._tags.get_tag_pair_stats_by_serials(session, tag_serials)

        usage_counts = {stat.tag_serial: stat.usage_count for stat in tag_stats}
        pair_counts = {
            (stat.tag1_serial, stat.tag2_serial): stat.usage_count for stat in pair_stats
        }
        try:
            score = calculate_tag_set_score(tag_serials, usage_counts, pair_counts, total_published)
        except KeyError as exc:
            raise NotFoundError(f"usage statistics missing for {exc.args[0]!r}") from exc

        await self._versions.update_tag_relationship_score(session, version_serial, score)
        return score
