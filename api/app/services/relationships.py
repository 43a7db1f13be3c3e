"""Tag relationship scoring via Positive Pointwise Mutual Information.

For a tag pair (i, j) over N published articles:

    PMI(i, j) = log2( C(i, j) * N / (C(i) * C(j)) )
    PPMI      = max(PMI, 0)

A version's relationship score is the arithmetic mean PPMI across every
unordered pair of its tags. High scores mean the version combines tags that
genuinely co-occur more often than chance.
"""

import math
from itertools import combinations
from typing import Iterable, Mapping, Sequence


def pair_key(tag1_serial: str, tag2_serial: str) -> tuple[str, str]:
    """Canonical (sorted) key for an unordered tag pair."""
    if tag1_serial <= tag2_serial:
        return tag1_serial, tag2_serial
    return tag2_serial, tag1_serial


def generate_pair_combinations(tag_serials: Iterable[str]) -> list[tuple[str, str]]:
    """All unordered pairs of distinct serials, each in canonical order."""
    unique = list(dict.fromkeys(tag_serials))
    return [pair_key(a, b) for a, b in combinations(unique, 2)]


def calculate_tag_relationship_score(
    tag1_usage_count: int,
    tag2_usage_count: int,
    pair_usage_count: int,
    total_published_articles: int,
) -> float:
    """PPMI of a single pair. Zero when any input is non-positive."""
    if (
        tag1_usage_count <= 0
        or tag2_usage_count <= 0
        or pair_usage_count <= 0
        or total_published_articles <= 0
    ):
        return 0.0

    pmi = math.log2(
        (pair_usage_count * total_published_articles)
        / (tag1_usage_count * tag2_usage_count)
    )
    return max(pmi, 0.0)


def calculate_tag_set_score(
    tag_serials: Sequence[str],
    usage_counts: Mapping[str, int],
    pair_usage_counts: Mapping[tuple[str, str], int],
    total_published_articles: int,
) -> float:
    """Mean PPMI across all pairs of ``tag_serials``; 0.0 with fewer than two tags.

    Raises KeyError naming the missing tag or pair when a statistic is absent.
    """
    pairs = generate_pair_combinations(tag_serials)
    if not pairs:
        return 0.0

    total = 0.0
    for tag1, tag2 in pairs:
        total += calculate_tag_relationship_score(
            usage_counts[tag1],
            usage_counts[tag2],
            pair_usage_counts[(tag1, tag2)],
            total_published_articles,
        )
    return total / len(pairs)
