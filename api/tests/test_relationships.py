import math

import pytest

from app.services.relationships import (
    calculate_tag_relationship_score,
    calculate_tag_set_score,
    generate_pair_combinations,
    pair_key,
)


def test_pair_key_is_order_independent():
    assert pair_key("TAGB", "TAGA") == ("TAGA", "TAGB")
    assert pair_key("TAGA", "TAGB") == ("TAGA", "TAGB")


def test_pair_combinations_are_canonical_and_unique():
    pairs = generate_pair_combinations(["C", "A", "B", "A"])
    assert sorted(pairs) == [("A", "B"), ("A", "C"), ("B", "C")]
    assert all(t1 < t2 for t1, t2 in pairs)


def test_pair_combinations_need_two_distinct_tags():
    assert generate_pair_combinations([]) == []
    assert generate_pair_combinations(["A"]) == []
    assert generate_pair_combinations(["A", "A"]) == []


def test_ppmi_positive_association():
    # Both tags used once, together, over two articles: twice as likely as chance
    assert calculate_tag_relationship_score(1, 1, 1, 2) == pytest.approx(1.0)
    assert calculate_tag_relationship_score(2, 2, 2, 16) == pytest.approx(math.log2(8))


def test_ppmi_clips_negative_association_to_zero():
    assert calculate_tag_relationship_score(4, 4, 1, 2) == 0.0


@pytest.mark.parametrize(
    "counts",
    [(0, 1, 1, 1), (1, 0, 1, 1), (1, 1, 0, 1), (1, 1, 1, 0), (-1, 1, 1, 1)],
)
def test_ppmi_is_zero_for_non_positive_inputs(counts):
    assert calculate_tag_relationship_score(*counts) == 0.0


def test_ppmi_is_symmetric():
    assert calculate_tag_relationship_score(3, 5, 2, 20) == calculate_tag_relationship_score(
        5, 3, 2, 20
    )


def test_set_score_is_mean_over_pairs():
    usage = {"A": 1, "B": 1, "C": 4}
    pairs = {("A", "B"): 1, ("A", "C"): 1, ("B", "C"): 1}
    # AB -> log2(2) = 1, AC and BC -> log2(2/4) < 0 -> 0
    assert calculate_tag_set_score(["A", "B", "C"], usage, pairs, 2) == pytest.approx(1 / 3)


def test_set_score_with_fewer_than_two_tags_is_zero():
    assert calculate_tag_set_score([], {}, {}, 10) == 0.0
    assert calculate_tag_set_score(["A"], {"A": 3}, {}, 10) == 0.0


def test_set_score_missing_statistic_raises_key_error():
    with pytest.raises(KeyError):
        calculate_tag_set_score(["A", "B"], {"A": 1}, {("A", "B"): 1}, 1)
    with pytest.raises(KeyError):
        calculate_tag_set_score(["A", "B"], {"A": 1, "B": 1}, {}, 1)
