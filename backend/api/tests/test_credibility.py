import itertools

import pytest

from services.credibility import credibility_score, score_boost
from services.text_similarity import SimilarityResult


def _sim(count, avg):
    return SimilarityResult(similar_count=count, average_similarity=avg, max_similarity=avg)


def test_full_boost_for_three_strong_matches():
    assert score_boost(_sim(3, 0.8)) == pytest.approx(0.2)
    assert credibility_score(_sim(3, 0.8)) == pytest.approx(0.7)


def test_half_boost_for_two_matches():
    assert score_boost(_sim(2, 0.65)) == pytest.approx(0.1)
    assert credibility_score(_sim(2, 0.65)) == pytest.approx(0.6)


def test_single_match_gets_nothing():
    assert score_boost(_sim(1, 0.9)) == 0
    assert credibility_score(_sim(1, 0.9)) == pytest.approx(0.5)


def test_three_matches_with_low_average_fall_to_lower_tier():
    assert score_boost(_sim(3, 0.65)) == pytest.approx(0.1)
    assert score_boost(_sim(3, 0.5)) == 0


def test_configured_boost():
    assert score_boost(_sim(4, 0.9), boost=0.3) == pytest.approx(0.3)
    assert score_boost(_sim(2, 0.6), boost=0.3) == pytest.approx(0.15)


def test_score_is_clamped():
    assert credibility_score(_sim(5, 0.95), boost=0.8) == 1.0


def test_boost_is_monotone_and_non_negative():
    counts = range(0, 6)
    averages = [0.0, 0.3, 0.59, 0.6, 0.69, 0.7, 0.85, 1.0]
    for (c1, a1), (c2, a2) in itertools.product(itertools.product(counts, averages), repeat=2):
        b1 = score_boost(_sim(c1, a1))
        assert b1 >= 0
        if c1 <= c2 and a1 <= a2:
            assert b1 <= score_boost(_sim(c2, a2))
