# backend/api/services/credibility.py
from __future__ import annotations

from services.text_similarity import SimilarityResult

BASE_CREDIBILITY = 0.5
DEFAULT_BOOST = 0.2

# (min similar reports, min average similarity, share of the boost)
BOOST_TIERS: tuple[tuple[int, float, float], ...] = (
    (3, 0.7, 1.0),
    (2, 0.6, 0.5),
)


def score_boost(sim: SimilarityResult, boost: float = DEFAULT_BOOST) -> float:
    """
    Additive credibility boost for a report corroborated by nearby reports.
    First tier whose count and average thresholds are both met wins.
    """
    for min_count, min_avg, share in BOOST_TIERS:
        if sim.similar_count >= min_count and sim.average_similarity >= min_avg:
            return boost * share
    return 0.0


def credibility_score(sim: SimilarityResult, boost: float = DEFAULT_BOOST) -> float:
    """Base score plus boost, clamped to [0, 1]."""
    return min(1.0, max(0.0, BASE_CREDIBILITY + score_boost(sim, boost)))
