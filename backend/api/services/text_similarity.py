# backend/api/services/text_similarity.py
"""
TF-IDF + cosine similarity between a new report description and the
descriptions of active incidents around it.

Vectors are built over one vocabulary shared by the whole candidate set
(new report + nearby reports), so every vector has the same length.
"""
from __future__ import annotations

import math
import re
from typing import Dict, List, Sequence

import numpy as np
from pydantic import BaseModel

from models.incident import ExistingIncidentSummary

DEFAULT_THRESHOLD = 0.7
MIN_TOKEN_LEN = 3

_NON_WORD = re.compile(r"[^\w\s]")


class SimilarityResult(BaseModel):
    average_similarity: float = 0.0
    similar_count: int = 0
    max_similarity: float = 0.0


def tokenize(text: str) -> List[str]:
    """Lowercase, punctuation -> spaces, split, drop tokens of 1-2 chars."""
    cleaned = _NON_WORD.sub(" ", (text or "").lower())
    return [tok for tok in cleaned.split() if len(tok) >= MIN_TOKEN_LEN]


def build_vocabulary(docs: Sequence[List[str]]) -> List[str]:
    # dict keeps first-seen order -> deterministic term order
    vocab: Dict[str, None] = {}
    for doc in docs:
        for tok in doc:
            vocab.setdefault(tok, None)
    return list(vocab)


def term_frequency(term: str, doc: List[str]) -> float:
    if not doc:
        return 0.0
    return doc.count(term) / len(doc)


def inverse_document_frequency(term: str, docs: Sequence[List[str]]) -> float:
    containing = sum(1 for doc in docs if term in doc)
    if containing == 0:
        return 0.0
    return math.log(len(docs) / containing)


def tfidf_matrix(docs: Sequence[List[str]], vocabulary: List[str]) -> np.ndarray:
    """
    TF-IDF weights shaped [n_docs, len(vocabulary)].
    """
    idf = np.array([inverse_document_frequency(t, docs) for t in vocabulary], dtype=float)
    tf = np.array(
        [[term_frequency(t, doc) for t in vocabulary] for doc in docs],
        dtype=float,
    ).reshape(len(docs), len(vocabulary))
    return tf * idf


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.shape != b.shape:
        return 0.0
    denom = float(np.linalg.norm(a) * np.linalg.norm(b))
    if denom == 0.0:
        return 0.0
    return float(np.dot(a, b) / denom)


def _pair_similarity(doc_a: List[str], w_a: np.ndarray, doc_b: List[str], w_b: np.ndarray) -> float:
    # Terms present in every document get IDF 0, so a corpus of identical
    # reports has all-zero vectors. Same token multiset counts as a full match.
    if doc_a and sorted(doc_a) == sorted(doc_b) and not w_a.any() and not w_b.any():
        return 1.0
    return cosine_similarity(w_a, w_b)


def compute_similarity(
    new_text: str,
    existing: Sequence[ExistingIncidentSummary],
    *,
    threshold: float = DEFAULT_THRESHOLD,
) -> SimilarityResult:
    """
    Compare `new_text` against every existing report.

    Returns
    -------
    SimilarityResult with:
      - similar_count:      reports whose similarity >= threshold
      - average_similarity: mean over all existing reports
      - max_similarity:     best single match (0 when nothing to compare)
    """
    if not existing:
        return SimilarityResult()

    docs = [tokenize(new_text)] + [tokenize(r.description) for r in existing]
    vocabulary = build_vocabulary(docs)
    weights = tfidf_matrix(docs, vocabulary)

    sims = [
        # clip float noise so identical texts land exactly on 1.0
        min(1.0, max(0.0, _pair_similarity(docs[0], weights[0], docs[i], weights[i])))
        for i in range(1, len(docs))
    ]

    return SimilarityResult(
        average_similarity=sum(sims) / len(sims),
        similar_count=sum(1 for s in sims if s >= threshold),
        max_similarity=max(sims + [0.0]),
    )
