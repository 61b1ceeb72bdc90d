"""Rank fusion policies for merging vector and full-text result lists."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Literal

from retrieval_engine.models.domain import HybridResult, Provenance

FusionMethod = Literal["rrf", "score_aware_rrf", "weighted"]
ScoredList = Sequence[tuple[str, float]]


class _Accumulator:
    """Sums per-id contributions and tracks which list(s) each id came from.

    Ids keep first-seen order so equal scores resolve vector-first.
    """

    def __init__(self) -> None:
        self._scores: dict[str, float] = {}
        self._provenance: dict[str, Provenance] = {}

    def add(self, doc_id: str, value: float, provenance: Provenance) -> None:
        if doc_id in self._scores:
            self._scores[doc_id] += value
            if self._provenance[doc_id] is not provenance:
                self._provenance[doc_id] = Provenance.BOTH
        else:
            self._scores[doc_id] = value
            self._provenance[doc_id] = provenance

    def ranked(self, top_k: int | None) -> list[HybridResult]:
        merged = [
            HybridResult(doc_id, score, self._provenance[doc_id])
            for doc_id, score in self._scores.items()
        ]
        merged.sort(key=lambda r: r.score, reverse=True)
        return merged if top_k is None else merged[:top_k]


def reciprocal_rank_fusion(
    vector_results: ScoredList,
    text_results: ScoredList,
    k: int = 60,
    top_k: int | None = None,
) -> list[HybridResult]:
    """Merge two ranked lists using RRF.

    Args:
        vector_results: (id, score) tuples from the vector index, best first.
        text_results: (id, score) tuples from the full-text index, best first.
        k: RRF constant (higher = more weight to lower-ranked results).
        top_k: Keep at most this many results; ``None`` keeps all.

    Returns:
        HybridResult tuples sorted by fused score descending. Raw scores are
        only meaningful within one call.
    """
    acc = _Accumulator()
    for results, provenance in (
        (vector_results, Provenance.VECTOR),
        (text_results, Provenance.TEXT_SEARCH),
    ):
        for rank, (doc_id, _) in enumerate(results):
            acc.add(doc_id, 1.0 / (k + rank + 1), provenance)
    return acc.ranked(top_k)


def _min_max(results: ScoredList, flat_value: float | None) -> dict[str, float]:
    """Min-max normalize raw scores to [0, 1].

    When every score is identical, each id gets ``flat_value``; with
    ``flat_value=None`` the range is clamped instead and all ids map to 0.
    """
    if not results:
        return {}
    values = [s for _, s in results]
    lo, hi = min(values), max(values)
    if flat_value is not None and abs(hi - lo) < 1e-9:
        return {doc_id: flat_value for doc_id, _ in results}
    span = max(hi - lo, 1e-6)
    return {doc_id: (s - lo) / span for doc_id, s in results}


def score_aware_rrf(
    vector_results: ScoredList,
    text_results: ScoredList,
    k: int = 60,
    top_k: int | None = None,
    score_weight: float = 0.3,
) -> list[HybridResult]:
    """RRF where each rank term is boosted by the normalized raw score.

    ``score_weight=0`` reproduces plain RRF ordering. The truncated result is
    divided by its top score so the best hit is exactly 1.0 and score
    thresholds downstream stay meaningful.
    """
    acc = _Accumulator()
    for results, provenance in (
        (vector_results, Provenance.VECTOR),
        (text_results, Provenance.TEXT_SEARCH),
    ):
        normalized = _min_max(results, flat_value=0.5)
        for rank, (doc_id, _) in enumerate(results):
            rrf = 1.0 / (k + rank + 1)
            acc.add(doc_id, rrf * (1.0 + score_weight * normalized[doc_id]), provenance)

    merged = acc.ranked(top_k)
    if merged and merged[0].score > 0:
        top = merged[0].score
        merged = [r._replace(score=r.score / top) for r in merged]
    return merged


def weighted_fusion(
    vector_results: ScoredList,
    text_results: ScoredList,
    alpha: float = 0.7,
    top_k: int | None = None,
) -> list[HybridResult]:
    """``alpha * vector + (1 - alpha) * text`` over min-max normalized scores.

    An id missing from one list contributes 0 for that side.
    """
    acc = _Accumulator()
    for doc_id, norm in _min_max(vector_results, flat_value=None).items():
        acc.add(doc_id, alpha * norm, Provenance.VECTOR)
    for doc_id, norm in _min_max(text_results, flat_value=None).items():
        acc.add(doc_id, (1.0 - alpha) * norm, Provenance.TEXT_SEARCH)
    return acc.ranked(top_k)


def fuse(
    method: FusionMethod,
    vector_results: ScoredList,
    text_results: ScoredList,
    top_k: int | None = None,
    k: int = 60,
    score_weight: float = 0.3,
    alpha: float = 0.7,
) -> list[HybridResult]:
    """Dispatch to the configured fusion policy."""
    if method == "rrf":
        return reciprocal_rank_fusion(vector_results, text_results, k=k, top_k=top_k)
    if method == "score_aware_rrf":
        return score_aware_rrf(
            vector_results, text_results, k=k, top_k=top_k, score_weight=score_weight
        )
    if method == "weighted":
        return weighted_fusion(vector_results, text_results, alpha=alpha, top_k=top_k)
    raise ValueError(f"Unknown fusion method: {method}")
