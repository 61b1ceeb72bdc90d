"""Candidate hygiene between fusion and generation.

Score thresholding, near-duplicate removal and per-document diversity. All
three take and return lists ordered by score, best first.
"""

from __future__ import annotations

from dataclasses import replace

from retrieval_engine.models.domain import RankedCandidate
from retrieval_engine.observability.logger import get_logger

logger = get_logger("postprocess")


def filter_by_score(
    candidates: list[RankedCandidate], min_score: float
) -> list[RankedCandidate]:
    kept = [c for c in candidates if c.score >= min_score]
    if len(kept) < len(candidates):
        logger.debug("below_threshold_dropped", dropped=len(candidates) - len(kept))
    return kept


def _jaccard(words_a: set[str], words_b: set[str]) -> float:
    union = words_a | words_b
    if not union:
        return 1.0
    return len(words_a & words_b) / len(union)


def jaccard_similarity(a: str, b: str) -> float:
    """Jaccard similarity of the whitespace-separated word sets."""
    return _jaccard(set(a.split()), set(b.split()))


def deduplicate_near_identical(
    candidates: list[RankedCandidate], threshold: float = 0.75
) -> list[RankedCandidate]:
    """Drop candidates whose text is more than ``threshold`` similar to a kept one.

    Earlier (higher-scored) candidates win.
    """
    kept: list[RankedCandidate] = []
    word_sets: list[set[str]] = []
    for candidate in candidates:
        words = set(candidate.text.split())
        if not any(_jaccard(words, existing) > threshold for existing in word_sets):
            kept.append(candidate)
            word_sets.append(words)

    if len(kept) < len(candidates):
        logger.debug("near_duplicates_dropped", dropped=len(candidates) - len(kept))
    return kept


def apply_document_diversity(
    candidates: list[RankedCandidate], mmr_lambda: float = 0.7
) -> list[RankedCandidate]:
    """Penalize repeated chunks from the same document.

    The n-th repeat of a ``doc_id`` (0 for the first chunk) loses
    ``1 - mmr_lambda ** n`` of its score magnitude, so the penalty lowers
    negative cross-encoder logits as well as positive fused scores. For a
    positive score this is ``score * mmr_lambda ** n``. Candidates without a
    ``doc_id`` in their metadata count as their own document.
    """
    seen: dict[str, int] = {}
    diversified = []
    for c in candidates:
        doc_id = c.candidate.metadata.get("doc_id", c.id)
        repeats = seen.get(doc_id, 0)
        seen[doc_id] = repeats + 1
        if repeats:
            penalty = abs(c.score) * (1.0 - mmr_lambda**repeats)
            c = replace(c, score=c.score - penalty)
        diversified.append(c)

    diversified.sort(key=lambda c: c.score, reverse=True)
    return diversified
